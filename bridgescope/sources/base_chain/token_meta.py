import logging
import threading
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional

from web3 import Web3

from bridgescope.cache import keys
from bridgescope.cache.client import CacheClient
from bridgescope.config.constants import ERC20_META_ABI
from bridgescope.sources.base_chain.client import get_web3_client

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenMeta:
    symbol: str
    decimals: int
    name: Optional[str] = None


class TokenMetadataResolver:
    """ERC-20 symbol/decimals/name reads, cached in-process for the life of the process.

    Decimals never change on-chain, so a resolved entry is kept forever. A
    failed read is remembered as ``None`` and not retried; that is distinct
    from an address that was never looked up.
    """

    def __init__(self, w3_factory: Callable[[], Web3] = get_web3_client, cache: CacheClient = None):
        self._w3_factory = w3_factory
        self._cache = cache
        self._resolved: Dict[str, Optional[TokenMeta]] = {}
        self._key_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()

    def has_tried(self, address: str) -> bool:
        return address.lower() in self._resolved

    def resolve(self, address: str) -> Optional[TokenMeta]:
        key = address.lower()
        if key in self._resolved:
            return self._resolved[key]

        with self._guard:
            key_lock = self._key_locks[key]
        with key_lock:
            if key in self._resolved:
                return self._resolved[key]
            meta = self._from_shared_cache(key)
            if meta is None:
                meta = self._read_onchain(key)
                if meta is not None and self._cache is not None:
                    self._cache.set_json(keys.token_metadata(key), asdict(meta), keys.TOKEN_METADATA_TTL)
            self._resolved[key] = meta
            return meta

    def _from_shared_cache(self, key: str) -> Optional[TokenMeta]:
        if self._cache is None:
            return None
        cached = self._cache.get_json(keys.token_metadata(key))
        return TokenMeta(**cached) if cached else None

    def _read_onchain(self, key: str) -> Optional[TokenMeta]:
        try:
            w3 = self._w3_factory()
            token = w3.eth.contract(address=Web3.to_checksum_address(key), abi=ERC20_META_ABI)
            symbol = token.functions.symbol().call()
            decimals = int(token.functions.decimals().call())
        except Exception as e:
            log.warning(f"[token_meta] metadata read failed for {key}: {e}")
            return None

        symbol = symbol.strip() if isinstance(symbol, str) and symbol.strip() else "TOKEN"
        try:
            name = token.functions.name().call()
        except Exception as e:
            log.debug(f"[token_meta] name() unavailable for {key}: {e}")
            name = None
        name = name.strip() if isinstance(name, str) and name.strip() else symbol

        log.info(f"[token_meta] {key}: symbol={symbol} decimals={decimals}")
        return TokenMeta(symbol=symbol, decimals=decimals, name=name)
