"""
normalize → token → price → attribute → persist.

Both ingestion paths end here. The webhook and cron paths refine derived
fields of an existing row; reconciliation is insert-only and bails out
before any token or price work when the natural key is already stored.
"""
import logging
from enum import Enum
from typing import Callable, NamedTuple, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bridgescope.attribution.engine import AttributionSignals, attribute_transfer
from bridgescope.attribution.registry import DappRegistry
from bridgescope.cache import keys
from bridgescope.cache.client import CacheClient
from bridgescope.config.constants import DEFAULT_EVM_DECIMALS, DEFAULT_SPL_DECIMALS
from bridgescope.normalizer.indexer import normalize_indexer_event
from bridgescope.normalizer.ledger import normalize_ledger_transaction
from bridgescope.normalizer.schemas import LedgerTransaction
from bridgescope.normalizer.transfer import NormalizedTransfer, normalize_amount
from bridgescope.pricing.resolver import PriceResolver
from bridgescope.sources.base_chain.token_meta import TokenMetadataResolver
from bridgescope.storage.models.token import Token
from bridgescope.storage.models.transfer import Transfer
from bridgescope.storage.upsert import insert_token_if_absent, insert_transfer_if_absent, upsert_transfer
from bridgescope.utils.types import Chain, EventKind

log = logging.getLogger(__name__)

UNKNOWN_SYMBOL = "UNKNOWN"


class Outcome(str, Enum):
    INSERTED = "INSERTED"
    EXISTING = "EXISTING"
    UPSERTED = "UPSERTED"
    DISCARDED = "DISCARDED"


class ProcessResult(NamedTuple):
    outcome: Outcome
    key: Optional[Tuple[str, int]] = None
    new_token: bool = False
    dapp_id: Optional[str] = None


DISCARDED = ProcessResult(Outcome.DISCARDED)


class TransferPipeline:
    def __init__(
        self,
        session_factory: Callable,
        prices: PriceResolver,
        token_meta: TokenMetadataResolver,
        registry: DappRegistry,
        cache: CacheClient,
    ):
        self.session_factory = session_factory
        self.prices = prices
        self.token_meta = token_meta
        self.registry = registry
        self.cache = cache

    # --- entry points --------------------------------------------------

    def process_ledger_transaction(self, tx: LedgerTransaction) -> ProcessResult:
        transfer = normalize_ledger_transaction(tx)
        if transfer is None:
            return DISCARDED
        return self.persist(transfer, AttributionSignals(relayer=transfer.relayer), refine=True)

    def process_indexer_event(self, event, chain: Chain, kind: EventKind, refine: bool = False) -> ProcessResult:
        transfer = normalize_indexer_event(event, chain, kind)
        return self.persist(transfer, AttributionSignals(target_contract=transfer.recipient), refine=refine)

    # --- core ----------------------------------------------------------

    def persist(self, transfer: NormalizedTransfer, signals: AttributionSignals, refine: bool) -> ProcessResult:
        key = transfer.natural_key
        with self.session_factory() as db:
            if not refine and self._exists(db, key):
                return ProcessResult(Outcome.EXISTING, key)
            decimals, new_token = self._ensure_token(db, transfer)

        amount = normalize_amount(transfer.raw_amount, decimals)
        price = None
        if transfer.token_address:
            price = self.prices.get_historical_price(transfer.token_address, transfer.block_timestamp)
        amount_usd = amount * price.price_usd if price is not None and amount is not None else None

        attribution = attribute_transfer(signals, self.registry)
        row = {
            "transaction_hash": transfer.transaction_hash,
            "log_index": transfer.log_index,
            "chain": transfer.chain.value,
            "direction": transfer.direction.value,
            "status": transfer.status.value,
            "block_number": transfer.block_number,
            "block_timestamp": transfer.block_timestamp,
            "sender": transfer.sender,
            "recipient": transfer.recipient,
            "token_address": transfer.token_address,
            "remote_token": transfer.remote_token,
            "program_id": transfer.program_id,
            "amount": transfer.raw_amount,
            "amount_normalized": amount,
            "amount_usd": amount_usd,
            "price_usd_at_time": price.price_usd if price is not None else None,
            "relayer": transfer.relayer,
            "dapp_id": attribution.dapp_id,
            "attribution_confidence": attribution.confidence,
            "attribution_method": attribution.method.value,
        }

        with self.session_factory() as db:
            try:
                if refine:
                    upsert_transfer(db, row)
                    outcome = Outcome.UPSERTED
                else:
                    inserted = insert_transfer_if_absent(db, row)
                    outcome = Outcome.INSERTED if inserted else Outcome.EXISTING
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

        if outcome is not Outcome.EXISTING:
            self.cache.invalidate_prefix(keys.RECENT_TRANSFERS_PREFIX)
        usd = f"${amount_usd:.2f}" if amount_usd is not None else "price unavailable"
        log.info(
            f"[pipeline] {transfer.chain.value} {transfer.transaction_hash}#{transfer.log_index} "
            f"{outcome.value}: {amount} ({usd}) -> {attribution.dapp_id or 'unattributed'}"
        )
        return ProcessResult(outcome, key, new_token, attribution.dapp_id)

    @staticmethod
    def _exists(db, key: Tuple[str, int]) -> bool:
        tx_hash, log_index = key
        found = db.execute(
            select(Transfer.id).where(Transfer.transaction_hash == tx_hash, Transfer.log_index == log_index)
        ).first()
        return found is not None

    def _ensure_token(self, db, transfer: NormalizedTransfer) -> Tuple[int, bool]:
        """Stored decimals for the transfer's token, creating the token on first sight.

        Returns ``(decimals, created)``. Decimals of an existing token are
        never rewritten.
        """
        default = DEFAULT_SPL_DECIMALS if transfer.chain is Chain.SOLANA else DEFAULT_EVM_DECIMALS
        address = transfer.token_address
        if not address:
            return (transfer.decimals if transfer.decimals is not None else default), False

        token = db.get(Token, address)
        if token is not None:
            return token.decimals, False

        symbol, name, decimals = UNKNOWN_SYMBOL, None, default
        if transfer.chain is Chain.BASE:
            meta = self.token_meta.resolve(address)
            if meta is not None:
                symbol, name, decimals = meta.symbol, meta.name, meta.decimals
            else:
                log.warning(f"[pipeline] {transfer.transaction_hash}: no metadata for {address}, using defaults")
        elif transfer.decimals is not None:
            decimals = transfer.decimals

        created = insert_token_if_absent(db, {
            "id": address,
            "chain": transfer.chain.value,
            "symbol": symbol,
            "name": name,
            "decimals": decimals,
            "is_verified": False,
        })
        db.commit()
        if created:
            log.info(f"[pipeline] new token {symbol} ({address}) decimals={decimals}")
            return decimals, True
        # lost a race with another writer; theirs wins
        return db.get(Token, address).decimals, False
