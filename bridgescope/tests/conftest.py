import os
import pathlib

from dotenv import load_dotenv

# Automatically load .env from project root, then pin test-safe defaults
load_dotenv(dotenv_path=pathlib.Path(__file__).parent.parent.parent / ".env")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ.pop("REDIS_URL", None)

from typing import Dict, List  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bridgescope.attribution.registry import DappRegistry  # noqa: E402
from bridgescope.cache.client import CacheClient, MemoryCacheBackend  # noqa: E402
from bridgescope.container import build_services, set_services  # noqa: E402
from bridgescope.pipeline.pipeline import TransferPipeline  # noqa: E402
from bridgescope.pricing.resolver import PriceResolver  # noqa: E402
from bridgescope.storage.db import build_session_factory  # noqa: E402
from bridgescope.storage.migrate import run_migrations  # noqa: E402
from bridgescope.utils.types import EventKind  # noqa: E402

WETH = "0x4200000000000000000000000000000000000006"
USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
AERODROME_ROUTER = "0x420DD381b31aEf6683db6B902084cB0FFECe40Da"
BRIDGE_PROGRAM = "HNCne2FkVaNghhjKXapxJzPaBvAKDG1Ge3gqhZyfVWLM"
RELAYER_PROGRAM = "g1et5VenhfJHJwsdJsDbxWZuotD5H4iELNG61kS4fb9"
AERODROME_RELAYER = "B7g2YCbodhvwpgX3u3URLsud6R1XMSaMiQ5LtXw4GKBC"


class FakeCoinGecko:
    """Stands in for CoinGeckoClient; records every call."""

    def __init__(self, current: Dict = None, history: Dict = None, fail: bool = False):
        self.current = current or {}
        self.history = history or {}
        self.fail = fail
        self.calls: List = []

    def simple_price(self, coingecko_id):
        self.calls.append(("simple_price", coingecko_id))
        if self.fail:
            raise httpx.ConnectError("coingecko unreachable")
        return self.current.get(coingecko_id)

    def market_chart_range(self, coingecko_id, from_ts, to_ts):
        self.calls.append(("market_chart_range", coingecko_id, from_ts, to_ts))
        if self.fail:
            raise httpx.ConnectError("coingecko unreachable")
        return list(self.history.get(coingecko_id, []))


class FakeTokenMeta:
    def __init__(self, metas: Dict = None):
        self.metas = {k.lower(): v for k, v in (metas or {}).items()}
        self.calls: List[str] = []

    def resolve(self, address):
        self.calls.append(address)
        return self.metas.get(address.lower())


class FakeSubgraph:
    """Serves canned pages per event kind; ``error`` makes every fetch raise."""

    def __init__(self, pages: Dict[EventKind, List[Dict]] = None, recent: List[Dict] = None, error: Exception = None):
        self.pages = pages or {}
        self.recent = recent or []
        self.error = error
        self.page_calls: List = []

    def fetch_page(self, kind, from_block, first):
        self.page_calls.append((kind, from_block, first))
        if self.error:
            raise self.error
        return [r for r in self.pages.get(kind, []) if int(r["blockNumber"]) >= from_block][:first]

    def fetch_recent(self, kind, since_ts, first):
        if self.error:
            raise self.error
        return self.recent[:first]


def indexer_event(tx_hash, log_index, block, ts, to=AERODROME_ROUTER, token=WETH, amount="1000000000000000000"):
    return {
        "id": f"{tx_hash}-{log_index}",
        "localToken": token,
        "remoteToken": "So11111111111111111111111111111111111111112",
        "to": to,
        "amount": amount,
        "blockNumber": str(block),
        "blockTimestamp": str(ts),
        "transactionHash": tx_hash,
    }


def ledger_tx(signature, slot=250_000_000, ts=1_700_000_000, relayer=AERODROME_RELAYER, mint=None, amount=500_000_000, bridge=True):
    instructions = [{"programId": "ComputeBudget111111111111111111111111111111", "accounts": []}]
    if bridge:
        instructions.append({"programId": BRIDGE_PROGRAM, "accounts": ["user1"]})
    if relayer:
        instructions.append({"programId": RELAYER_PROGRAM, "accounts": [relayer, "user1"]})
    tx = {
        "signature": signature,
        "slot": slot,
        "timestamp": ts,
        "instructions": instructions,
        "accountData": [
            {"account": "user1", "nativeBalanceChange": -5000},
            {"account": "vault", "nativeBalanceChange": 4000},
        ],
        "events": {},
    }
    if mint:
        tx["events"] = {"tokenTransfers": [{
            "mint": mint,
            "fromUserAccount": "user1",
            "toUserAccount": "vault",
            "tokenAmount": amount,
            "decimals": 9,
        }]}
    return tx


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    run_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def cache():
    return CacheClient(MemoryCacheBackend())


@pytest.fixture
def registry():
    return DappRegistry.from_config()


@pytest.fixture
def coingecko():
    return FakeCoinGecko()


@pytest.fixture
def token_meta():
    return FakeTokenMeta()


@pytest.fixture
def prices(session_factory, cache, coingecko):
    return PriceResolver(session_factory, cache, coingecko)


@pytest.fixture
def pipeline(session_factory, prices, token_meta, registry, cache):
    return TransferPipeline(session_factory, prices, token_meta, registry, cache)


@pytest.fixture
def services(session_factory, cache, registry, coingecko, token_meta):
    svc = build_services(
        session_factory,
        cache=cache,
        registry=registry,
        coingecko=coingecko,
        token_meta=token_meta,
        indexers={},
    )
    set_services(svc)
    yield svc
    set_services(None)
