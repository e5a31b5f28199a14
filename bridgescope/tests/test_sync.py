from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from bridgescope.cache import keys
from bridgescope.ingestion.worker import handle_payload
from bridgescope.storage.models.stats import GlobalStats
from bridgescope.storage.models.token import Token
from bridgescope.storage.models.transfer import Transfer
from bridgescope.sync.reconciliation import ReconciliationSync, SyncState, SyncStats
from bridgescope.utils.errors import IndexerError
from bridgescope.utils.types import Chain, EventKind

from conftest import WETH, FakeSubgraph, indexer_event, ledger_tx

NOW_TS = int(datetime.now(timezone.utc).timestamp())


def _sync(pipeline, session_factory, cache, page_size=100, **indexers):
    return ReconciliationSync(pipeline, session_factory, {Chain[k]: v for k, v in indexers.items()}, cache, page_size=page_size)


def test_cursor_starts_at_zero_then_follows_highest_block(pipeline, session_factory, cache):
    subgraph = FakeSubgraph(pages={EventKind.INITIATED: [indexer_event("0xaa", 1, 120, NOW_TS), indexer_event("0xbb", 2, 450, NOW_TS)]})
    sync = _sync(pipeline, session_factory, cache, BASE=subgraph)

    assert sync.cursor(Chain.BASE) == 0
    sync.tick()

    assert sync.cursor(Chain.BASE) == 451
    assert sync.cursor(Chain.SOLANA) == 0
    assert subgraph.page_calls == [(EventKind.INITIATED, 0, 100), (EventKind.FINALIZED, 0, 100)]


def test_tick_inserts_and_attributes_by_target_contract(pipeline, session_factory, cache, coingecko, token_meta):
    subgraph = FakeSubgraph(pages={
        EventKind.INITIATED: [indexer_event("0xaa", 1, 10, NOW_TS)],
        EventKind.FINALIZED: [indexer_event("0xbb", 7, 11, NOW_TS, to="0x000000000000000000000000000000000000c0de")],
    })
    coingecko.history["weth"] = [(NOW_TS * 1000, 2000.0)]

    results = _sync(pipeline, session_factory, cache, BASE=subgraph).tick()

    assert results[Chain.BASE] == SyncStats(fetched=2, inserted=2, skipped_existing=0, failed=0, new_tokens=1)
    with session_factory() as db:
        initiated, finalized = db.execute(select(Transfer).order_by(Transfer.block_number)).scalars().all()
        stats = db.execute(select(GlobalStats)).scalars().one()
        token = db.get(Token, WETH)
    assert (initiated.direction, initiated.status) == ("CONTRACT_TO_LEDGER", "PENDING")
    assert (initiated.dapp_id, initiated.attribution_confidence, initiated.attribution_method) == ("aerodrome", 95, "TARGET_CONTRACT")
    assert (finalized.direction, finalized.status, finalized.dapp_id) == ("LEDGER_TO_CONTRACT", "COMPLETED", None)
    assert token.decimals == 18 and token.symbol == "UNKNOWN"
    assert initiated.amount_normalized == 1
    assert initiated.amount_usd == 2000
    assert token_meta.calls == [WETH]
    assert stats.transfer_count == 2


def test_existing_row_is_left_alone_without_side_effects(pipeline, session_factory, cache, coingecko, token_meta):
    event = indexer_event("0xcc", 3, 20, NOW_TS)
    with session_factory() as db:
        db.add(Transfer(
            transaction_hash="0xcc", log_index=3, chain="BASE", direction="LEDGER_TO_CONTRACT",
            status="COMPLETED", block_number=5, block_timestamp=datetime.now(timezone.utc),
            token_address=WETH, amount="1", dapp_id=None,
        ))
        db.commit()

    sync = _sync(pipeline, session_factory, cache, BASE=FakeSubgraph(pages={EventKind.FINALIZED: [event]}))
    results = sync.tick()

    assert results[Chain.BASE] == SyncStats(fetched=1, inserted=0, skipped_existing=1, failed=0, new_tokens=0)
    with session_factory() as db:
        row = db.execute(select(Transfer)).scalars().one()
        assert db.get(Token, WETH) is None
    assert (row.status, row.block_number, row.dapp_id) == ("COMPLETED", 5, None)
    assert token_meta.calls == []
    assert coingecko.calls == []


def test_bad_record_is_counted_and_siblings_continue(pipeline, session_factory, cache):
    bad = indexer_event("0xdd", 1, 30, NOW_TS)
    bad["id"] = "not-an-event-id"
    subgraph = FakeSubgraph(pages={EventKind.INITIATED: [bad, indexer_event("0xee", 2, 31, NOW_TS)]})

    results = _sync(pipeline, session_factory, cache, BASE=subgraph).tick()

    assert results[Chain.BASE].failed == 1
    assert results[Chain.BASE].inserted == 1


def test_unconvertible_timestamp_is_skipped_and_chain_moves_on(pipeline, session_factory, cache):
    subgraph = FakeSubgraph(pages={EventKind.INITIATED: [
        indexer_event("0xa1", 1, 10, NOW_TS),
        indexer_event("0xa2", 1, 11, 10**12),
        indexer_event("0xa3", 1, 12, NOW_TS),
    ]})
    sync = _sync(pipeline, session_factory, cache, BASE=subgraph)

    first = sync.tick()
    second = sync.tick()

    assert first[Chain.BASE] == SyncStats(fetched=3, inserted=2, skipped_existing=0, failed=1, new_tokens=1)
    assert second[Chain.BASE].fetched == 0
    assert subgraph.page_calls[-1] == (EventKind.FINALIZED, 13, 100)
    with session_factory() as db:
        hashes = db.execute(select(Transfer.transaction_hash).order_by(Transfer.block_number)).scalars().all()
    assert hashes == ["0xa1", "0xa3"]


def test_unexpected_record_error_is_counted_not_fatal(pipeline, session_factory, cache, monkeypatch):
    original = pipeline.process_indexer_event

    def flaky(raw, chain, kind, refine=False):
        if raw["transactionHash"] == "0xb1":
            raise RuntimeError("boom")
        return original(raw, chain, kind, refine)

    monkeypatch.setattr(pipeline, "process_indexer_event", flaky)
    subgraph = FakeSubgraph(pages={EventKind.INITIATED: [indexer_event("0xb1", 1, 5, NOW_TS), indexer_event("0xb2", 1, 6, NOW_TS)]})
    sync = _sync(pipeline, session_factory, cache, BASE=subgraph)

    results = sync.tick()

    assert (results[Chain.BASE].failed, results[Chain.BASE].inserted) == (1, 1)
    assert sync.cursor(Chain.BASE) == 7


def test_webhook_rows_do_not_move_ledger_chain_cursor(pipeline, session_factory, cache):
    handle_payload(pipeline, [ledger_tx("sig-live", slot=1000)])
    mint = "So11111111111111111111111111111111111111112"
    missed = indexer_event("3xMissedSig", 0, 500, NOW_TS, to="Vault7xKpQ", token=mint)
    subgraph = FakeSubgraph(pages={EventKind.FINALIZED: [missed]})
    sync = _sync(pipeline, session_factory, cache, SOLANA=subgraph)

    assert sync.cursor(Chain.SOLANA) == 0
    results = sync.tick()

    assert results[Chain.SOLANA].inserted == 1
    assert sync.cursor(Chain.SOLANA) == 501
    with session_factory() as db:
        rows = db.execute(select(Transfer.transaction_hash).order_by(Transfer.block_number)).scalars().all()
    assert rows == ["3xMissedSig", "sig-live"]


def test_full_page_holds_cursor_at_its_last_block(pipeline, session_factory, cache):
    subgraph = FakeSubgraph(pages={
        EventKind.INITIATED: [indexer_event("0xc1", 1, 10, NOW_TS), indexer_event("0xc2", 1, 20, NOW_TS), indexer_event("0xc3", 1, 30, NOW_TS)],
        EventKind.FINALIZED: [indexer_event("0xd1", 1, 50, NOW_TS)],
    })
    sync = _sync(pipeline, session_factory, cache, page_size=2, BASE=subgraph)

    sync.tick()
    assert sync.cursor(Chain.BASE) == 20

    results = sync.tick()
    assert results[Chain.BASE] == SyncStats(fetched=3, inserted=1, skipped_existing=2, failed=0, new_tokens=0)
    assert sync.cursor(Chain.BASE) == 30

    sync.tick()
    assert sync.cursor(Chain.BASE) == 51
    with session_factory() as db:
        assert len(db.execute(select(Transfer.id)).all()) == 4


def test_database_outage_pins_cursor_for_retry(pipeline, session_factory, cache, monkeypatch):
    original = pipeline.process_indexer_event

    def flaky(raw, chain, kind, refine=False):
        if raw["transactionHash"] == "0xe2":
            raise OperationalError("INSERT INTO transfers", {}, Exception("connection refused"))
        return original(raw, chain, kind, refine)

    monkeypatch.setattr(pipeline, "process_indexer_event", flaky)
    subgraph = FakeSubgraph(pages={EventKind.INITIATED: [indexer_event("0xe1", 1, 40, NOW_TS), indexer_event("0xe2", 1, 41, NOW_TS)]})
    sync = _sync(pipeline, session_factory, cache, BASE=subgraph)

    sync.tick()

    assert sync.cursor(Chain.BASE) == 41


def test_failing_chain_returns_to_idle_and_others_proceed(pipeline, session_factory, cache):
    broken = FakeSubgraph(error=IndexerError("subgraph errors: boom"))
    healthy = FakeSubgraph(pages={EventKind.INITIATED: [indexer_event("0xff", 4, 40, NOW_TS)]})
    sync = _sync(pipeline, session_factory, cache, BASE=broken, SOLANA=healthy)

    results = sync.tick()

    assert Chain.BASE not in results
    assert results[Chain.SOLANA].inserted == 1
    assert sync.state == {Chain.BASE: SyncState.IDLE, Chain.SOLANA: SyncState.IDLE}


def test_tick_invalidates_stats_cache(pipeline, session_factory, cache):
    cache.set_json(keys.global_stats("24h"), {"stale": True}, keys.GLOBAL_STATS_TTL)
    cache.set_json(keys.dapp_stats("zora", "7d"), {"stale": True}, keys.DAPP_STATS_TTL)

    _sync(pipeline, session_factory, cache, BASE=FakeSubgraph()).tick()

    assert cache.get_json(keys.global_stats("24h")) is None
    assert cache.get_json(keys.dapp_stats("zora", "7d")) is None


def test_run_forever_stops_on_event(pipeline, session_factory, cache):
    import threading

    stop = threading.Event()
    sync = _sync(pipeline, session_factory, cache, BASE=FakeSubgraph())
    ticks = []

    def tick():
        ticks.append(1)
        stop.set()
        return {}

    sync.tick = tick
    sync.run_forever(interval=60, stop=stop)

    assert ticks == [1]
