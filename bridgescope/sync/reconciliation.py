"""
Pull-side reconciliation against the bridge subgraphs.

Each tick walks every configured chain: read the block cursor, fetch one
page of initiated and finalized events, run each through the pipeline in
insert-only mode, and then rebuild today's rollups once. A failing chain
is logged and returned to IDLE without affecting the others.
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from bridgescope.cache.client import CacheClient
from bridgescope.config import settings
from bridgescope.pipeline.pipeline import Outcome, TransferPipeline
from bridgescope.sources.subgraph.client import SubgraphClient
from bridgescope.storage.models.sync_cursor import SyncCursor
from bridgescope.storage.upsert import upsert_sync_cursor
from bridgescope.sync.stats import aggregate_day
from bridgescope.utils.errors import BridgeScopeError
from bridgescope.utils.types import Chain, EventKind

log = logging.getLogger(__name__)


def _block_of(raw) -> Optional[int]:
    try:
        return int(raw["blockNumber"])
    except (KeyError, TypeError, ValueError):
        return None


def _next_cursor(from_block: int, pages: Dict[EventKind, List], page_size: int, retry_from: Optional[int]) -> int:
    """Block the next tick starts from.

    Past everything fetched, except that a full page stops at its own last
    block (``blockNumber_gte`` re-reads it, stored rows are skipped) so the
    other kind's page cannot carry the cursor past unread events. Records
    that failed on an unavailable database pin the cursor at their block.
    """
    next_block = from_block
    for rows in pages.values():
        blocks = [b for b in map(_block_of, rows) if b is not None]
        if blocks:
            next_block = max(next_block, max(blocks) + 1)
    for rows in pages.values():
        blocks = [b for b in map(_block_of, rows) if b is not None]
        if blocks and len(rows) >= page_size:
            next_block = min(next_block, max(blocks))
    if retry_from is not None:
        next_block = min(next_block, retry_from)
    return max(next_block, from_block)


class SyncState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    PROCESSING = "PROCESSING"
    AGGREGATING = "AGGREGATING"


@dataclass
class SyncStats:
    fetched: int = 0
    inserted: int = 0
    skipped_existing: int = 0
    failed: int = 0
    new_tokens: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class ReconciliationSync:
    def __init__(
        self,
        pipeline: TransferPipeline,
        session_factory: Callable,
        indexers: Dict[Chain, SubgraphClient],
        cache: CacheClient,
        page_size: int = settings.SYNC_PAGE_SIZE,
    ):
        self.pipeline = pipeline
        self.session_factory = session_factory
        self.indexers = indexers
        self.cache = cache
        self.page_size = page_size
        self.state: Dict[Chain, SyncState] = {chain: SyncState.IDLE for chain in indexers}

    def cursor(self, chain: Chain) -> int:
        """Next block to read for the chain, 0 before the first tick."""
        with self.session_factory() as db:
            row = db.get(SyncCursor, chain.value)
        return 0 if row is None else int(row.next_block)

    def sync_chain(self, chain: Chain) -> SyncStats:
        client = self.indexers[chain]
        stats = SyncStats()

        self.state[chain] = SyncState.FETCHING
        from_block = self.cursor(chain)
        pages = {kind: client.fetch_page(kind, from_block, self.page_size) for kind in EventKind}
        stats.fetched = sum(len(rows) for rows in pages.values())
        log.info(f"[sync] {chain.value}: {stats.fetched} events from block {from_block}")

        self.state[chain] = SyncState.PROCESSING
        retry_from = None
        for kind, rows in pages.items():
            for raw in rows:
                event_id = raw.get("id") if isinstance(raw, dict) else None
                try:
                    result = self.pipeline.process_indexer_event(raw, chain, kind)
                except OperationalError as e:
                    stats.failed += 1
                    block = _block_of(raw)
                    if block is not None:
                        retry_from = block if retry_from is None else min(retry_from, block)
                    log.warning(f"[sync] {chain.value} {kind.value} {event_id}: database unavailable, will retry: {e}")
                    continue
                except (BridgeScopeError, SQLAlchemyError) as e:
                    stats.failed += 1
                    log.warning(f"[sync] {chain.value} {kind.value} {event_id}: skipped: {e}")
                    continue
                except Exception as e:
                    stats.failed += 1
                    log.exception(f"[sync] {chain.value} {kind.value} {event_id}: skipped after unexpected error: {e}")
                    continue
                if result.outcome is Outcome.EXISTING:
                    stats.skipped_existing += 1
                else:
                    stats.inserted += 1
                if result.new_token:
                    stats.new_tokens += 1

        next_block = _next_cursor(from_block, pages, self.page_size, retry_from)
        if next_block != from_block:
            with self.session_factory() as db:
                upsert_sync_cursor(db, chain.value, next_block)
                db.commit()
        return stats

    def tick(self) -> Dict[Chain, SyncStats]:
        results: Dict[Chain, SyncStats] = {}
        for chain in self.indexers:
            try:
                results[chain] = self.sync_chain(chain)
                log.info(f"[sync] {chain.value}: {results[chain].as_dict()}")
            except Exception as e:
                log.exception(f"[sync] {chain.value}: sync failed in {self.state[chain].value}: {e}")
                self.state[chain] = SyncState.IDLE

        for chain in results:
            self.state[chain] = SyncState.AGGREGATING
        try:
            aggregate_day(self.session_factory, self.cache)
        except Exception as e:
            log.exception(f"[sync] daily aggregation failed: {e}")
        finally:
            for chain in self.state:
                self.state[chain] = SyncState.IDLE
        return results

    def run_forever(self, interval: float = settings.SYNC_INTERVAL_SECONDS, stop: Optional[threading.Event] = None):
        """Tick, then wait out the rest of the interval. A slow tick delays the next one."""
        stop = stop or threading.Event()
        log.info(f"[sync] loop started, interval {interval}s, chains: {[c.value for c in self.indexers]}")
        while not stop.is_set():
            started = time.monotonic()
            self.tick()
            stop.wait(max(0.0, interval - (time.monotonic() - started)))
        log.info("[sync] loop stopped")
