import logging
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from bridgescope.config import settings
from bridgescope.pipeline.pipeline import TransferPipeline
from bridgescope.sources.subgraph.client import SubgraphClient
from bridgescope.utils.clock import utcnow
from bridgescope.utils.errors import BridgeScopeError
from bridgescope.utils.types import Chain, EventKind

log = logging.getLogger(__name__)


def refresh_recent_transfers(
    pipeline: TransferPipeline,
    client: SubgraphClient,
    lookback_seconds: int = settings.CRON_LOOKBACK_SECONDS,
    limit: int = settings.CRON_REFRESH_LIMIT,
) -> Dict:
    """Re-run recently finalized Base transfers through the refine path.

    Existing rows get their price and attribution refreshed; missing rows are
    created. Per-record failures are counted, not raised.
    """
    since = int(utcnow().timestamp()) - lookback_seconds
    events = client.fetch_recent(EventKind.FINALIZED, since, limit)
    log.info(f"[cron] {len(events)} finalized transfers since {since}")

    synced = errors = 0
    for raw in events:
        try:
            pipeline.process_indexer_event(raw, Chain.BASE, EventKind.FINALIZED, refine=True)
            synced += 1
        except (BridgeScopeError, SQLAlchemyError) as e:
            errors += 1
            log.warning(f"[cron] {raw.get('id')}: refresh failed: {e}")

    return {"synced": synced, "errors": errors}
