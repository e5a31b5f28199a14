from celery import shared_task
from redis import Redis
from redlock import Redlock
import logging

from bridgescope.config import settings
from bridgescope.container import get_services
from bridgescope.sync.reconciliation import ReconciliationSync

log = logging.getLogger(__name__)

# ── global Redis lock (only ONE reconciliation tick may run at a time) ──
LOCKER = Redlock([Redis.from_url(settings.LOCK_REDIS_URL)])

SYNC_LOCK_NAME = "bridgescope_reconcile_lock"
SYNC_LOCK_MS   = 10 * 60 * 1000    # upper bound on one tick

_sync = None


def _get_sync() -> ReconciliationSync:
    global _sync
    if _sync is None:
        services = get_services()
        _sync = ReconciliationSync(
            services.pipeline, services.session_factory, services.indexers, services.cache
        )
    return _sync


@shared_task(name="reconcile_bridge", queue="sync")
def reconcile_bridge():
    lock = LOCKER.lock(SYNC_LOCK_NAME, SYNC_LOCK_MS)
    if not lock:
        log.info("🔒 Previous reconciliation tick still running; skipping.")
        return None

    try:
        results = _get_sync().tick()
        return {chain.value: stats.as_dict() for chain, stats in results.items()}
    finally:
        LOCKER.unlock(lock)
