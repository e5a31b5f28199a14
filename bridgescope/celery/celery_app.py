# celery_app.py  ─────────────────────────────────────────────────────────
from celery import Celery
from celery.signals import worker_process_init

from bridgescope.config import settings
from bridgescope.utils.logging_config import configure_logging

# ── 1.  Broker / backend  ────────────────────────────────────
celery_app = Celery(
    "bridgescope",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# ── 2.  Core config, routing & worker pool ─────────────────
celery_app.conf.update(
    task_serializer       ='json',
    result_serializer     ='json',
    accept_content        =['json'],
    timezone              ='UTC',
    enable_utc            =True,

    # --- persistent beat schedule
    beat_scheduler        ="redbeat.RedBeatScheduler",
    redbeat_redis_url     =settings.LOCK_REDIS_URL,

    # --- ingest pool: at most INGEST_CONCURRENCY payloads in flight
    worker_concurrency          = settings.INGEST_CONCURRENCY,
    worker_prefetch_multiplier  = 1,
    task_acks_late              = True,

    # --- recycle workers to avoid long‑lived memory creep
    worker_max_tasks_per_child = 200,
)

celery_app.conf.task_routes = {
    "process_ledger_payload": {"queue": "ingest"},
    "reconcile_bridge":       {"queue": "sync"},
}

# ── 3.  Beat schedule: reconciliation tick ─────────────────
celery_app.conf.beat_schedule = {
    "reconcile-bridge": {
        "task": "reconcile_bridge",
        "schedule": float(settings.SYNC_INTERVAL_SECONDS),
        "options": {"queue": "sync", "expires": settings.SYNC_INTERVAL_SECONDS},
    }
}

# ── 4.  Logging ────────────────────────────────────────────
celery_app.conf.worker_hijack_root_logger = False
configure_logging()


# ── 5.  Per-process services (after fork) ──────────────────
@worker_process_init.connect
def _init_worker_services(**_):
    from bridgescope.container import init_services
    init_services(worker=True)


# ── 6.  *Keep* task modules so Celery registers them ───────
import bridgescope.ingestion.worker     # noqa: E402,F401
import bridgescope.scheduler.dispatcher  # noqa: E402,F401
