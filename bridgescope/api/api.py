import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bridgescope.api import cron, webhooks
from bridgescope.container import get_services

log = logging.getLogger(__name__)

router = APIRouter()
router.include_router(webhooks.router)
router.include_router(cron.router)


@router.get("/health")
def health():
    services = get_services()
    try:
        with services.session_factory() as db:
            db.execute(text("SELECT 1"))
        database = True
    except SQLAlchemyError as e:
        log.error(f"[health] DB check failed: {e}")
        database = False
    return {
        "status": "ok" if database else "degraded",
        "database": database,
        "indexers": sorted(chain.value for chain in services.indexers),
    }
