import logging

from fastapi import APIRouter, Header, HTTPException
from fastapi.responses import JSONResponse

from bridgescope.config import settings
from bridgescope.container import get_services
from bridgescope.sync.refresh import refresh_recent_transfers
from bridgescope.utils.clock import utcnow
from bridgescope.utils.types import Chain

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/cron/sync")
def cron_sync(authorization: str = Header(None)):
    if not settings.CRON_SECRET or authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=401, detail="unauthorized")

    services = get_services()
    client = services.indexers.get(Chain.BASE)
    if client is None:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "SUBGRAPH_URL_BASE is not configured"},
        )

    try:
        result = refresh_recent_transfers(services.pipeline, client)
    except Exception as e:
        log.exception(f"[cron] refresh failed: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {"success": True, **result, "timestamp": utcnow().isoformat()}
