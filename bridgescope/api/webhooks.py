import json
import logging

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import ValidationError

from bridgescope.config import settings
from bridgescope.ingestion import worker
from bridgescope.ingestion.signature import verify_signature
from bridgescope.normalizer.schemas import WebhookPayload

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/solana")
async def solana_webhook(request: Request, x_helius_signature: str = Header(None)):
    raw = await request.body()
    if not verify_signature(settings.HELIUS_WEBHOOK_SECRET, raw, x_helius_signature):
        log.warning("[webhook] rejected: bad or missing signature")
        raise HTTPException(status_code=401, detail="invalid signature")

    try:
        body = json.loads(raw)
        payload = WebhookPayload.parse(body)
    except (ValueError, ValidationError) as e:
        log.warning(f"[webhook] rejected: malformed body: {e}")
        raise HTTPException(status_code=400, detail="malformed payload")

    worker.enqueue_payload(body)
    log.info(f"[webhook] queued {len(payload.transactions)} transactions")
    return {"status": "queued"}
