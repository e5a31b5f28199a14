"""
Ledger-chain webhook processing.

The API verifies and enqueues; a Celery worker on the ``ingest`` queue
runs each payload's transactions one after another. The worker pool size
bounds how many payloads are processed at once.
"""
import logging
from typing import Any, Dict, List, NamedTuple

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from bridgescope.celery.celery_app import celery_app
from bridgescope.container import get_services
from bridgescope.normalizer.schemas import LedgerTransaction
from bridgescope.pipeline.pipeline import Outcome, TransferPipeline
from bridgescope.utils.errors import BridgeScopeError

log = logging.getLogger(__name__)


class IngestReport(NamedTuple):
    processed: int = 0
    discarded: int = 0
    failed: int = 0


def extract_transactions(body: Any) -> List[Dict]:
    """Raw transaction dicts from ``{"transactions": [...]}`` or a bare list."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("transactions"), list):
        return body["transactions"]
    raise ValueError("payload is neither a list nor an object with a transactions list")


def handle_payload(pipeline: TransferPipeline, body: Any) -> IngestReport:
    """Run every transaction through the pipeline; a failing one never stops its siblings."""
    processed = discarded = failed = 0
    for raw in extract_transactions(body):
        signature = raw.get("signature") if isinstance(raw, dict) else None
        try:
            tx = LedgerTransaction.model_validate(raw)
            result = pipeline.process_ledger_transaction(tx)
        except (ValidationError, BridgeScopeError, SQLAlchemyError) as e:
            failed += 1
            log.error(f"[ingest] SOLANA {signature}: failed: {e}")
            continue
        except Exception as e:
            failed += 1
            log.exception(f"[ingest] SOLANA {signature}: unexpected failure: {e}")
            continue
        if result.outcome is Outcome.DISCARDED:
            discarded += 1
        else:
            processed += 1

    report = IngestReport(processed, discarded, failed)
    log.info(f"[ingest] payload done: {report._asdict()}")
    return report


@celery_app.task(name="process_ledger_payload", queue="ingest")
def process_ledger_payload(body):
    return handle_payload(get_services().pipeline, body)._asdict()


def enqueue_payload(body) -> None:
    process_ledger_payload.apply_async(args=[body], queue="ingest")
