# bridgescope/main.py
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
import logging

from bridgescope.api import api
from bridgescope.container import init_services
from bridgescope.storage.db import engine, ping
from bridgescope.storage.migrate import run_migrations, sync_dapp_registry
from bridgescope.utils.logging_config import configure_logging

configure_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="bridgescope")

# webhook, cron and health routes
app.include_router(api.router, prefix="/api")


@app.on_event("startup")
def startup():
    services = init_services()
    try:
        ping(engine)
        log.info("✅ Database connected.")
    except SQLAlchemyError as e:
        log.error(f"❌ DB connection failed: {e}")
        return
    run_migrations(engine)
    with services.session_factory() as db:
        sync_dapp_registry(db, services.registry)
