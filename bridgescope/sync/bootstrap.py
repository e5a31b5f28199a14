import logging

from sqlalchemy.exc import SQLAlchemyError

from bridgescope.container import Services
from bridgescope.storage.db import ping
from bridgescope.storage.migrate import run_migrations, sync_dapp_registry
from bridgescope.sync.reconciliation import ReconciliationSync
from bridgescope.utils.errors import FatalStartupError
from bridgescope.utils.types import Chain

log = logging.getLogger(__name__)


def bootstrap(services: Services, engine) -> ReconciliationSync:
    """Checks the sync process cannot run without, then migrations and the dApp registry."""
    if Chain.BASE not in services.indexers:
        raise FatalStartupError("SUBGRAPH_URL_BASE is not configured")
    try:
        ping(engine)
    except SQLAlchemyError as e:
        raise FatalStartupError(f"database unreachable: {e}") from e
    log.info("✅ Database connected.")

    run_migrations(engine)
    with services.session_factory() as db:
        sync_dapp_registry(db, services.registry)

    return ReconciliationSync(
        services.pipeline, services.session_factory, services.indexers, services.cache
    )
