import logging

from sqlalchemy.orm import Session

from bridgescope.attribution.registry import DappRegistry
from bridgescope.storage.models.base import Base
from bridgescope.storage.models import transfer, token, token_price, dapp as dapp_models, stats, sync_cursor  # noqa: F401  (register tables)
from bridgescope.storage.models.dapp import Dapp, DappContract

log = logging.getLogger(__name__)


def run_migrations(engine) -> None:
    """Create missing tables. Runs once at startup, never on the write path."""
    Base.metadata.create_all(engine)
    log.info("✅ Schema up to date")


def sync_dapp_registry(db: Session, registry: DappRegistry) -> int:
    """Mirror the in-code dApp registry into the dapps / dapp_contracts tables."""
    for entry in registry.dapps.values():
        row = db.get(Dapp, entry.id)
        if row is None:
            row = Dapp(id=entry.id)
            db.add(row)
        row.name = entry.name
        row.category = entry.category

        existing = {c.address: c for c in row.contracts}
        wanted = {c.address.lower(): c for c in entry.contracts}
        for address, contract in wanted.items():
            if address in existing:
                existing[address].chain = contract.chain
                existing[address].role = contract.role
            else:
                row.contracts.append(
                    DappContract(chain=contract.chain, address=address, role=contract.role)
                )
        for address, stale in existing.items():
            if address not in wanted:
                row.contracts.remove(stale)
    db.commit()
    log.info(f"Synced {len(registry.dapps)} dApps into registry tables")
    return len(registry.dapps)
