from datetime import datetime, timezone
from typing import Dict

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from bridgescope.storage.models.transfer import Transfer
from bridgescope.storage.models.token import Token
from bridgescope.storage.models.token_price import TokenPrice
from bridgescope.storage.models.stats import GlobalStats, DappStats
from bridgescope.storage.models.sync_cursor import SyncCursor


def dialect_insert(db: Session, model):
    """INSERT construct with ON CONFLICT support for the bound dialect."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model.__table__)
    return pg_insert(model.__table__)


def insert_transfer_if_absent(db: Session, row: Dict) -> bool:
    """Insert one transfer; a row with the same natural key is left untouched.

    Returns True when a new row was written.
    """
    stmt = (
        dialect_insert(db, Transfer).values(**row)
        .on_conflict_do_nothing(index_elements=["transaction_hash", "log_index"])
    )
    result = db.execute(stmt)
    return result.rowcount == 1


def upsert_transfer(db: Session, row: Dict) -> None:
    """Insert or refine derived fields; identity columns are never overwritten.

    A NULL price never replaces a known one.
    """
    table = Transfer.__table__
    stmt = dialect_insert(db, Transfer).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=["transaction_hash", "log_index"],
        set_={
            "amount_usd": func.coalesce(stmt.excluded.amount_usd, table.c.amount_usd),
            "price_usd_at_time": func.coalesce(stmt.excluded.price_usd_at_time, table.c.price_usd_at_time),
            "relayer": func.coalesce(stmt.excluded.relayer, table.c.relayer),
            "dapp_id": stmt.excluded.dapp_id,
            "attribution_confidence": stmt.excluded.attribution_confidence,
            "attribution_method": stmt.excluded.attribution_method,
            "updated_at": datetime.now(timezone.utc),
        },
    )
    db.execute(stmt)


def insert_token_if_absent(db: Session, row: Dict) -> bool:
    stmt = dialect_insert(db, Token).values(**row).on_conflict_do_nothing(index_elements=["id"])
    return db.execute(stmt).rowcount == 1


def insert_price_if_absent(db: Session, row: Dict) -> bool:
    stmt = (
        dialect_insert(db, TokenPrice).values(**row)
        .on_conflict_do_nothing(index_elements=["token_id", "timestamp"])
    )
    return db.execute(stmt).rowcount == 1


def upsert_global_stats(db: Session, row: Dict) -> None:
    stmt = dialect_insert(db, GlobalStats).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=["date", "period"],
        set_={k: stmt.excluded[k] for k in row if k not in ("date", "period")},
    )
    db.execute(stmt)


def upsert_dapp_stats(db: Session, row: Dict) -> None:
    stmt = dialect_insert(db, DappStats).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=["dapp_id", "date", "period"],
        set_={k: stmt.excluded[k] for k in row if k not in ("dapp_id", "date", "period")},
    )
    db.execute(stmt)


def upsert_sync_cursor(db: Session, chain: str, next_block: int) -> None:
    stmt = dialect_insert(db, SyncCursor).values(chain=chain, next_block=next_block)
    stmt = stmt.on_conflict_do_update(
        index_elements=["chain"],
        set_={"next_block": stmt.excluded.next_block, "updated_at": datetime.now(timezone.utc)},
    )
    db.execute(stmt)
