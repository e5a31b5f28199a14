import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import case, distinct, func, select
from sqlalchemy.orm import Session

from bridgescope.cache import keys
from bridgescope.cache.client import CacheClient
from bridgescope.storage.models.transfer import Transfer
from bridgescope.storage.upsert import upsert_dapp_stats, upsert_global_stats
from bridgescope.utils.clock import day_window, utcnow
from bridgescope.utils.types import Direction

log = logging.getLogger(__name__)

PERIOD_DAILY = "DAILY"


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _volume(expr):
    return func.coalesce(func.sum(expr), 0)


def _direction_columns(direction: Direction):
    hit = Transfer.direction == direction.value
    return (
        _volume(case((hit, Transfer.amount_usd), else_=None)),
        func.coalesce(func.sum(case((hit, 1), else_=0)), 0),
    )


def rebuild_daily_stats(db: Session, day: date = None) -> Tuple[Dict, List[Dict]]:
    """Recompute GlobalStats and per-dApp DappStats for one UTC day.

    Rows are derived only from ``transfers``; rerunning for the same day
    overwrites the previous figures. Transfers without a USD value count
    toward ``transfer_count`` but add nothing to volume.
    """
    day = day or utcnow().date()
    start, end = day_window(day)
    in_day = (Transfer.block_timestamp >= start, Transfer.block_timestamp < end)

    c2l_volume, c2l_count = _direction_columns(Direction.CONTRACT_TO_LEDGER)
    l2c_volume, l2c_count = _direction_columns(Direction.LEDGER_TO_CONTRACT)
    totals = db.execute(
        select(
            _volume(Transfer.amount_usd),
            func.count(Transfer.id),
            func.count(distinct(Transfer.sender)),
            func.count(distinct(Transfer.dapp_id)),
            c2l_volume, c2l_count, l2c_volume, l2c_count,
        ).where(*in_day)
    ).one()

    global_row = {
        "date": day,
        "period": PERIOD_DAILY,
        "volume_usd": _dec(totals[0]),
        "transfer_count": totals[1],
        "unique_users": totals[2],
        "active_dapps": totals[3],
        "contract_to_ledger_volume": _dec(totals[4]),
        "contract_to_ledger_count": totals[5],
        "ledger_to_contract_volume": _dec(totals[6]),
        "ledger_to_contract_count": totals[7],
        "updated_at": utcnow(),
    }
    upsert_global_stats(db, global_row)

    per_dapp = db.execute(
        select(
            Transfer.dapp_id,
            _volume(Transfer.amount_usd),
            _volume(Transfer.amount_normalized),
            func.count(Transfer.id),
            func.count(distinct(Transfer.sender)),
        )
        .where(*in_day, Transfer.dapp_id.isnot(None))
        .group_by(Transfer.dapp_id)
    ).all()

    dapp_rows = []
    for dapp_id, volume_usd, volume_token, count, users in per_dapp:
        row = {
            "dapp_id": dapp_id,
            "date": day,
            "period": PERIOD_DAILY,
            "volume_usd": _dec(volume_usd),
            "volume_token": _dec(volume_token),
            "transfer_count": count,
            "unique_users": users,
            "updated_at": utcnow(),
        }
        upsert_dapp_stats(db, row)
        dapp_rows.append(row)

    db.commit()
    log.info(
        f"[stats] {day}: ${global_row['volume_usd']:.2f} over {global_row['transfer_count']} transfers, "
        f"{len(dapp_rows)} dApps"
    )
    return global_row, dapp_rows


def aggregate_day(session_factory, cache: CacheClient, day: date = None) -> Tuple[Dict, List[Dict]]:
    """Rebuild one day's rollups and drop the cached stats views that read them."""
    with session_factory() as db:
        result = rebuild_daily_stats(db, day)
    cache.invalidate_prefix(keys.GLOBAL_STATS_PREFIX)
    cache.invalidate_prefix(keys.DAPP_STATS_PREFIX)
    return result
