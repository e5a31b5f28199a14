from sqlalchemy import Column, Integer, Numeric, String, Date, TIMESTAMP, UniqueConstraint, func
from bridgescope.storage.models.base import Base


class GlobalStats(Base):
    __tablename__ = "global_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    period = Column(String(16), nullable=False, default="DAILY")

    volume_usd = Column(Numeric(38, 8), nullable=False, default=0)
    transfer_count = Column(Integer, nullable=False, default=0)
    unique_users = Column(Integer, nullable=False, default=0)
    active_dapps = Column(Integer, nullable=False, default=0)

    contract_to_ledger_volume = Column(Numeric(38, 8), nullable=False, default=0)
    contract_to_ledger_count = Column(Integer, nullable=False, default=0)
    ledger_to_contract_volume = Column(Numeric(38, 8), nullable=False, default=0)
    ledger_to_contract_count = Column(Integer, nullable=False, default=0)

    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("date", "period", name="uq_global_stats_date_period"),
    )


class DappStats(Base):
    __tablename__ = "dapp_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dapp_id = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    period = Column(String(16), nullable=False, default="DAILY")

    volume_usd = Column(Numeric(38, 8), nullable=False, default=0)
    volume_token = Column(Numeric(38, 18), nullable=False, default=0)
    transfer_count = Column(Integer, nullable=False, default=0)
    unique_users = Column(Integer, nullable=False, default=0)

    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("dapp_id", "date", "period", name="uq_dapp_stats_dapp_date_period"),
    )
