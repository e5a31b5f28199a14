from sqlalchemy import (
    Column, Integer, BigInteger, Numeric, Text, String, SmallInteger,
    TIMESTAMP as TIMESTAMPTZ, Index, UniqueConstraint, func,
)
from bridgescope.storage.models.base import Base


class Transfer(Base):
    """Canonical bridge transfer, one row per (transaction_hash, log_index)."""
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ─── identity (immutable once written) ───────────────────────────────
    transaction_hash = Column(Text, nullable=False)
    log_index = Column(Integer, nullable=False)
    chain = Column(String(16), nullable=False)
    direction = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    block_number = Column(BigInteger, nullable=False)
    block_timestamp = Column(TIMESTAMPTZ(timezone=True), nullable=False)

    sender = Column(Text)                       # NULL when the source has no sender
    recipient = Column(Text)
    token_address = Column(Text)                # lowercased, NULL if unknown
    remote_token = Column(Text)
    program_id = Column(Text)                   # ledger chain only
    amount = Column(Text)                       # raw integer as string
    amount_normalized = Column(Numeric(38, 18))

    # ─── derived (may be refined by the live paths) ──────────────────────
    amount_usd = Column(Numeric(38, 8))
    price_usd_at_time = Column(Numeric(38, 18))
    relayer = Column(Text)
    dapp_id = Column(String(64))
    attribution_confidence = Column(SmallInteger, nullable=False, default=0)
    attribution_method = Column(String(32), nullable=False, default="UNKNOWN")

    created_at = Column(TIMESTAMPTZ(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMPTZ(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("transaction_hash", "log_index", name="uq_transfers_tx_log"),
        Index("ix_transfers_chain_block", "chain", "block_number"),
        Index("ix_transfers_block_timestamp", "block_timestamp"),
        Index("ix_transfers_dapp", "dapp_id"),
    )

    def __repr__(self) -> str:
        return f"<Transfer {self.chain} {self.transaction_hash}#{self.log_index} {self.direction}>"
