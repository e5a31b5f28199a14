from sqlalchemy import Column, BigInteger, String, TIMESTAMP, func
from bridgescope.storage.models.base import Base


class SyncCursor(Base):
    """Next subgraph block reconciliation reads for a chain.

    Only reconciliation moves it; webhook rows share the transfers table
    and must not hide gaps below them.
    """
    __tablename__ = "sync_cursors"

    chain = Column(String(16), primary_key=True)
    next_block = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<SyncCursor {self.chain} @{self.next_block}>"
