from sqlalchemy import Column, Integer, Numeric, String, Text, TIMESTAMP, UniqueConstraint, Index, func
from bridgescope.storage.models.base import Base


class TokenPrice(Base):
    __tablename__ = "token_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_id = Column(Text, nullable=False)
    timestamp = Column(TIMESTAMP(timezone=True), nullable=False)
    price_usd = Column(Numeric(38, 18), nullable=False)
    source = Column(String(16), nullable=False)         # CHAINLINK | COINGECKO | PYTH | ESTIMATED | MANUAL
    volume_24h = Column(Numeric(38, 2))
    market_cap = Column(Numeric(38, 2))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("token_id", "timestamp", name="uq_token_prices_token_ts"),
        Index("ix_token_prices_token_ts", "token_id", "timestamp"),
    )
