from sqlalchemy import Column, String, Text, Boolean, SmallInteger, TIMESTAMP, func
from bridgescope.storage.models.base import Base


class Token(Base):
    __tablename__ = "tokens"

    id = Column(Text, primary_key=True)                 # 0x addresses lowercased, mints as-is
    chain = Column(String(16), nullable=False)
    symbol = Column(String(64), nullable=False)
    name = Column(Text)
    decimals = Column(SmallInteger, nullable=False)     # never rewritten
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Token {self.symbol} {self.id} dec={self.decimals}>"
