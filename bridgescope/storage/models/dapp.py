from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from bridgescope.storage.models.base import Base


class Dapp(Base):
    __tablename__ = "dapps"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    category = Column(String(32), nullable=False, default="OTHER")

    contracts = relationship("DappContract", back_populates="dapp", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Dapp {self.id}>"


class DappContract(Base):
    __tablename__ = "dapp_contracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dapp_id = Column(String(64), ForeignKey("dapps.id"), nullable=False)
    chain = Column(String(16), nullable=False)
    address = Column(Text, nullable=False)              # lowercased
    role = Column(String(32))

    dapp = relationship("Dapp", back_populates="contracts")

    # one dApp per address
    __table_args__ = (
        UniqueConstraint("address", name="uq_dapp_contracts_address"),
    )
