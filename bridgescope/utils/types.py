from enum import Enum
from typing import NamedTuple, Optional
from datetime import datetime
from decimal import Decimal


class Chain(str, Enum):
    BASE = "BASE"          # contract chain
    SOLANA = "SOLANA"      # ledger chain


class Direction(str, Enum):
    CONTRACT_TO_LEDGER = "CONTRACT_TO_LEDGER"
    LEDGER_TO_CONTRACT = "LEDGER_TO_CONTRACT"


class TransferStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class EventKind(str, Enum):
    INITIATED = "INITIATED"
    FINALIZED = "FINALIZED"


class PriceSource(str, Enum):
    CHAINLINK = "CHAINLINK"
    COINGECKO = "COINGECKO"
    PYTH = "PYTH"
    ESTIMATED = "ESTIMATED"
    MANUAL = "MANUAL"


class AttributionMethod(str, Enum):
    TARGET_CONTRACT = "TARGET_CONTRACT"
    RELAYER = "RELAYER"
    PRECEDING_TX = "PRECEDING_TX"
    WALLET_LABEL = "WALLET_LABEL"
    UNKNOWN = "UNKNOWN"


class PricePoint(NamedTuple):
    price_usd: Decimal
    timestamp: datetime
    source: PriceSource
    volume_24h: Optional[Decimal] = None
    market_cap: Optional[Decimal] = None

    def to_json(self) -> dict:
        return {
            "price_usd": str(self.price_usd),
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
            "volume_24h": str(self.volume_24h) if self.volume_24h is not None else None,
            "market_cap": str(self.market_cap) if self.market_cap is not None else None,
        }

    @classmethod
    def from_json(cls, data: dict) -> "PricePoint":
        return cls(
            price_usd=Decimal(data["price_usd"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            source=PriceSource(data["source"]),
            volume_24h=Decimal(data["volume_24h"]) if data.get("volume_24h") is not None else None,
            market_cap=Decimal(data["market_cap"]) if data.get("market_cap") is not None else None,
        )
