from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from bridgescope.utils.errors import NormalizationError
from bridgescope.utils.types import Chain, Direction, EventKind, TransferStatus

UINT256_DIGITS = 78


@dataclass
class NormalizedTransfer:
    """Chain-agnostic transfer before token resolution, pricing and attribution."""
    transaction_hash: str
    log_index: int
    chain: Chain
    kind: EventKind
    direction: Direction
    status: TransferStatus
    block_number: int
    block_timestamp: datetime
    sender: Optional[str] = None
    recipient: Optional[str] = None
    token_address: Optional[str] = None
    remote_token: Optional[str] = None
    raw_amount: Optional[str] = None
    decimals: Optional[int] = None       # decimals reported by the payload, if any
    relayer: Optional[str] = None
    program_id: Optional[str] = None

    @property
    def natural_key(self):
        return self.transaction_hash, self.log_index


def normalize_amount(raw_amount: Union[str, int, None], decimals: int) -> Optional[Decimal]:
    """Raw integer amount → token units. ``"1000000"`` with 6 decimals → ``Decimal("1")``."""
    if raw_amount is None:
        return None
    try:
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            return Decimal(str(raw_amount)).scaleb(-int(decimals))
    except (InvalidOperation, ValueError):
        return None


def from_unix(seconds) -> datetime:
    """Unix seconds → aware UTC datetime; out-of-range values are a malformed record."""
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise NormalizationError(f"unusable timestamp {seconds!r}: {e}") from e
