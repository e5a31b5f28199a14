from datetime import datetime, timezone, date, timedelta
from typing import Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes coming back from stores that drop tzinfo."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def to_ms(dt: datetime) -> int:
    return int(as_utc(dt).timestamp() * 1000)


def day_window(day: date) -> Tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
