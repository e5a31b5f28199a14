from typing import Optional

from bridgescope.utils.address import canonical_address

# TTLs in seconds
TOKEN_METADATA_TTL = 24 * 60 * 60
TOKEN_PRICE_TTL = 5 * 60
TOKEN_PRICE_HISTORICAL_TTL = 60 * 60
GLOBAL_STATS_TTL = 60
DAPP_STATS_TTL = 5 * 60
RECENT_TRANSFERS_TTL = 10


def token_metadata(address: str) -> str:
    return f"token:meta:{canonical_address(address)}"


def token_price(address: str, timestamp_ms: Optional[int] = None) -> str:
    return f"token:price:{canonical_address(address)}:{timestamp_ms or 'latest'}"


def dapp_stats(dapp_id: str, timeframe: str) -> str:
    return f"dapp:stats:{dapp_id}:{timeframe}"


def global_stats(timeframe: str) -> str:
    return f"global:stats:{timeframe}"


def transfer_recent(limit: int, direction: Optional[str] = None) -> str:
    return f"transfers:recent:{limit}:{direction or 'all'}"


GLOBAL_STATS_PREFIX = "global:stats:"
DAPP_STATS_PREFIX = "dapp:stats:"
RECENT_TRANSFERS_PREFIX = "transfers:recent:"
