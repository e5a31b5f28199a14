import logging
from typing import Dict, List, Optional, Tuple

import backoff
import httpx

from bridgescope.config import settings

log = logging.getLogger(__name__)


class CoinGeckoClient:
    """Thin wrapper over the two CoinGecko endpoints the resolver needs.

    HTTP errors propagate; callers decide whether a failure is fatal.
    """

    def __init__(self, base_url: str = None, http: httpx.Client = None):
        self.base_url = (base_url or settings.COINGECKO_API_BASE).rstrip("/")
        self.http = http or httpx.Client()

    @backoff.on_exception(backoff.expo, httpx.TransportError, max_tries=2, jitter=None)
    def simple_price(self, coingecko_id: str) -> Optional[Dict]:
        resp = self.http.get(
            f"{self.base_url}/simple/price",
            params={
                "ids": coingecko_id,
                "vs_currencies": "usd",
                "include_24hr_vol": "true",
                "include_market_cap": "true",
            },
            timeout=settings.COINGECKO_PRICE_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json().get(coingecko_id)

    @backoff.on_exception(backoff.expo, httpx.TransportError, max_tries=2, jitter=None)
    def market_chart_range(self, coingecko_id: str, from_ts: int, to_ts: int) -> List[Tuple[int, float]]:
        """``[(timestamp_ms, price_usd), ...]`` between two unix timestamps."""
        resp = self.http.get(
            f"{self.base_url}/coins/{coingecko_id}/market_chart/range",
            params={"vs_currency": "usd", "from": from_ts, "to": to_ts},
            timeout=settings.COINGECKO_HISTORY_TIMEOUT,
        )
        resp.raise_for_status()
        prices = resp.json().get("prices") or []
        log.debug(f"[coingecko] {coingecko_id}: {len(prices)} samples in [{from_ts}, {to_ts}]")
        return [(int(ms), float(price)) for ms, price in prices]
