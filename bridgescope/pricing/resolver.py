import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bridgescope.cache import keys
from bridgescope.cache.client import CacheClient
from bridgescope.config.constants import KNOWN_TOKENS
from bridgescope.normalizer.transfer import normalize_amount
from bridgescope.pricing.coingecko import CoinGeckoClient
from bridgescope.storage.models.token_price import TokenPrice
from bridgescope.storage.upsert import insert_price_if_absent
from bridgescope.utils.address import canonical_address
from bridgescope.utils.clock import as_utc, to_ms, utcnow
from bridgescope.utils.types import PricePoint, PriceSource

log = logging.getLogger(__name__)

CURRENT_MAX_AGE = timedelta(minutes=5)
HISTORICAL_DB_WINDOW = timedelta(minutes=30)
HISTORICAL_FETCH_WINDOW_SECONDS = 60 * 60
BATCH_SIZE = 10


def _dec(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class PriceResolver:
    """USD prices for tokens: cache, then stored observations, then CoinGecko.

    Every lookup degrades to ``None``. A missing price never raises into the
    ingestion path.
    """

    def __init__(
        self,
        session_factory: Callable,
        cache: CacheClient,
        client: CoinGeckoClient = None,
        known_tokens: Dict[str, Dict] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.client = client or CoinGeckoClient()
        source = KNOWN_TOKENS if known_tokens is None else known_tokens
        self.known_tokens = {canonical_address(addr): dict(info) for addr, info in source.items()}
        self._now = now

    def register_known_token(self, address: str, coingecko_id: str, symbol: str) -> None:
        self.known_tokens[canonical_address(address)] = {"coingecko_id": coingecko_id, "symbol": symbol}

    def coingecko_id(self, address: str) -> Optional[str]:
        info = self.known_tokens.get(canonical_address(address))
        return info["coingecko_id"] if info else None

    # --- current -------------------------------------------------------

    def get_current_price(self, token_address: str) -> Optional[PricePoint]:
        addr = canonical_address(token_address)
        key = keys.token_price(addr)
        cached = self.cache.get_json(key)
        if cached:
            return PricePoint.from_json(cached)

        price = self._stored_recent(addr)
        if price is None:
            price = self._fetch_current(addr)
            if price is not None:
                self._persist(addr, price)

        if price is not None:
            self.cache.set_json(key, price.to_json(), keys.TOKEN_PRICE_TTL)
        return price

    def _stored_recent(self, addr: str) -> Optional[PricePoint]:
        cutoff = self._now() - CURRENT_MAX_AGE
        try:
            with self.session_factory() as db:
                row = db.execute(
                    select(TokenPrice)
                    .where(TokenPrice.token_id == addr, TokenPrice.timestamp >= cutoff)
                    .order_by(TokenPrice.timestamp.desc())
                    .limit(1)
                ).scalars().first()
                return self._to_point(row) if row else None
        except SQLAlchemyError as e:
            log.error(f"[price] stored price lookup failed for {addr}: {e}")
            return None

    def _fetch_current(self, addr: str) -> Optional[PricePoint]:
        cg_id = self.coingecko_id(addr)
        if not cg_id:
            log.debug(f"[price] no price source for {addr}")
            return None
        try:
            data = self.client.simple_price(cg_id)
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"[price] current price fetch failed for {addr} ({cg_id}): {e}")
            return None
        if not data or data.get("usd") is None:
            return None
        return PricePoint(
            price_usd=_dec(data["usd"]),
            timestamp=self._now(),
            source=PriceSource.COINGECKO,
            volume_24h=_dec(data.get("usd_24h_vol")),
            market_cap=_dec(data.get("usd_market_cap")),
        )

    # --- historical ----------------------------------------------------

    def get_historical_price(self, token_address: str, at: datetime) -> Optional[PricePoint]:
        addr = canonical_address(token_address)
        at = as_utc(at)
        key = keys.token_price(addr, to_ms(at))
        cached = self.cache.get_json(key)
        if cached:
            return PricePoint.from_json(cached)

        price = self._stored_near(addr, at)
        if price is None:
            price = self._fetch_historical(addr, at)
            if price is not None:
                self._persist(addr, price)

        if price is None:
            log.warning(f"[price] no historical price for {addr} at {at.isoformat()}")
            return None
        self.cache.set_json(key, price.to_json(), keys.TOKEN_PRICE_HISTORICAL_TTL)
        return price

    def _stored_near(self, addr: str, at: datetime) -> Optional[PricePoint]:
        try:
            with self.session_factory() as db:
                row = db.execute(
                    select(TokenPrice)
                    .where(
                        TokenPrice.token_id == addr,
                        TokenPrice.timestamp >= at - HISTORICAL_DB_WINDOW,
                        TokenPrice.timestamp <= at + HISTORICAL_DB_WINDOW,
                    )
                    .order_by(TokenPrice.timestamp.asc())
                    .limit(1)
                ).scalars().first()
                return self._to_point(row) if row else None
        except SQLAlchemyError as e:
            log.error(f"[price] stored historical lookup failed for {addr}: {e}")
            return None

    def _fetch_historical(self, addr: str, at: datetime) -> Optional[PricePoint]:
        cg_id = self.coingecko_id(addr)
        if not cg_id:
            return None
        ts = int(at.timestamp())
        try:
            samples = self.client.market_chart_range(
                cg_id, ts - HISTORICAL_FETCH_WINDOW_SECONDS, ts + HISTORICAL_FETCH_WINDOW_SECONDS
            )
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"[price] historical fetch failed for {addr} ({cg_id}): {e}")
            return None
        if not samples:
            return None

        target_ms = ts * 1000
        sample_ms, price = min(samples, key=lambda s: abs(s[0] - target_ms))
        return PricePoint(
            price_usd=_dec(price),
            timestamp=datetime.fromtimestamp(sample_ms / 1000, tz=timezone.utc),
            source=PriceSource.COINGECKO,
        )

    # --- helpers -------------------------------------------------------

    def calculate_usd_value(
        self, token_address: str, raw_amount, decimals: int, at: datetime = None
    ) -> Optional[Decimal]:
        amount = normalize_amount(raw_amount, decimals)
        if amount is None:
            return None
        price = self.get_historical_price(token_address, at) if at else self.get_current_price(token_address)
        if price is None:
            return None
        return amount * price.price_usd

    def get_batch_prices(self, token_addresses: Iterable[str]) -> Dict[str, PricePoint]:
        """Current prices for many tokens, ``BATCH_SIZE`` lookups in flight at a time."""
        addresses: List[str] = list(dict.fromkeys(canonical_address(a) for a in token_addresses))
        result: Dict[str, PricePoint] = {}
        with ThreadPoolExecutor(max_workers=BATCH_SIZE) as pool:
            for i in range(0, len(addresses), BATCH_SIZE):
                chunk = addresses[i:i + BATCH_SIZE]
                for addr, price in zip(chunk, pool.map(self.get_current_price, chunk)):
                    if price is not None:
                        result[addr] = price
        return result

    def _persist(self, addr: str, price: PricePoint) -> None:
        row = {
            "token_id": addr,
            "timestamp": price.timestamp,
            "price_usd": price.price_usd,
            "source": price.source.value,
            "volume_24h": price.volume_24h,
            "market_cap": price.market_cap,
        }
        with self.session_factory() as db:
            try:
                insert_price_if_absent(db, row)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                log.error(f"[price] failed to store price for {addr}: {e}")

    @staticmethod
    def _to_point(row: TokenPrice) -> PricePoint:
        return PricePoint(
            price_usd=_dec(row.price_usd),
            timestamp=as_utc(row.timestamp),
            source=PriceSource(row.source),
            volume_24h=_dec(row.volume_24h),
            market_cap=_dec(row.market_cap),
        )
