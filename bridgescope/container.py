"""
Process-wide service wiring.

Each entry point (API, Celery worker, CLI) builds the services once and
hands them to request handlers and tasks through ``get_services``.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from bridgescope.attribution.registry import DappRegistry
from bridgescope.cache.client import CacheClient, build_cache
from bridgescope.config import settings
from bridgescope.pipeline.pipeline import TransferPipeline
from bridgescope.pricing.coingecko import CoinGeckoClient
from bridgescope.pricing.resolver import PriceResolver
from bridgescope.sources.base_chain.token_meta import TokenMetadataResolver
from bridgescope.sources.subgraph.client import SubgraphClient
from bridgescope.utils.types import Chain

log = logging.getLogger(__name__)


@dataclass
class Services:
    session_factory: Callable
    cache: CacheClient
    registry: DappRegistry
    prices: PriceResolver
    token_meta: TokenMetadataResolver
    pipeline: TransferPipeline
    indexers: Dict[Chain, SubgraphClient]


_services: Optional[Services] = None


def build_indexers() -> Dict[Chain, SubgraphClient]:
    indexers = {}
    if settings.SUBGRAPH_URL_BASE:
        indexers[Chain.BASE] = SubgraphClient(settings.SUBGRAPH_URL_BASE)
    if settings.SUBGRAPH_URL_SOLANA:
        indexers[Chain.SOLANA] = SubgraphClient(settings.SUBGRAPH_URL_SOLANA)
    return indexers


def build_services(
    session_factory: Callable,
    cache: CacheClient = None,
    registry: DappRegistry = None,
    coingecko: CoinGeckoClient = None,
    token_meta: TokenMetadataResolver = None,
    indexers: Dict[Chain, SubgraphClient] = None,
) -> Services:
    cache = cache or build_cache()
    registry = registry or DappRegistry.from_config()
    prices = PriceResolver(session_factory, cache, coingecko or CoinGeckoClient())
    token_meta = token_meta or TokenMetadataResolver(cache=cache)
    pipeline = TransferPipeline(session_factory, prices, token_meta, registry, cache)
    return Services(
        session_factory=session_factory,
        cache=cache,
        registry=registry,
        prices=prices,
        token_meta=token_meta,
        pipeline=pipeline,
        indexers=build_indexers() if indexers is None else indexers,
    )


def init_services(worker: bool = False) -> Services:
    from bridgescope.storage.db import SessionLocal, WorkerSessionLocal

    services = build_services(WorkerSessionLocal if worker else SessionLocal)
    set_services(services)
    log.info(f"Services ready (indexers: {', '.join(c.value for c in services.indexers) or 'none'})")
    return services


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services


def get_services() -> Services:
    if _services is None:
        raise RuntimeError("services not initialised; call init_services() first")
    return _services
