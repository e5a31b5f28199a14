from unittest.mock import MagicMock

from bridgescope.cache import keys
from bridgescope.sources.base_chain.token_meta import TokenMeta, TokenMetadataResolver

from conftest import USDC


def _w3(symbol="USDC", decimals=6, name="USD Coin", fail=False):
    w3 = MagicMock()
    functions = w3.eth.contract.return_value.functions
    if fail:
        functions.symbol.return_value.call.side_effect = ValueError("execution reverted")
    functions.symbol.return_value.call.return_value = symbol
    functions.decimals.return_value.call.return_value = decimals
    functions.name.return_value.call.return_value = name
    return w3


def test_resolves_once_and_caches_forever(cache):
    w3 = _w3()
    factory = MagicMock(return_value=w3)
    resolver = TokenMetadataResolver(w3_factory=factory, cache=cache)

    first = resolver.resolve(USDC)
    second = resolver.resolve(USDC.upper().replace("0X", "0x"))

    assert first == TokenMeta(symbol="USDC", decimals=6, name="USD Coin")
    assert second is first
    assert factory.call_count == 1
    assert cache.get_json(keys.token_metadata(USDC)) == {"symbol": "USDC", "decimals": 6, "name": "USD Coin"}


def test_failed_read_is_remembered_and_not_retried(cache):
    w3 = _w3(fail=True)
    resolver = TokenMetadataResolver(w3_factory=lambda: w3, cache=cache)

    assert not resolver.has_tried(USDC)
    assert resolver.resolve(USDC) is None
    assert resolver.has_tried(USDC)
    assert resolver.resolve(USDC) is None
    assert w3.eth.contract.return_value.functions.symbol.return_value.call.call_count == 1
    assert cache.get_json(keys.token_metadata(USDC)) is None


def test_shared_cache_hit_skips_chain_read(cache):
    cache.set_json(keys.token_metadata(USDC), {"symbol": "USDC", "decimals": 6, "name": None}, keys.TOKEN_METADATA_TTL)
    factory = MagicMock()

    meta = TokenMetadataResolver(w3_factory=factory, cache=cache).resolve(USDC)

    assert meta.decimals == 6
    factory.assert_not_called()


def test_name_falls_back_to_symbol():
    w3 = _w3(name="")
    meta = TokenMetadataResolver(w3_factory=lambda: w3).resolve(USDC)

    assert meta.name == "USDC"
