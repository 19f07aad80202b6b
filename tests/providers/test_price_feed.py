from decimal import Decimal

import httpx
import pytest

from dexroute.core.errors import UnsupportedError, UpstreamUnavailableError
from dexroute.providers.prices import DEFAULT_PRICE_TOKENS, TokenPriceFeed

from conftest import BASE, PULSE, SONIC

PLSX = "0x95B303987A60C71504D99Aa1b13B4DA07b0790ab"


def price_api(prices, *, subgraph=None, seen=None):
    """Mock transport for the price API keyed by (slug, lowercase address)."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.host == "graph.9mm.pro":
            if subgraph is None:
                return httpx.Response(503)
            return httpx.Response(200, json=subgraph)
        slug = request.url.path.rstrip("/").split("/")[-1]
        price = prices.get((slug, request.url.params["address"].lower()))
        if price is None:
            return httpx.Response(502, text="upstream error")
        return httpx.Response(200, json={"price": price})

    return handler


def feed(chains, test_settings, handler, **overrides):
    config = test_settings.model_copy(update=overrides) if overrides else test_settings
    return TokenPriceFeed(registry=chains, config=config, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_price_for_named_token(chains, test_settings):
    seen = []
    prices = feed(chains, test_settings, price_api({("pulsechain", PLSX.lower()): "0.000031"}, seen=seen))

    price = await prices.get_price(PULSE, PLSX)

    assert price.price_usd == Decimal("0.000031")
    assert price.symbol == "PLSX"
    assert price.source == "9mm_price_api"
    assert seen[0].url.path == "/api/price/pulsechain/"


@pytest.mark.asyncio
async def test_reference_token_when_none_given(chains, test_settings):
    default = DEFAULT_PRICE_TOKENS[BASE].lower()
    prices = feed(chains, test_settings, price_api({("basechain", default): "0.0042"}))

    price = await prices.get_price(BASE)

    assert price.token.lower() == default
    assert price.symbol == "9MM"


@pytest.mark.asyncio
async def test_native_is_priced_as_wrapped(chains, test_settings):
    wrapped = chains.get_network_config(SONIC).wrapped_native
    prices = feed(chains, test_settings, price_api({("sonic", wrapped.lower()): "0.51"}))

    price = await prices.get_price(SONIC, "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE")
    assert price.token.lower() == wrapped.lower()
    assert price.symbol == "WS"


@pytest.mark.asyncio
async def test_response_without_price_is_unavailable(chains, test_settings):
    def handler(request):
        return httpx.Response(200, json={"status": "ok"})

    prices = feed(chains, test_settings, handler, enable_price_subgraph=False)
    with pytest.raises(UpstreamUnavailableError):
        await prices.get_price(BASE)


@pytest.mark.asyncio
async def test_subgraph_day_price_after_api_failure(chains, test_settings):
    subgraph = {
        "data": {
            "token": {"symbol": "PLSX", "derivedETH": "0.5", "tokenDayData": [{"priceUSD": "0.00003"}]},
            "bundle": {"ethPriceUSD": "0.00005"},
        }
    }
    prices = feed(chains, test_settings, price_api({}, subgraph=subgraph))

    price = await prices.get_price(PULSE, PLSX)

    assert price.price_usd == Decimal("0.00003")
    assert price.source == "9mm_subgraph"


@pytest.mark.asyncio
async def test_subgraph_derives_price_without_day_data(chains, test_settings):
    subgraph = {
        "data": {
            "token": {"symbol": "PLSX", "derivedETH": "0.5", "tokenDayData": []},
            "bundle": {"ethPriceUSD": "0.00006"},
        }
    }
    prices = feed(chains, test_settings, price_api({}, subgraph=subgraph))

    price = await prices.get_price(PULSE, PLSX)
    assert price.price_usd == Decimal("0.000030")


@pytest.mark.asyncio
async def test_no_subgraph_fallback_off_pulsechain(chains, test_settings):
    seen = []
    prices = feed(chains, test_settings, price_api({}, subgraph={"data": {}}, seen=seen))

    with pytest.raises(UpstreamUnavailableError):
        await prices.get_price(BASE)
    assert all(r.url.host != "graph.9mm.pro" for r in seen)


@pytest.mark.asyncio
async def test_unpriced_network_is_unsupported(chains, test_settings):
    prices = feed(chains, test_settings, price_api({}))
    with pytest.raises(UnsupportedError):
        await prices.get_price(1)


@pytest.mark.asyncio
async def test_compare_networks_ranks_and_skips_failures(chains, test_settings):
    usdc_base = chains.get_network_config(BASE).token("USDC").address.lower()
    usdc_sonic = chains.get_network_config(SONIC).token("USDC").address.lower()
    prices = feed(
        chains,
        test_settings,
        price_api({("basechain", usdc_base): "0.9998", ("sonic", usdc_sonic): "1.0004"}),
        enable_price_subgraph=False,
    )

    ranked = await prices.compare_networks("usdc")

    assert [p.network_id for p in ranked] == [SONIC, BASE]


@pytest.mark.asyncio
async def test_compare_unknown_symbol_is_unsupported(chains, test_settings):
    prices = feed(chains, test_settings, price_api({}))
    with pytest.raises(UnsupportedError):
        await prices.compare_networks("NOPE")


@pytest.mark.asyncio
async def test_compare_with_no_prices_is_unavailable(chains, test_settings):
    prices = feed(chains, test_settings, price_api({}), enable_price_subgraph=False)
    with pytest.raises(UpstreamUnavailableError):
        await prices.compare_networks("9MM")
