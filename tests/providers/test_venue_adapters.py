import json

import httpx
import pytest
from eth_abi import decode, encode

from dexroute.core.chains import NATIVE_PLACEHOLDER
from dexroute.core.errors import NoLiquidityError, UnsupportedError, VenueTimeoutError, VenueUnsupportedError
from dexroute.core.execution.rpc import ChainClientFactory
from dexroute.providers.oneinch import OneInchProvider
from dexroute.providers.paraswap import ParaSwapProvider
from dexroute.providers.registry import VenueRegistry, build_default_registry
from dexroute.providers.v2_router import (
    GET_PAIR,
    GET_RESERVES,
    SWAP_EXACT_ETH_FOR_TOKENS,
    SWAP_EXACT_TOKENS_FOR_TOKENS,
    TOTAL_SUPPLY,
    V2RouterProvider,
    price_impact_bps,
)

from conftest import BASE, PULSE, USDC_BASE, WETH_BASE, StubProvider

SENDER = "0x2222222222222222222222222222222222222222"
SPENDER = "0x5555555555555555555555555555555555555555"
PLSX = "0x95B303987A60C71504D99Aa1b13B4DA07b0790ab"


# ---------------------------------------------------------------------------
# 1inch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_oneinch_without_key_is_unsupported(chains):
    provider = OneInchProvider(api_key="", registry=chains)

    assert await provider.ready() is False
    with pytest.raises(VenueUnsupportedError):
        await provider.get_quote(chains.get_network_config(BASE), USDC_BASE, WETH_BASE, 10**6, "0.005")


@pytest.mark.asyncio
async def test_oneinch_quote_and_build(chains):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        assert request.headers["Authorization"] == "Bearer test-key"
        if request.url.path.endswith("/quote"):
            return httpx.Response(
                200,
                json={
                    "toAmount": "500000000000000",
                    "gas": 150000,
                    "protocols": [[[{"name": "UNISWAP_V3", "part": 100}]]],
                },
            )
        if request.url.path.endswith("/swap"):
            return httpx.Response(200, json={"tx": {"to": SPENDER, "data": "0xfeed", "value": "0", "gas": 210000}})
        return httpx.Response(200, json={"address": SPENDER})

    provider = OneInchProvider(
        api_key="test-key",
        base_url="https://oneinch.test/swap/v5.2",
        transport=httpx.MockTransport(handler),
        registry=chains,
    )
    quote = await provider.get_quote(chains.get_network_config(BASE), USDC_BASE, WETH_BASE, 10**6, "0.005")

    assert quote.buy_amount == 500000000000000
    assert quote.route == ("UNISWAP_V3",)
    assert requests[0].url.path == "/swap/v5.2/8453/quote"

    tx = await provider.build_swap_transaction(quote, SENDER)
    swap_request = requests[1]
    assert float(swap_request.url.params["slippage"]) == 0.5
    assert swap_request.url.params["from"] == SENDER
    assert tx.data == "0xfeed"
    assert tx.allowance_target == SPENDER


@pytest.mark.asyncio
async def test_oneinch_does_not_serve_pulsechain(chains):
    provider = OneInchProvider(api_key="test-key", registry=chains)
    with pytest.raises(VenueUnsupportedError):
        await provider.get_quote(chains.get_network_config(PULSE), PLSX, NATIVE_PLACEHOLDER, 10**18, "0.005")


# ---------------------------------------------------------------------------
# ParaSwap
# ---------------------------------------------------------------------------

PRICE_ROUTE = {
    "destAmount": "400000000000000",
    "srcUSD": "100",
    "destUSD": "99",
    "gasCost": "170000",
    "tokenTransferProxy": SPENDER,
    "bestRoute": [{"swaps": [{"swapExchanges": [{"exchange": "BaseSwap"}, {"exchange": "Aerodrome"}]}]}],
}


@pytest.mark.asyncio
async def test_paraswap_quote_and_build(chains):
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.path == "/prices":
            return httpx.Response(200, json={"priceRoute": PRICE_ROUTE})
        return httpx.Response(200, json={"to": SPENDER, "data": "0xbeef", "value": "0"})

    provider = ParaSwapProvider("https://paraswap.test", transport=httpx.MockTransport(handler), registry=chains)
    quote = await provider.get_quote(chains.get_network_config(BASE), USDC_BASE, WETH_BASE, 10**6, "0.005")

    assert quote.buy_amount == 400000000000000
    assert quote.price_impact_bps == 100
    assert quote.route == ("BaseSwap", "Aerodrome")
    assert requests[0].url.params["srcDecimals"] == "6"
    assert requests[0].url.params["destDecimals"] == "18"

    tx = await provider.build_swap_transaction(quote, SENDER)
    build_request = requests[1]
    assert build_request.method == "POST"
    assert build_request.url.path == "/transactions/8453"
    assert tx.allowance_target == SPENDER


@pytest.mark.asyncio
async def test_paraswap_route_error_is_no_liquidity(chains):
    provider = ParaSwapProvider(
        "https://paraswap.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "No routes found"})),
        registry=chains,
    )
    with pytest.raises(NoLiquidityError):
        await provider.get_quote(chains.get_network_config(BASE), USDC_BASE, WETH_BASE, 10**6, "0.005")


# ---------------------------------------------------------------------------
# V2 router
# ---------------------------------------------------------------------------


def rpc_handler(*, revert=False, outage=False):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if outage:
            return httpx.Response(502, text="bad gateway")
        if revert:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": 3, "message": "execution reverted"}},
            )
        call_data = bytes.fromhex(payload["params"][0]["data"][2:])
        amount_in, path = decode(["uint256", "address[]"], call_data[4:])
        # Full-size trades lose 1% against the small-trade rate
        amount_out = amount_in * 2 if amount_in < 10**6 else amount_in * 2 * 99 // 100
        result = encode(["uint256[]"], [[amount_in, amount_out]])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x" + result.hex()})

    return handler


@pytest.mark.asyncio
async def test_v2_quote_reads_router(chains):
    provider = V2RouterProvider(ChainClientFactory(transport=httpx.MockTransport(rpc_handler())), registry=chains)
    quote = await provider.get_quote(chains.get_network_config(PULSE), NATIVE_PLACEHOLDER, PLSX, 10**6, "0.005")

    assert quote.venue_id == "9mm_v2"
    assert quote.buy_amount == 2 * 10**6 * 99 // 100
    assert quote.price_impact_bps == 100
    assert quote.fee_bps == 17


@pytest.mark.asyncio
async def test_v2_revert_is_no_liquidity(chains):
    provider = V2RouterProvider(
        ChainClientFactory(transport=httpx.MockTransport(rpc_handler(revert=True))), registry=chains
    )
    with pytest.raises(NoLiquidityError):
        await provider.get_quote(chains.get_network_config(PULSE), NATIVE_PLACEHOLDER, PLSX, 10**6, "0.005")


@pytest.mark.asyncio
async def test_v2_rpc_outage_is_unavailable(chains):
    provider = V2RouterProvider(
        ChainClientFactory(transport=httpx.MockTransport(rpc_handler(outage=True))), registry=chains
    )
    with pytest.raises(VenueTimeoutError):
        await provider.get_quote(chains.get_network_config(PULSE), NATIVE_PLACEHOLDER, PLSX, 10**6, "0.005")


@pytest.mark.asyncio
async def test_v2_builds_native_and_token_swaps(chains):
    provider = V2RouterProvider(ChainClientFactory(transport=httpx.MockTransport(rpc_handler())), registry=chains)
    network = chains.get_network_config(PULSE)

    native_quote = await provider.get_quote(network, NATIVE_PLACEHOLDER, PLSX, 10**6, "0.005", recipient=SENDER)
    native_tx = await provider.build_swap_transaction(native_quote, SENDER)
    assert native_tx.data.startswith("0x" + SWAP_EXACT_ETH_FOR_TOKENS.hex())
    assert native_tx.value == 10**6
    assert native_tx.allowance_target is None
    assert native_tx.to.lower() == network.v2_router.lower()

    token_quote = await provider.get_quote(network, PLSX, network.wrapped_native, 10**6, "0.005")
    token_tx = await provider.build_swap_transaction(token_quote, SENDER)
    assert token_tx.data.startswith("0x" + SWAP_EXACT_TOKENS_FOR_TOKENS.hex())
    assert token_tx.value == 0
    assert token_tx.allowance_target.lower() == network.v2_router.lower()


def test_v2_supports_only_router_networks(chains):
    provider = V2RouterProvider(registry=chains)
    assert provider.supports(PULSE)
    assert provider.supports(BASE)
    assert not provider.supports(1)


def test_price_impact_bps():
    assert price_impact_bps(1000, 1000, 1, 1) == 0
    assert price_impact_bps(1000, 950, 10, 10) == 500
    assert price_impact_bps(1000, 1000, 1, 0) is None


PAIR = "0x6666666666666666666666666666666666666666"


def pool_handler(network, *, pair=PAIR):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        call = payload["params"][0]
        selector = bytes.fromhex(call["data"][2:10])
        if call["to"].lower() == network.v2_factory.lower():
            assert selector == GET_PAIR
            result = encode(["address"], [pair])
        elif selector == GET_RESERVES:
            result = encode(["uint112", "uint112", "uint32"], [5 * 10**18, 7 * 10**24, 1700000000])
        elif selector == TOTAL_SUPPLY:
            result = encode(["uint256"], [3 * 10**21])
        else:
            result = encode(["address"], [network.wrapped_native])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x" + result.hex()})

    return handler


@pytest.mark.asyncio
async def test_v2_pool_info_reads_pair_reserves(chains):
    network = chains.get_network_config(PULSE)
    provider = V2RouterProvider(
        ChainClientFactory(transport=httpx.MockTransport(pool_handler(network))), registry=chains
    )

    pool = await provider.pool_info(network, PLSX, NATIVE_PLACEHOLDER)

    assert pool.pair_address.lower() == PAIR
    assert pool.token0.lower() == network.wrapped_native.lower()
    assert pool.token1.lower() == PLSX.lower()
    assert pool.reserve0 == 5 * 10**18
    assert pool.reserve1 == 7 * 10**24
    assert pool.total_supply == 3 * 10**21
    assert pool.to_dict()["fee_bps"] == 17


@pytest.mark.asyncio
async def test_v2_pool_info_zero_pair_is_no_liquidity(chains):
    network = chains.get_network_config(PULSE)
    provider = V2RouterProvider(
        ChainClientFactory(transport=httpx.MockTransport(pool_handler(network, pair="0x" + "00" * 20))),
        registry=chains,
    )
    with pytest.raises(NoLiquidityError):
        await provider.pool_info(network, PLSX, NATIVE_PLACEHOLDER)


@pytest.mark.asyncio
async def test_v2_pool_info_without_factory_is_unsupported(chains):
    provider = V2RouterProvider(registry=chains)
    with pytest.raises(VenueUnsupportedError):
        await provider.pool_info(chains.get_network_config(1), USDC_BASE, WETH_BASE)


@pytest.mark.asyncio
async def test_v2_pool_info_rpc_outage_is_unavailable(chains):
    provider = V2RouterProvider(
        ChainClientFactory(transport=httpx.MockTransport(rpc_handler(outage=True))), registry=chains
    )
    with pytest.raises(VenueTimeoutError):
        await provider.pool_info(chains.get_network_config(PULSE), PLSX, NATIVE_PLACEHOLDER)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_preserves_order_and_toggles():
    registry = VenueRegistry([StubProvider("a", 1), StubProvider("b", 1, networks=(PULSE,)), StubProvider("c", 1)])

    assert [p.venue_id for p in registry.venues_for(BASE)] == ["a", "c"]
    registry.set_enabled("a", False)
    assert [p.venue_id for p in registry.venues_for(BASE)] == ["c"]
    assert [v["enabled"] for v in registry.describe()] == [False, True, True]
    assert len(registry) == 3


def test_registry_rejects_duplicates_and_unknown_venues():
    registry = VenueRegistry([StubProvider("a", 1)])
    with pytest.raises(ValueError):
        registry.register(StubProvider("a", 2))
    with pytest.raises(UnsupportedError):
        registry.get("missing")
    with pytest.raises(UnsupportedError):
        registry.set_enabled("missing", True)


def test_default_registry_follows_settings(test_settings, chains):
    config = test_settings.model_copy(update={"enable_paraswap": False})
    registry = build_default_registry(config, chains=chains)

    assert [p.venue_id for p in registry] == ["9mm", "9mm_v2", "1inch", "paraswap"]
    assert registry.is_enabled("9mm")
    assert not registry.is_enabled("paraswap")
