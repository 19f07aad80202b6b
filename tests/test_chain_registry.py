import pytest

from dexroute.core.chains import NATIVE_PLACEHOLDER, NINE_MM_NETWORK_IDS, ChainRegistry
from dexroute.core.errors import InvalidRequestError, UnsupportedError
from dexroute.services.token_resolution import AssetKind, AssetRef, TokenResolver

from conftest import BASE, PULSE, SONIC, USDC_BASE


def test_ninemm_networks_are_registered(chains):
    for network_id in NINE_MM_NETWORK_IDS:
        network = chains.get_network_config(network_id)
        assert network.v2_router
        assert "9MM" in network.tokens

    assert chains.get_network_config(PULSE).native_symbol == "PLS"
    assert chains.get_network_config(SONIC).native_symbol == "S"
    assert chains.get_network_config(BASE).native_symbol == "ETH"


def test_unknown_network_is_unsupported(chains):
    with pytest.raises(UnsupportedError):
        chains.get_network_config(999999)
    assert not chains.has_network(999999)


@pytest.mark.parametrize("name", ["pulsechain", "PLS", "369", " Pulse "])
def test_resolve_by_alias_or_id(chains, name):
    assert chains.resolve(name).network_id == PULSE


def test_resolve_unknown_alias(chains):
    with pytest.raises(UnsupportedError):
        chains.resolve("dogechain")


def test_rpc_override_applies(test_settings):
    registry = ChainRegistry(config=test_settings.model_copy(update={"sonic_rpc_url": "https://rpc.example/sonic"}))
    assert registry.get_network_config(SONIC).rpc_url == "https://rpc.example/sonic"


def test_custom_metadata():
    registry = ChainRegistry(
        {
            7: {
                "name": "Testnet",
                "native_symbol": "TST",
                "wrapped_native": "0x0000000000000000000000000000000000000007",
                "rpc_url": "http://localhost:8545",
                "explorer_url": "https://explorer.test/",
                "gas_price_hint_gwei": "1.5",
                "gas_limit": 100000,
            }
        }
    )
    network = registry.resolve("testnet")
    assert network.gas_price_hint_wei == 1_500_000_000
    assert network.explorer_tx_url("0xabc") == "https://explorer.test/tx/0xabc"
    assert registry.network_ids == [7]


def test_native_token_shape(chains):
    native = chains.get_network_config(BASE).native_token
    assert native.is_native
    assert native.address == NATIVE_PLACEHOLDER
    assert native.decimals == 18


# ---------------------------------------------------------------------------
# Asset references
# ---------------------------------------------------------------------------


def test_parse_classifies_input():
    assert AssetRef.parse("usdc") == AssetRef(AssetKind.SYMBOL, "USDC")
    assert AssetRef.parse(USDC_BASE.lower()).is_address
    with pytest.raises(InvalidRequestError):
        AssetRef.parse("0x1234")
    with pytest.raises(InvalidRequestError):
        AssetRef.parse("  ")


def test_resolve_symbols_and_addresses(chains):
    resolver = TokenResolver(chains)

    assert resolver.resolve_asset_address("usdc", BASE) == USDC_BASE
    assert resolver.resolve_asset_address(USDC_BASE.lower(), BASE) == USDC_BASE
    assert resolver.resolve_asset_address("ETH", BASE) == NATIVE_PLACEHOLDER
    assert resolver.resolve_asset_address("native", PULSE) == NATIVE_PLACEHOLDER
    assert resolver.resolve_asset_address("9mm", SONIC).lower() == "0xc5cbfce0b3e9aee8ad5e31ce83c46a2f4d5cf37c"


def test_resolve_unknown_symbol(chains):
    resolver = TokenResolver(chains)
    with pytest.raises(UnsupportedError):
        resolver.resolve_asset_address("NOPE", BASE)
    with pytest.raises(UnsupportedError):
        resolver.resolve_asset_address(USDC_BASE, 999999)


def test_lookup_by_address(chains):
    resolver = TokenResolver(chains)

    token = resolver.lookup(AssetRef.address(USDC_BASE.lower()), BASE)
    assert token.symbol == "USDC"
    assert token.decimals == 6
    assert resolver.lookup(AssetRef.address("0x" + "12" * 20), BASE) is None
    assert resolver.lookup(AssetRef.address(NATIVE_PLACEHOLDER), BASE).is_native
