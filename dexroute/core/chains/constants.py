"""Static network metadata: ids, contracts, gas parameters and common tokens."""

from typing import Any, Dict

# Placeholder address used by aggregators for a network's native unit.
NATIVE_PLACEHOLDER = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

# Fee tiers in basis points.
NINE_MM_FEE_TIERS: Dict[str, int] = {
    "v2": 17,          # 0.17%, below the usual 0.3%
    "v3_low": 5,
    "v3_medium": 30,
    "v3_high": 100,
    "aggregator": 10,
}
STANDARD_V2_FEE_TIERS: Dict[str, int] = {"v2": 30}

NETWORK_METADATA: Dict[int, Dict[str, Any]] = {
    8453: {
        "name": "Base",
        "aliases": ["base", "base mainnet"],
        "native_symbol": "ETH",
        "wrapped_native": "0x4200000000000000000000000000000000000006",
        "rpc_url": "https://mainnet.base.org",
        "explorer_url": "https://basescan.org",
        "gas_price_hint_gwei": "0.1",
        "gas_limit": 300_000,
        "fee_tiers": NINE_MM_FEE_TIERS,
        "v2_router": "0x00fECf89a9Ff8428901380fCA65B6f1BECCF9959",
        "v2_factory": "0x4c1b8d4ae77a37b94e195cab316391d3c687ebd1",
        "tokens": {
            "WETH": {"address": "0x4200000000000000000000000000000000000006", "decimals": 18},
            "USDC": {"address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "decimals": 6},
            "USDT": {"address": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2", "decimals": 6},
            "9MM": {"address": "0xe290816384416fb1dB9225e176b716346dB9f9fE", "decimals": 18},
        },
    },
    369: {
        "name": "PulseChain",
        "aliases": ["pulsechain", "pulse", "pls"],
        "native_symbol": "PLS",
        "wrapped_native": "0xA1077a294dDE1B09bB078844df40758a5D0f9a27",
        "rpc_url": "https://rpc.pulsechain.com",
        "explorer_url": "https://scan.pulsechain.com",
        "gas_price_hint_gwei": "0.001",
        "gas_limit": 500_000,
        "fee_tiers": NINE_MM_FEE_TIERS,
        "v2_router": "0xcC73b59F8D7b7c532703bDfea2808a28a488cF47",
        "v2_factory": "0x3a0Fa7884dD93f3cd234bBE2A0958Ef04b05E13b",
        "tokens": {
            "WPLS": {"address": "0xA1077a294dDE1B09bB078844df40758a5D0f9a27", "decimals": 18},
            "PLSX": {"address": "0x95B303987A60C71504D99Aa1b13B4DA07b0790ab", "decimals": 18},
            "9MM": {"address": "0x7b39c70e3e2cf1ba11b2b12ee9d96bc7d2deA719", "decimals": 18},
        },
    },
    146: {
        "name": "Sonic",
        "aliases": ["sonic"],
        "native_symbol": "S",
        "wrapped_native": "0x039e2fB66102314Ce7b64Ce5Ce3E5183bc94aD38",
        "rpc_url": "https://rpc.soniclabs.com",
        "explorer_url": "https://scan.soniclabs.com",
        "gas_price_hint_gwei": "0.01",
        "gas_limit": 400_000,
        "fee_tiers": NINE_MM_FEE_TIERS,
        "v2_router": "0x46636339CC36978B3ac480FBaEd6389589A95eB1",
        "v2_factory": "0x0f7B3FcBa276A65dd6E41E400055dcb75BA66750",
        "tokens": {
            "WS": {"address": "0x039e2fB66102314Ce7b64Ce5Ce3E5183bc94aD38", "decimals": 18},
            "USDC": {"address": "0x29219dd400f2Bf60E5a23d13Be72B486D4038894", "decimals": 6},
            "9MM": {"address": "0xC5cBFce0B3e9Aee8Ad5E31Ce83c46a2f4D5CF37C", "decimals": 18},
        },
    },
    1: {
        "name": "Ethereum",
        "aliases": ["ethereum", "eth", "mainnet"],
        "native_symbol": "ETH",
        "wrapped_native": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "rpc_url": "https://cloudflare-eth.com",
        "explorer_url": "https://etherscan.io",
        "gas_price_hint_gwei": "20",
        "gas_limit": 300_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WETH": {"address": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "decimals": 18},
            "USDC": {"address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "decimals": 6},
            "USDT": {"address": "0xdAC17F958D2ee523a2206206994597C13D831ec7", "decimals": 6},
            "DAI": {"address": "0x6B175474E89094C44Da98b954EedeAC495271d0F", "decimals": 18},
            "WBTC": {"address": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", "decimals": 8},
        },
    },
    56: {
        "name": "BSC",
        "aliases": ["bsc", "bnb", "binance smart chain"],
        "native_symbol": "BNB",
        "wrapped_native": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
        "rpc_url": "https://bsc-dataseed.binance.org/",
        "explorer_url": "https://bscscan.com",
        "gas_price_hint_gwei": "3",
        "gas_limit": 300_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WBNB": {"address": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", "decimals": 18},
            "USDT": {"address": "0x55d398326f99059fF775485246999027B3197955", "decimals": 18},
            "USDC": {"address": "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", "decimals": 18},
        },
    },
    137: {
        "name": "Polygon",
        "aliases": ["polygon", "matic"],
        "native_symbol": "MATIC",
        "wrapped_native": "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
        "rpc_url": "https://polygon-rpc.com",
        "explorer_url": "https://polygonscan.com",
        "gas_price_hint_gwei": "30",
        "gas_limit": 300_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WMATIC": {"address": "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270", "decimals": 18},
            "USDC": {"address": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", "decimals": 6},
            "USDT": {"address": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "decimals": 6},
        },
    },
    42161: {
        "name": "Arbitrum",
        "aliases": ["arbitrum", "arb"],
        "native_symbol": "ETH",
        "wrapped_native": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        "rpc_url": "https://arb1.arbitrum.io/rpc",
        "explorer_url": "https://arbiscan.io",
        "gas_price_hint_gwei": "0.1",
        "gas_limit": 1_000_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WETH": {"address": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", "decimals": 18},
            "USDC": {"address": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831", "decimals": 6},
        },
    },
    10: {
        "name": "Optimism",
        "aliases": ["optimism", "op"],
        "native_symbol": "ETH",
        "wrapped_native": "0x4200000000000000000000000000000000000006",
        "rpc_url": "https://mainnet.optimism.io",
        "explorer_url": "https://optimistic.etherscan.io",
        "gas_price_hint_gwei": "0.01",
        "gas_limit": 300_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WETH": {"address": "0x4200000000000000000000000000000000000006", "decimals": 18},
            "USDC": {"address": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85", "decimals": 6},
        },
    },
    43114: {
        "name": "Avalanche",
        "aliases": ["avalanche", "avax"],
        "native_symbol": "AVAX",
        "wrapped_native": "0xB31f66AA3C1e785363F0875A1B74E27b85FD66c7",
        "rpc_url": "https://api.avax.network/ext/bc/C/rpc",
        "explorer_url": "https://snowtrace.io",
        "gas_price_hint_gwei": "25",
        "gas_limit": 300_000,
        "fee_tiers": STANDARD_V2_FEE_TIERS,
        "tokens": {
            "WAVAX": {"address": "0xB31f66AA3C1e785363F0875A1B74E27b85FD66c7", "decimals": 18},
            "USDC": {"address": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", "decimals": 6},
        },
    },
}

# Networks served by the 9mm deployments; the preferred venue's home turf.
NINE_MM_NETWORK_IDS = (8453, 369, 146)
