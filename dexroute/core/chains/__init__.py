from .constants import NATIVE_PLACEHOLDER, NINE_MM_NETWORK_IDS
from .registry import ChainRegistry, Network, TokenInfo, get_chain_registry

__all__ = [
    "ChainRegistry",
    "Network",
    "TokenInfo",
    "get_chain_registry",
    "NATIVE_PLACEHOLDER",
    "NINE_MM_NETWORK_IDS",
]
