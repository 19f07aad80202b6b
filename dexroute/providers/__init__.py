from .base import HTTPQuoteProvider, QuoteProvider
from .ninemm import NineMMProvider
from .oneinch import OneInchProvider
from .paraswap import ParaSwapProvider
from .prices import TokenPrice, TokenPriceFeed
from .registry import VenueRegistry, build_default_registry
from .v2_router import PoolInfo, V2RouterProvider

__all__ = [
    "QuoteProvider",
    "HTTPQuoteProvider",
    "NineMMProvider",
    "OneInchProvider",
    "ParaSwapProvider",
    "V2RouterProvider",
    "PoolInfo",
    "TokenPrice",
    "TokenPriceFeed",
    "VenueRegistry",
    "build_default_registry",
]
