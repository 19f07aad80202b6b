"""Routing and execution policy constants."""

from decimal import Decimal

from ..chains.constants import NATIVE_PLACEHOLDER

# A preferred-venue quote within this fraction of the best buy amount wins
# the tie-break. The boundary is inclusive.
PREFERRED_VENUE_TOLERANCE = Decimal("0.01")

# Minimum native balance (0.001 of an 18-decimal native unit) required before
# a swap is attempted.
MIN_GAS_RESERVE_WEI = 10**15

QUOTE_TTL_SECONDS = 30

DEFAULT_SLIPPAGE = Decimal("0.005")
MAX_SLIPPAGE = Decimal("0.1")

MAX_UINT256 = 2**256 - 1

__all__ = [
    "PREFERRED_VENUE_TOLERANCE",
    "MIN_GAS_RESERVE_WEI",
    "QUOTE_TTL_SECONDS",
    "DEFAULT_SLIPPAGE",
    "MAX_SLIPPAGE",
    "MAX_UINT256",
    "NATIVE_PLACEHOLDER",
]
