"""
Error taxonomy for quoting, sessions and execution.

Every failure carries a stable ``kind`` plus a human-readable message. The
core raises these; the API boundary turns them into response envelopes.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Stable error identifiers surfaced to callers."""

    UNSUPPORTED = "unsupported"                  # unknown network/venue - caller error
    INVALID_REQUEST = "invalid_request"          # bad amount/slippage/asset
    TIMEOUT = "timeout"                          # venue unreachable - retry by re-querying
    NO_LIQUIDITY = "no_liquidity"                # venue has no route
    NO_QUOTES_AVAILABLE = "no_quotes_available"  # every venue failed - retry after backoff
    UNAUTHORIZED = "unauthorized"                # re-authenticate
    INSUFFICIENT_GAS = "insufficient_gas"        # fund the wallet
    QUOTE_EXPIRED = "quote_expired"              # re-quote
    APPROVAL_REQUIRED = "approval_required"      # approve the spender first
    SUBMISSION_FAILED = "submission_failed"      # on-chain rejection
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"  # node or price feed unreachable - retry later
    KEY_GENERATION = "key_generation"            # signing material could not be created


class SwapError(Exception):
    """Base error for the swap core."""

    kind: ErrorKind = ErrorKind.INVALID_REQUEST

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class UnsupportedError(SwapError):
    """Network, venue or asset is not supported."""
    kind = ErrorKind.UNSUPPORTED


class InvalidRequestError(SwapError):
    """Request parameters are out of range."""
    kind = ErrorKind.INVALID_REQUEST


class NoQuotesAvailableError(SwapError):
    """No venue produced a usable quote."""
    kind = ErrorKind.NO_QUOTES_AVAILABLE


class UnauthorizedError(SwapError):
    """Bearer token is missing, malformed, expired, revoked or lacks scope."""
    kind = ErrorKind.UNAUTHORIZED


class InsufficientGasError(SwapError):
    """Wallet cannot cover the minimum gas reserve."""
    kind = ErrorKind.INSUFFICIENT_GAS

    def __init__(self, message: str, *, balance_wei: int, required_wei: int, native_symbol: str):
        super().__init__(
            message,
            details={
                "balance_wei": str(balance_wei),
                "required_wei": str(required_wei),
                "native_symbol": native_symbol,
            },
        )
        self.balance_wei = balance_wei
        self.required_wei = required_wei


class QuoteExpiredError(SwapError):
    """The selected quote is past its validity window."""
    kind = ErrorKind.QUOTE_EXPIRED


class ApprovalRequiredError(SwapError):
    """Token allowance for the venue spender is below the sell amount."""
    kind = ErrorKind.APPROVAL_REQUIRED


class SubmissionFailedError(SwapError):
    """Transaction was rejected by the node or reverted on-chain."""
    kind = ErrorKind.SUBMISSION_FAILED

    def __init__(self, message: str, *, tx_hash: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.tx_hash = tx_hash
        if tx_hash:
            self.details.setdefault("tx_hash", tx_hash)


class KeyGenerationError(SwapError):
    """Signing material could not be generated; callers may retry."""
    kind = ErrorKind.KEY_GENERATION


class UpstreamUnavailableError(SwapError):
    """A read against a node or price feed failed."""
    kind = ErrorKind.UPSTREAM_UNAVAILABLE


# Venue-level failures. Fan-out paths absorb these; single-venue calls raise them.
class QuoteProviderError(SwapError):
    """Base class for a single venue failing to quote."""

    def __init__(self, message: str, *, venue: str, network_id: Optional[int] = None):
        super().__init__(message, details={"venue": venue, "network_id": network_id})
        self.venue = venue
        self.network_id = network_id


class VenueTimeoutError(QuoteProviderError):
    """Venue did not answer in time or was unreachable."""
    kind = ErrorKind.TIMEOUT


class NoLiquidityError(QuoteProviderError):
    """Venue reported no route for the pair."""
    kind = ErrorKind.NO_LIQUIDITY


class VenueUnsupportedError(QuoteProviderError):
    """Venue does not serve the requested network."""
    kind = ErrorKind.UNSUPPORTED


__all__ = [
    "ErrorKind",
    "SwapError",
    "UnsupportedError",
    "InvalidRequestError",
    "NoQuotesAvailableError",
    "UnauthorizedError",
    "InsufficientGasError",
    "QuoteExpiredError",
    "ApprovalRequiredError",
    "SubmissionFailedError",
    "KeyGenerationError",
    "UpstreamUnavailableError",
    "QuoteProviderError",
    "VenueTimeoutError",
    "NoLiquidityError",
    "VenueUnsupportedError",
]
