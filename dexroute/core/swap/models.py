"""
Quote and aggregation models.

Amounts are integers in the asset's smallest unit throughout. Fractions
(slippage, savings percentages) are ``Decimal`` so no float rounding enters
the minimum-output computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import InvalidRequestError, NoLiquidityError
from .constants import MAX_SLIPPAGE, QUOTE_TTL_SECONDS

SlippageLike = Union[Decimal, float, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_slippage(slippage: SlippageLike) -> Decimal:
    """Coerce and range-check a slippage fraction; must lie in (0, 0.1]."""
    try:
        value = slippage if isinstance(slippage, Decimal) else Decimal(str(slippage))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidRequestError(f"Invalid slippage: {slippage!r}") from exc
    if not value.is_finite() or value <= 0 or value > MAX_SLIPPAGE:
        raise InvalidRequestError(
            f"Slippage must be in (0, {MAX_SLIPPAGE}], got {value}",
            details={"slippage": str(value)},
        )
    return value


def validate_sell_amount(sell_amount: Any) -> int:
    if isinstance(sell_amount, bool) or not isinstance(sell_amount, int):
        raise InvalidRequestError(
            "sell_amount must be an integer in the asset's smallest unit",
            details={"sell_amount": repr(sell_amount)},
        )
    if sell_amount < 0:
        raise InvalidRequestError("sell_amount must be non-negative", details={"sell_amount": str(sell_amount)})
    return sell_amount


def compute_min_buy_amount(buy_amount: int, slippage: SlippageLike) -> int:
    """floor(buy_amount * (1 - slippage)) using exact rational arithmetic."""
    ratio = 1 - Fraction(str(slippage))
    return (buy_amount * ratio.numerator) // ratio.denominator


@dataclass(frozen=True)
class TransactionRequest:
    """Venue-built call that realizes a quote."""
    to: str
    data: str
    value: int = 0
    gas: Optional[int] = None
    allowance_target: Optional[str] = None   # ERC-20 spender; None for native sells

    def to_dict(self) -> Dict[str, Any]:
        tx: Dict[str, Any] = {"to": self.to, "data": self.data, "value": str(self.value)}
        if self.gas is not None:
            tx["gas"] = self.gas
        if self.allowance_target:
            tx["allowanceTarget"] = self.allowance_target
        return tx


@dataclass(frozen=True)
class Quote:
    """A venue's offer for one trade, valid until ``valid_until``."""
    venue_id: str
    network_id: int
    sell_asset: str
    buy_asset: str
    sell_amount: int
    buy_amount: int
    min_buy_amount: int
    valid_until: datetime
    slippage: Decimal
    price_impact_bps: Optional[int] = None
    fee_bps: int = 0
    gas_estimate: Optional[int] = None
    route: Tuple[str, ...] = ()
    recipient: Optional[str] = None
    transaction: Optional[TransactionRequest] = None
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @classmethod
    def build(
        cls,
        *,
        venue_id: str,
        network_id: int,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        buy_amount: int,
        slippage: SlippageLike,
        now: Optional[datetime] = None,
        **extra: Any,
    ) -> "Quote":
        """Normalize a venue reply; zero output is reported as no liquidity."""
        if buy_amount <= 0:
            raise NoLiquidityError(
                f"{venue_id} returned no output for the requested pair",
                venue=venue_id,
                network_id=network_id,
            )
        slippage_value = validate_slippage(slippage)
        created = now or utcnow()
        route = extra.pop("route", ()) or ()
        return cls(
            venue_id=venue_id,
            network_id=network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=buy_amount,
            min_buy_amount=compute_min_buy_amount(buy_amount, slippage_value),
            valid_until=created + timedelta(seconds=QUOTE_TTL_SECONDS),
            slippage=slippage_value,
            route=tuple(route),
            **extra,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.valid_until

    @property
    def is_executable(self) -> bool:
        return self.transaction is not None

    def provenance(self) -> Dict[str, Any]:
        return {
            "venue": self.venue_id,
            "buy_amount": str(self.buy_amount),
            "min_buy_amount": str(self.min_buy_amount),
            "valid_until": self.valid_until.isoformat(),
            "route": list(self.route),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue_id,
            "network_id": self.network_id,
            "sell_asset": self.sell_asset,
            "buy_asset": self.buy_asset,
            "sell_amount": str(self.sell_amount),
            "buy_amount": str(self.buy_amount),
            "min_buy_amount": str(self.min_buy_amount),
            "price_impact_bps": self.price_impact_bps,
            "fee_bps": self.fee_bps,
            "gas_estimate": self.gas_estimate,
            "route": list(self.route),
            "valid_until": self.valid_until.isoformat(),
            "slippage": str(self.slippage),
            "recipient": self.recipient,
            "executable": self.is_executable,
        }


@dataclass(frozen=True)
class Savings:
    """Improvement of the selected quote over the worst candidate."""
    absolute: int
    percentage_of_worst: Decimal

    @classmethod
    def between(cls, selected: Quote, worst: Quote) -> "Savings":
        absolute = selected.buy_amount - worst.buy_amount
        percentage = (Decimal(absolute) / Decimal(worst.buy_amount) * 100) if worst.buy_amount else Decimal(0)
        return cls(absolute=absolute, percentage_of_worst=percentage.quantize(Decimal("0.0001")))

    def to_dict(self) -> Dict[str, str]:
        return {"absolute": str(self.absolute), "percentage_of_worst": str(self.percentage_of_worst)}


@dataclass(frozen=True)
class AggregatedResult:
    best_quote: Quote
    all_quotes: Tuple[Quote, ...]
    savings: Savings
    recommended_venue: str
    preference_applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_quote": self.best_quote.to_dict(),
            "all_quotes": [q.to_dict() for q in self.all_quotes],
            "savings": self.savings.to_dict(),
            "recommended_venue": self.recommended_venue,
            "preference_applied": self.preference_applied,
        }


@dataclass(frozen=True)
class NetworkQuote:
    """Best result for one network in a cross-network comparison."""
    network_id: int
    network_name: str
    sell_asset: str
    buy_asset: str
    result: AggregatedResult

    @property
    def buy_amount(self) -> int:
        return self.result.best_quote.buy_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network_id": self.network_id,
            "network_name": self.network_name,
            "sell_asset": self.sell_asset,
            "buy_asset": self.buy_asset,
            "buy_amount": str(self.buy_amount),
            "venue": self.result.recommended_venue,
            "result": self.result.to_dict(),
        }


def rank_quotes(quotes: List[Quote]) -> List[Quote]:
    """Order by buy amount, best first; ties keep input order."""
    return sorted(quotes, key=lambda q: q.buy_amount, reverse=True)
