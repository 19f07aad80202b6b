"""
Best-quote selection across venues on one network.

Venues are queried concurrently, each under its own deadline. A venue that
fails or times out is logged and left out; the request only fails when no
venue produced a quote.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from ...config import settings
from ...providers.base import QuoteProvider
from ...providers.registry import VenueRegistry
from ..chains import ChainRegistry, Network, get_chain_registry
from ..errors import NoQuotesAvailableError, QuoteProviderError, VenueTimeoutError, VenueUnsupportedError
from .constants import DEFAULT_SLIPPAGE, PREFERRED_VENUE_TOLERANCE
from .models import (
    AggregatedResult,
    Quote,
    Savings,
    SlippageLike,
    rank_quotes,
    validate_sell_amount,
    validate_slippage,
)

logger = logging.getLogger(__name__)


def select_best(
    ranked: Sequence[Quote],
    preferred_venue: Optional[str],
    tolerance: Decimal = PREFERRED_VENUE_TOLERANCE,
) -> Tuple[Quote, bool]:
    """Pick the top quote, or the preferred venue's if it is close enough.

    Returns the selected quote and whether the preference changed the pick.
    """
    top = ranked[0]
    if not preferred_venue or top.venue_id == preferred_venue:
        return top, False
    for quote in ranked[1:]:
        if quote.venue_id != preferred_venue:
            continue
        shortfall = top.buy_amount - quote.buy_amount
        if shortfall <= top.buy_amount * Fraction(str(tolerance)):
            return quote, True
        break
    return top, False


class QuoteAggregator:
    """Fan a quote request out to every enabled venue and pick the best."""

    def __init__(
        self,
        venues: VenueRegistry,
        *,
        chains: Optional[ChainRegistry] = None,
        preferred_venue: Optional[str] = None,
        adapter_timeout_s: Optional[float] = None,
    ) -> None:
        self.venues = venues
        self.chains = chains or get_chain_registry()
        self.preferred_venue = preferred_venue if preferred_venue is not None else settings.preferred_venue
        self.adapter_timeout_s = adapter_timeout_s or settings.adapter_timeout_seconds

    async def _quote_one(
        self,
        provider: QuoteProvider,
        network: Network,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: Decimal,
        recipient: Optional[str],
    ) -> Quote:
        try:
            return await asyncio.wait_for(
                provider.get_quote(network, sell_asset, buy_asset, sell_amount, slippage, recipient),
                timeout=self.adapter_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Venue %s timed out after %.1fs on network %s",
                provider.venue_id,
                self.adapter_timeout_s,
                network.network_id,
            )
            raise

    async def collect_quotes(
        self,
        network: Network,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: Decimal,
        recipient: Optional[str] = None,
    ) -> List[Quote]:
        """Query all enabled venues for ``network``; failures are dropped."""
        providers = self.venues.venues_for(network.network_id)
        if not providers:
            logger.warning("No enabled venues for network %s", network.network_id)
            return []

        results = await asyncio.gather(
            *(
                self._quote_one(p, network, sell_asset, buy_asset, sell_amount, slippage, recipient)
                for p in providers
            ),
            return_exceptions=True,
        )

        quotes: List[Quote] = []
        for provider, result in zip(providers, results):
            if isinstance(result, Quote):
                quotes.append(result)
            elif isinstance(result, QuoteProviderError):
                logger.info("Venue %s skipped: %s (%s)", provider.venue_id, result.message, result.kind.value)
            elif isinstance(result, asyncio.TimeoutError):
                continue
            elif isinstance(result, Exception):
                logger.error("Venue %s failed unexpectedly: %s", provider.venue_id, result, exc_info=result)
            else:
                # CancelledError and other BaseExceptions are not ours to absorb
                raise result
        return quotes

    async def get_best_quote(
        self,
        network_id: int,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: SlippageLike = DEFAULT_SLIPPAGE,
        recipient: Optional[str] = None,
    ) -> AggregatedResult:
        validate_sell_amount(sell_amount)
        slippage_value = validate_slippage(slippage)
        network = self.chains.get_network_config(network_id)

        quotes = await self.collect_quotes(network, sell_asset, buy_asset, sell_amount, slippage_value, recipient)
        if not quotes:
            raise NoQuotesAvailableError(
                f"No venue returned a quote on {network.name}",
                details={"network_id": network_id, "sell_asset": sell_asset, "buy_asset": buy_asset},
            )

        ranked = rank_quotes(quotes)
        best, preference_applied = select_best(ranked, self.preferred_venue)
        savings = Savings.between(best, ranked[-1])

        logger.info(
            "Best quote on %s: %s buy=%s from %d venue(s)%s",
            network.name,
            best.venue_id,
            best.buy_amount,
            len(ranked),
            " (preferred venue)" if preference_applied else "",
        )
        return AggregatedResult(
            best_quote=best,
            all_quotes=tuple(ranked),
            savings=savings,
            recommended_venue=best.venue_id,
            preference_applied=preference_applied,
        )

    async def venue_quote(
        self,
        venue_id: str,
        network_id: int,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: SlippageLike = DEFAULT_SLIPPAGE,
        recipient: Optional[str] = None,
    ) -> Quote:
        """Quote from a single named venue; its typed error propagates."""
        provider = self.venues.get(venue_id)
        network = self.chains.get_network_config(network_id)
        if not self.venues.is_enabled(venue_id):
            raise VenueUnsupportedError(f"Venue {venue_id} is disabled", venue=venue_id, network_id=network_id)
        try:
            return await asyncio.wait_for(
                provider.get_quote(network, sell_asset, buy_asset, sell_amount, validate_slippage(slippage), recipient),
                timeout=self.adapter_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise VenueTimeoutError(
                f"{venue_id} did not answer within {self.adapter_timeout_s}s",
                venue=venue_id,
                network_id=network_id,
            ) from exc
