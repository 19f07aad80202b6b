"""Compare the best achievable output for a symbol pair across networks."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from ...config import settings
from ...services.token_resolution import AssetRef, TokenResolver
from ..chains import ChainRegistry, get_chain_registry
from ..errors import NoQuotesAvailableError, SwapError
from .aggregator import QuoteAggregator
from .constants import DEFAULT_SLIPPAGE
from .models import NetworkQuote, SlippageLike, validate_sell_amount, validate_slippage

logger = logging.getLogger(__name__)


class CrossNetworkComparator:
    def __init__(
        self,
        aggregator: QuoteAggregator,
        *,
        chains: Optional[ChainRegistry] = None,
        resolver: Optional[TokenResolver] = None,
    ) -> None:
        self.aggregator = aggregator
        self.chains = chains or aggregator.chains or get_chain_registry()
        self.resolver = resolver or TokenResolver(self.chains)

    async def _network_quote(
        self,
        network_id: int,
        sell_symbol: str,
        buy_symbol: str,
        sell_amount: int,
        slippage: SlippageLike,
    ) -> NetworkQuote:
        network = self.chains.get_network_config(network_id)
        sell_asset = self.resolver.resolve_asset_address(AssetRef.symbol(sell_symbol), network_id)
        buy_asset = self.resolver.resolve_asset_address(AssetRef.symbol(buy_symbol), network_id)
        result = await self.aggregator.get_best_quote(network_id, sell_asset, buy_asset, sell_amount, slippage)
        return NetworkQuote(
            network_id=network_id,
            network_name=network.name,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            result=result,
        )

    async def compare_across_networks(
        self,
        sell_symbol: str,
        buy_symbol: str,
        sell_amount: int,
        slippage: SlippageLike = DEFAULT_SLIPPAGE,
        network_ids: Optional[Iterable[int]] = None,
    ) -> List[NetworkQuote]:
        """Best quote per network, ordered by buy amount (best first).

        A network that fails for any reason, including an unknown symbol, is
        left out. Raises ``NoQuotesAvailableError`` only when all fail.
        """
        validate_sell_amount(sell_amount)
        slippage_value = validate_slippage(slippage)
        targets = list(network_ids) if network_ids is not None else list(settings.default_network_ids)

        results = await asyncio.gather(
            *(self._network_quote(nid, sell_symbol, buy_symbol, sell_amount, slippage_value) for nid in targets),
            return_exceptions=True,
        )

        found: List[NetworkQuote] = []
        for network_id, result in zip(targets, results):
            if isinstance(result, NetworkQuote):
                found.append(result)
            elif isinstance(result, SwapError):
                logger.info("Network %s omitted from comparison: %s", network_id, result.message)
            elif isinstance(result, Exception):
                logger.error("Network %s comparison failed: %s", network_id, result, exc_info=result)
            else:
                raise result

        if not found:
            raise NoQuotesAvailableError(
                f"No network produced a quote for {sell_symbol}/{buy_symbol}",
                details={"network_ids": targets},
            )
        return sorted(found, key=lambda nq: nq.buy_amount, reverse=True)

    async def best_network_for_pair(
        self,
        sell_symbol: str,
        buy_symbol: str,
        sell_amount: int,
        slippage: SlippageLike = DEFAULT_SLIPPAGE,
        network_ids: Optional[Iterable[int]] = None,
    ) -> NetworkQuote:
        ranked = await self.compare_across_networks(sell_symbol, buy_symbol, sell_amount, slippage, network_ids)
        return ranked[0]
