"""ParaSwap v5 price and transaction-building API."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import ChainRegistry, Network
from ..core.errors import NoLiquidityError
from ..core.swap.models import Quote, TransactionRequest
from .base import HTTPQuoteProvider, is_native, parse_int, token_decimals

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://apiv5.paraswap.io"
PARASWAP_NETWORKS = frozenset({1, 10, 56, 137, 8453, 42161, 43114})
PARTNER = "dexroute"


class ParaSwapProvider(HTTPQuoteProvider):
    venue_id = "paraswap"
    display_name = "ParaSwap"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[ChainRegistry] = None,
    ):
        super().__init__(
            timeout_s=timeout_s or settings.adapter_timeout_seconds,
            transport=transport,
            registry=registry,
        )
        self.base_url = (base_url or settings.paraswap_base_url or DEFAULT_BASE_URL).rstrip("/")
        self.supported_networks = PARASWAP_NETWORKS

    async def get_quote(
        self,
        network: Network,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: Any,
        recipient: Optional[str] = None,
    ) -> Quote:
        slippage_value = self._check_request(network, sell_amount, slippage)
        data = await self._request(
            "GET",
            "/prices",
            base_urls=[self.base_url],
            network_id=network.network_id,
            params={
                "srcToken": sell_asset,
                "destToken": buy_asset,
                "amount": str(sell_amount),
                "srcDecimals": token_decimals(network, sell_asset),
                "destDecimals": token_decimals(network, buy_asset),
                "side": "SELL",
                "network": network.network_id,
            },
        )
        price_route = (data or {}).get("priceRoute")
        if not price_route:
            raise NoLiquidityError(
                f"ParaSwap found no route: {(data or {}).get('error', 'empty response')}",
                venue=self.venue_id,
                network_id=network.network_id,
            )

        return Quote.build(
            venue_id=self.venue_id,
            network_id=network.network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=parse_int(price_route.get("destAmount")),
            slippage=slippage_value,
            price_impact_bps=_usd_impact_bps(price_route),
            gas_estimate=parse_int(price_route.get("gasCost")) or network.gas_limit,
            route=_route_from_price_route(price_route),
            recipient=recipient,
            raw=data,
        )

    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        price_route = (quote.raw or {}).get("priceRoute")
        if not price_route:
            raise NoLiquidityError(
                "Quote carries no ParaSwap price route", venue=self.venue_id, network_id=quote.network_id
            )
        body: Dict[str, Any] = {
            "srcToken": quote.sell_asset,
            "destToken": quote.buy_asset,
            "srcAmount": str(quote.sell_amount),
            "destAmount": str(quote.min_buy_amount),
            "priceRoute": price_route,
            "userAddress": sender,
            "receiver": quote.recipient or sender,
            "partner": PARTNER,
        }
        tx = await self._request(
            "POST",
            f"/transactions/{quote.network_id}",
            base_urls=[self.base_url],
            network_id=quote.network_id,
            params={"ignoreChecks": "true"},
            json=body,
        )
        if not isinstance(tx, dict) or not tx.get("to") or not tx.get("data"):
            raise NoLiquidityError(
                "ParaSwap did not return transaction data", venue=self.venue_id, network_id=quote.network_id
            )
        return TransactionRequest(
            to=tx["to"],
            data=tx["data"],
            value=parse_int(tx.get("value")),
            gas=parse_int(tx.get("gas")) or None,
            allowance_target=None if is_native(quote.sell_asset) else price_route.get("tokenTransferProxy"),
        )


def _usd_impact_bps(price_route: Dict[str, Any]) -> Optional[int]:
    try:
        src_usd = Decimal(str(price_route.get("srcUSD")))
        dest_usd = Decimal(str(price_route.get("destUSD")))
    except (InvalidOperation, ValueError):
        return None
    if src_usd <= 0:
        return None
    return max(int((src_usd - dest_usd) / src_usd * 10_000), 0)


def _route_from_price_route(price_route: Dict[str, Any]) -> List[str]:
    names: List[str] = []
    for leg in price_route.get("bestRoute") or []:
        for swap in leg.get("swaps") or []:
            for exchange in swap.get("swapExchanges") or []:
                name = exchange.get("exchange")
                if name and name not in names:
                    names.append(name)
    return names
