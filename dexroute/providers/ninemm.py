"""9mm swap API (0x-compatible) quotes for PulseChain, Base and Sonic."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import NATIVE_PLACEHOLDER, ChainRegistry, Network
from ..core.errors import NoLiquidityError
from ..core.swap.models import Quote, TransactionRequest
from .base import HTTPQuoteProvider, is_native, parse_int

logger = logging.getLogger(__name__)

DEFAULT_BASE_URLS: Dict[int, str] = {
    369: "https://api.9mm.pro",
    8453: "https://api-base.9mm.pro",
    146: "https://api-sonic.9mm.pro",
}

QUOTE_PATH = "/swap/v1/quote"


class NineMMProvider(HTTPQuoteProvider):
    """Client for the 9mm aggregator's ``/swap/v1/quote`` endpoint.

    Supplying a taker address makes the venue return executable calldata
    (``to``/``data``/``value``) alongside the price.
    """

    venue_id = "9mm"
    display_name = "9mm"

    def __init__(
        self,
        base_urls: Optional[Dict[int, str]] = None,
        *,
        fee_bps: int = 10,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[ChainRegistry] = None,
    ):
        super().__init__(
            timeout_s=timeout_s or settings.adapter_timeout_seconds,
            transport=transport,
            registry=registry,
        )
        self.base_urls: Dict[int, str] = {
            **DEFAULT_BASE_URLS,
            **(settings.ninemm_base_urls or {}),
            **(base_urls or {}),
        }
        self.supported_networks = frozenset(self.base_urls)
        self.fee_bps = fee_bps

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "User-Agent": "dexroute/0.1"}

    @staticmethod
    def _token_param(network: Network, address: str) -> str:
        # Base and Sonic expect the native symbol; PulseChain takes the placeholder
        if is_native(address):
            return NATIVE_PLACEHOLDER if network.network_id == 369 else network.native_symbol
        return address

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
        params: Dict[str, Any] = {
            "sellToken": self._token_param(network, sell_asset),
            "buyToken": self._token_param(network, buy_asset),
            "sellAmount": str(sell_amount),
            "slippagePercentage": str(slippage_value),
        }
        if recipient:
            params["takerAddress"] = recipient

        data = await self._request(
            "GET",
            QUOTE_PATH,
            base_urls=[self.base_urls[network.network_id]],
            network_id=network.network_id,
            params=params,
        )
        if not isinstance(data, dict):
            raise NoLiquidityError("9mm returned an empty quote", venue=self.venue_id, network_id=network.network_id)

        transaction = None
        if recipient and data.get("to") and data.get("data"):
            transaction = TransactionRequest(
                to=data["to"],
                data=data["data"],
                value=parse_int(data.get("value")),
                gas=parse_int(data.get("gas")) or None,
                allowance_target=None if is_native(sell_asset) else data.get("allowanceTarget"),
            )

        impact = data.get("estimatedPriceImpact")
        return Quote.build(
            venue_id=self.venue_id,
            network_id=network.network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=parse_int(data.get("buyAmount")),
            slippage=slippage_value,
            price_impact_bps=int(Decimal(str(impact)) * 100) if impact not in (None, "") else None,
            fee_bps=self.fee_bps,
            gas_estimate=parse_int(data.get("estimatedGas") or data.get("gas")) or network.gas_limit,
            route=_route_from_sources(data.get("sources") or []),
            recipient=recipient,
            transaction=transaction,
            raw=data,
        )

    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        if quote.transaction is not None and quote.recipient and quote.recipient.lower() == sender.lower():
            return quote.transaction

        # Re-quote with the sender as taker to obtain calldata
        network = self.registry.get_network_config(quote.network_id)
        refreshed = await self.get_quote(
            network,
            quote.sell_asset,
            quote.buy_asset,
            quote.sell_amount,
            quote.slippage,
            recipient=sender,
        )
        if refreshed.transaction is None:
            raise NoLiquidityError(
                "9mm did not return transaction data", venue=self.venue_id, network_id=quote.network_id
            )
        return refreshed.transaction


def _route_from_sources(sources: List[Dict[str, Any]]) -> List[str]:
    route = []
    for source in sources:
        try:
            share = Decimal(str(source.get("proportion", "0")))
        except ArithmeticError:
            continue
        if share > 0 and source.get("name"):
            route.append(source["name"])
    return route
