"""1inch swap API v5.2."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import ChainRegistry, Network
from ..core.errors import NoLiquidityError, VenueUnsupportedError
from ..core.swap.models import Quote, TransactionRequest
from .base import HTTPQuoteProvider, is_native, parse_int

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.1inch.dev/swap/v5.2"
ONEINCH_NETWORKS = frozenset({1, 10, 56, 137, 8453, 42161, 43114})


class OneInchProvider(HTTPQuoteProvider):
    venue_id = "1inch"
    display_name = "1inch"

    def __init__(
        self,
        api_key: Optional[str] = None,
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
        self.api_key = api_key if api_key is not None else settings.oneinch_api_key
        self.base_url = (base_url or settings.oneinch_base_url or DEFAULT_BASE_URL).rstrip("/")
        self.supported_networks = ONEINCH_NETWORKS

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def ready(self) -> bool:
        return bool(self.api_key)

    def _require_key(self, network_id: int) -> None:
        if not self.api_key:
            raise VenueUnsupportedError("1inch API key not configured", venue=self.venue_id, network_id=network_id)

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
        self._require_key(network.network_id)

        data = await self._request(
            "GET",
            f"/{network.network_id}/quote",
            base_urls=[self.base_url],
            network_id=network.network_id,
            params={
                "src": sell_asset,
                "dst": buy_asset,
                "amount": str(sell_amount),
                "includeGas": "true",
                "includeProtocols": "true",
            },
        )
        if not isinstance(data, dict):
            raise NoLiquidityError("1inch returned an empty quote", venue=self.venue_id, network_id=network.network_id)

        return Quote.build(
            venue_id=self.venue_id,
            network_id=network.network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=parse_int(data.get("toAmount") or data.get("toTokenAmount")),
            slippage=slippage_value,
            gas_estimate=parse_int(data.get("gas") or data.get("estimatedGas")) or network.gas_limit,
            route=_route_from_protocols(data.get("protocols") or []),
            recipient=recipient,
            raw=data,
        )

    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        self._require_key(quote.network_id)
        base = [self.base_url]
        params = {
            "src": quote.sell_asset,
            "dst": quote.buy_asset,
            "amount": str(quote.sell_amount),
            "from": sender,
            "receiver": quote.recipient or sender,
            # 1inch takes slippage in percent
            "slippage": str(quote.slippage * 100),
            "disableEstimate": "true",
        }
        data = await self._request(
            "GET", f"/{quote.network_id}/swap", base_urls=base, network_id=quote.network_id, params=params
        )
        tx = (data or {}).get("tx") or {}
        if not tx.get("to") or not tx.get("data"):
            raise NoLiquidityError("1inch did not return transaction data", venue=self.venue_id, network_id=quote.network_id)

        allowance_target = None
        if not is_native(quote.sell_asset):
            spender = await self._request(
                "GET", f"/{quote.network_id}/approve/spender", base_urls=base, network_id=quote.network_id
            )
            allowance_target = (spender or {}).get("address")

        return TransactionRequest(
            to=tx["to"],
            data=tx["data"],
            value=parse_int(tx.get("value")),
            gas=parse_int(tx.get("gas")) or None,
            allowance_target=allowance_target,
        )


def _route_from_protocols(protocols: List[Any]) -> List[str]:
    """Flatten 1inch's nested route/hop/part lists to protocol names."""
    names: List[str] = []

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                walk(item)
        elif isinstance(node, dict) and node.get("name") and node["name"] not in names:
            names.append(node["name"])

    walk(protocols)
    return names
