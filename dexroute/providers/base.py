from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional

import httpx

from ..core.chains import NATIVE_PLACEHOLDER, ChainRegistry, Network, get_chain_registry
from ..core.errors import NoLiquidityError, VenueTimeoutError, VenueUnsupportedError
from ..core.swap.models import Quote, TransactionRequest, validate_sell_amount, validate_slippage


class QuoteProvider(ABC):
    """Base interface for a swap venue."""

    venue_id: str
    display_name: str
    timeout_s: float = 10
    supported_networks: FrozenSet[int] = frozenset()

    def supports(self, network_id: int) -> bool:
        return network_id in self.supported_networks

    def _check_request(self, network: Network, sell_amount: int, slippage: Any) -> Decimal:
        """Shared argument validation; returns the slippage as ``Decimal``."""
        validate_sell_amount(sell_amount)
        slippage_value = validate_slippage(slippage)
        if not self.supports(network.network_id):
            raise VenueUnsupportedError(
                f"{self.display_name} does not serve {network.name}",
                venue=self.venue_id,
                network_id=network.network_id,
            )
        return slippage_value

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {
            "venue": self.venue_id,
            "status": "ok" if await self.ready() else "unavailable",
            "networks": sorted(self.supported_networks),
        }

    def info(self) -> Dict[str, Any]:
        return {
            "venue": self.venue_id,
            "name": self.display_name,
            "networks": sorted(self.supported_networks),
        }

    @abstractmethod
    async def get_quote(
        self,
        network: Network,
        sell_asset: str,
        buy_asset: str,
        sell_amount: int,
        slippage: Any,
        recipient: Optional[str] = None,
    ) -> Quote:
        """Return a normalized quote or raise a ``QuoteProviderError``."""
        pass

    @abstractmethod
    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        """Return the call that realizes ``quote`` for ``sender``."""
        pass


class HTTPQuoteProvider(QuoteProvider):
    """Venue reached over an HTTP API, with host fallback."""

    def __init__(
        self,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[ChainRegistry] = None,
    ):
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._transport = transport
        self._registry = registry

    @property
    def registry(self) -> ChainRegistry:
        return self._registry or get_chain_registry()

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        base_urls: List[str],
        network_id: Optional[int] = None,
        **kwargs,
    ) -> Any:
        last_error: Optional[Exception] = None

        for index, base_url in enumerate(base_urls):
            try:
                async with httpx.AsyncClient(
                    base_url=base_url, timeout=self.timeout_s, transport=self._transport
                ) as client:
                    resp = await client.request(method, path, headers=self._headers(), **kwargs)
                    resp.raise_for_status()
                    return resp.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in (404, 405) and index < len(base_urls) - 1:
                    last_error = exc
                    continue
                if 400 <= status < 500:
                    # Venues answer unroutable pairs with a client error
                    raise NoLiquidityError(
                        f"{self.display_name} rejected the quote request ({status}): {_error_text(exc.response)}",
                        venue=self.venue_id,
                        network_id=network_id,
                    ) from exc
                last_error = exc
            except httpx.RequestError as exc:
                last_error = exc
                continue

        raise VenueTimeoutError(
            f"{self.display_name} unreachable: {last_error}",
            venue=self.venue_id,
            network_id=network_id,
        ) from last_error


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("description") or body.get("error") or body.get("reason") or body)[:200]
    return str(body)[:200]


def is_native(address: str) -> bool:
    return address.lower() == NATIVE_PLACEHOLDER.lower()


def token_decimals(network: Network, address: str) -> int:
    """Decimals from the registry; unknown tokens are assumed to use 18."""
    if is_native(address):
        return 18
    target = address.lower()
    for token in network.tokens.values():
        if token.address.lower() == target:
            return token.decimals
    return 18


def parse_int(value: Any) -> int:
    """Venue amounts arrive as decimal strings, hex strings or numbers."""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value)
    if text.startswith("0x"):
        return int(text, 16)
    return int(Decimal(text))
