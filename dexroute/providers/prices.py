"""
USD token prices for the 9mm networks.

The 9mm price API answers ``{"price": "<usd>"}`` per token address. When it
fails and a subgraph is configured for the network, the token's latest day
price is read from the 9mm GraphQL subgraph instead, falling back to
``derivedETH * ethPriceUSD`` when there is no day data yet.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import httpx
from eth_utils import to_checksum_address

from ..config import Settings, settings as default_settings
from ..core.chains import ChainRegistry, Network, get_chain_registry
from ..core.errors import UnsupportedError, UpstreamUnavailableError
from .base import is_native

logger = logging.getLogger(__name__)

PRICE_API_BASE_URL = "https://price-api.9mm.pro/api/price"
PRICE_API_SLUGS: Dict[int, str] = {
    369: "pulsechain",
    8453: "basechain",
    146: "sonic",
}

# Token priced when the caller names none
DEFAULT_PRICE_TOKENS: Dict[int, str] = {
    369: "0xA1077a294dDE1B09bB078844df40758a5D0f9a27",   # WPLS
    8453: "0xe290816384416fb1dB9225e176b716346dB9f9fE",  # 9MM
    146: "0x039e2fB66102314Ce7b64Ce5Ce3E5183bc94aD38",   # WS
}

SUBGRAPH_URLS: Dict[int, str] = {
    369: "https://graph.9mm.pro/subgraphs/name/pulsechain/9mm-v3-latest",
}

TOKEN_PRICE_QUERY = """
query TokenPrice($tokenAddress: ID!) {
  token(id: $tokenAddress) {
    symbol
    decimals
    derivedETH
    tokenDayData(first: 1, orderBy: date, orderDirection: desc) {
      priceUSD
    }
  }
  bundle(id: "1") {
    ethPriceUSD
  }
}
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenPrice:
    network_id: int
    token: str
    symbol: Optional[str]
    price_usd: Decimal
    source: str
    fetched_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network_id": self.network_id,
            "token": self.token,
            "symbol": self.symbol,
            "price_usd": str(self.price_usd),
            "source": self.source,
            "fetched_at": self.fetched_at.isoformat(),
        }


class TokenPriceFeed:
    """Read-only USD prices; failures surface as ``UpstreamUnavailableError``."""

    def __init__(
        self,
        *,
        registry: Optional[ChainRegistry] = None,
        config: Optional[Settings] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or default_settings
        self._registry = registry
        self._transport = transport
        self.timeout_s = timeout_s or config.adapter_timeout_seconds
        self.base_url = (config.price_api_base_url or PRICE_API_BASE_URL).rstrip("/")
        self.subgraph_urls: Dict[int, str] = (
            {**SUBGRAPH_URLS, **(config.price_subgraph_urls or {})} if config.enable_price_subgraph else {}
        )

    @property
    def registry(self) -> ChainRegistry:
        return self._registry or get_chain_registry()

    @property
    def supported_networks(self) -> List[int]:
        return list(PRICE_API_SLUGS)

    def supports(self, network_id: int) -> bool:
        return network_id in PRICE_API_SLUGS

    async def get_price(self, network_id: int, token: Optional[str] = None) -> TokenPrice:
        """USD price of ``token`` on ``network_id``; the network's reference token when omitted."""
        network = self.registry.get_network_config(network_id)
        if not self.supports(network_id):
            raise UnsupportedError(
                f"No price source for {network.name}",
                details={"network_id": network_id, "supported": self.supported_networks},
            )
        if token is None:
            address = DEFAULT_PRICE_TOKENS[network_id]
        elif is_native(token):
            # The feeds price the wrapped native token
            address = network.wrapped_native
        else:
            address = token
        address = to_checksum_address(address)

        try:
            price = await self._from_price_api(network, address)
            source = "9mm_price_api"
        except UpstreamUnavailableError as exc:
            subgraph_url = self.subgraph_urls.get(network_id)
            if not subgraph_url:
                raise
            logger.info("Price API failed for %s on %s (%s); trying subgraph", address, network.name, exc.message)
            price = await self._from_subgraph(subgraph_url, network, address)
            source = "9mm_subgraph"

        return TokenPrice(
            network_id=network_id,
            token=address,
            symbol=_symbol_for(network, address),
            price_usd=price,
            source=source,
        )

    async def compare_networks(self, symbol: str, network_ids: Optional[Iterable[int]] = None) -> List[TokenPrice]:
        """Price ``symbol`` on every priced network that lists it, highest first.

        Networks whose lookup fails are logged and left out.
        """
        targets = []
        for network_id in network_ids or self.supported_networks:
            if not self.supports(network_id) or not self.registry.has_network(network_id):
                continue
            token = self.registry.get_network_config(network_id).token(symbol)
            if token is not None:
                targets.append((network_id, token.address))
        if not targets:
            raise UnsupportedError(
                f"Token '{symbol}' is not listed on any priced network",
                details={"symbol": symbol},
            )

        results = await asyncio.gather(
            *(self.get_price(network_id, address) for network_id, address in targets),
            return_exceptions=True,
        )
        prices: List[TokenPrice] = []
        for (network_id, _), result in zip(targets, results):
            if isinstance(result, UpstreamUnavailableError):
                logger.warning("No %s price on network %s: %s", symbol, network_id, result.message)
                continue
            if isinstance(result, BaseException):
                raise result
            prices.append(result)

        if not prices:
            raise UpstreamUnavailableError(
                f"No network reported a price for {symbol}",
                details={"symbol": symbol, "network_ids": [nid for nid, _ in targets]},
            )
        return sorted(prices, key=lambda p: p.price_usd, reverse=True)

    async def _from_price_api(self, network: Network, address: str) -> Decimal:
        url = f"{self.base_url}/{PRICE_API_SLUGS[network.network_id]}/"
        body = await self._fetch("GET", url, params={"address": address})
        price = _parse_price(body.get("price") if isinstance(body, dict) else None)
        if price is None:
            raise UpstreamUnavailableError(
                f"9mm price API returned no price for {address} on {network.name}",
                details={"network_id": network.network_id, "token": address},
            )
        return price

    async def _from_subgraph(self, url: str, network: Network, address: str) -> Decimal:
        body = await self._fetch(
            "POST",
            url,
            json={"query": TOKEN_PRICE_QUERY, "variables": {"tokenAddress": address.lower()}},
        )
        data = body.get("data") if isinstance(body, dict) else None
        token = (data or {}).get("token")
        if not token:
            raise UpstreamUnavailableError(
                f"Subgraph has no data for {address} on {network.name}",
                details={"network_id": network.network_id, "token": address},
            )

        day_data = token.get("tokenDayData") or []
        price = _parse_price(day_data[0].get("priceUSD")) if day_data else None
        if not price:
            derived = _parse_price(token.get("derivedETH"))
            eth_usd = _parse_price((data.get("bundle") or {}).get("ethPriceUSD"))
            if derived is not None and eth_usd is not None:
                price = derived * eth_usd
        if not price:
            raise UpstreamUnavailableError(
                f"Subgraph has no price for {address} on {network.name}",
                details={"network_id": network.network_id, "token": address},
            )
        return price

    async def _fetch(self, method: str, url: str, **kwargs) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.request(
                    method,
                    url,
                    headers={"Accept": "application/json", "User-Agent": "dexroute/0.1"},
                    **kwargs,
                )
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"Price source failed: {exc}", details={"url": url}) from exc
        except ValueError as exc:
            raise UpstreamUnavailableError("Price source returned a non-JSON body", details={"url": url}) from exc


def _parse_price(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


def _symbol_for(network: Network, address: str) -> Optional[str]:
    target = address.lower()
    for token in network.tokens.values():
        if token.address.lower() == target:
            return token.symbol
    return None
