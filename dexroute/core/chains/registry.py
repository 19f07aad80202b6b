"""
Chain registry - static per-network configuration.

Loaded once from ``NETWORK_METADATA`` with RPC URL overrides applied from
settings, then read-only. Lookups by numeric chain id or by alias.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...config import Settings, settings as default_settings
from ..errors import UnsupportedError
from .constants import NATIVE_PLACEHOLDER, NETWORK_METADATA

logger = logging.getLogger(__name__)

WEI_PER_GWEI = 10**9


@dataclass(frozen=True)
class TokenInfo:
    """A well-known token on one network."""
    symbol: str
    address: str
    decimals: int
    network_id: int
    is_native: bool = False


@dataclass(frozen=True)
class Network:
    """Immutable network configuration."""
    network_id: int
    name: str
    native_symbol: str
    wrapped_native: str
    rpc_url: str
    explorer_url: str
    gas_price_hint_wei: int
    gas_limit: int
    fee_tiers: Mapping[str, int] = field(default_factory=dict)
    aliases: Tuple[str, ...] = ()
    v2_router: Optional[str] = None
    v2_factory: Optional[str] = None
    tokens: Mapping[str, TokenInfo] = field(default_factory=dict)

    @property
    def native_token(self) -> TokenInfo:
        return TokenInfo(
            symbol=self.native_symbol,
            address=NATIVE_PLACEHOLDER,
            decimals=18,
            network_id=self.network_id,
            is_native=True,
        )

    def token(self, symbol: str) -> Optional[TokenInfo]:
        key = symbol.strip().upper()
        if key == self.native_symbol.upper():
            return self.native_token
        return self.tokens.get(key)

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


def _build_network(network_id: int, data: Dict[str, Any], config: Settings) -> Network:
    name = data["name"]
    tokens = {
        symbol.upper(): TokenInfo(
            symbol=symbol.upper(),
            address=meta["address"],
            decimals=int(meta["decimals"]),
            network_id=network_id,
        )
        for symbol, meta in (data.get("tokens") or {}).items()
    }
    gas_hint_wei = int(Decimal(str(data["gas_price_hint_gwei"])) * WEI_PER_GWEI)
    return Network(
        network_id=network_id,
        name=name,
        native_symbol=data["native_symbol"],
        wrapped_native=data["wrapped_native"],
        rpc_url=config.rpc_url_override(name) or data["rpc_url"],
        explorer_url=data["explorer_url"],
        gas_price_hint_wei=gas_hint_wei,
        gas_limit=int(data["gas_limit"]),
        fee_tiers=dict(data.get("fee_tiers") or {}),
        aliases=tuple(a.lower() for a in data.get("aliases", [])),
        v2_router=data.get("v2_router"),
        v2_factory=data.get("v2_factory"),
        tokens=tokens,
    )


class ChainRegistry:
    """Read-only lookup of supported networks.

    Usage:
        registry = ChainRegistry()
        base = registry.get_network_config(8453)
        pulse = registry.resolve("pulsechain")
    """

    def __init__(
        self,
        metadata: Optional[Dict[int, Dict[str, Any]]] = None,
        *,
        config: Optional[Settings] = None,
    ) -> None:
        config = config or default_settings
        self._networks: Dict[int, Network] = {}
        self._alias_to_id: Dict[str, int] = {}
        for network_id, data in (metadata or NETWORK_METADATA).items():
            network = _build_network(network_id, data, config)
            self._networks[network_id] = network
            self._alias_to_id.setdefault(network.name.lower(), network_id)
            for alias in network.aliases:
                # First registration wins
                self._alias_to_id.setdefault(alias, network_id)
        logger.info("Chain registry loaded %d networks", len(self._networks))

    def get_network_config(self, network_id: int) -> Network:
        """Return the network config or raise ``UnsupportedError``."""
        network = self._networks.get(network_id)
        if network is None:
            raise UnsupportedError(
                f"Network {network_id} is not supported",
                details={"network_id": network_id},
            )
        return network

    def resolve(self, chain: str | int) -> Network:
        """Accept a chain id, a numeric string, or an alias."""
        if isinstance(chain, int):
            return self.get_network_config(chain)
        text = chain.strip().lower()
        if text.isdigit():
            return self.get_network_config(int(text))
        network_id = self._alias_to_id.get(text)
        if network_id is None:
            raise UnsupportedError(f"Unknown network '{chain}'", details={"network": chain})
        return self._networks[network_id]

    def has_network(self, network_id: int) -> bool:
        return network_id in self._networks

    def list_networks(self) -> List[Network]:
        return list(self._networks.values())

    @property
    def network_ids(self) -> List[int]:
        return list(self._networks.keys())


_chain_registry: Optional[ChainRegistry] = None


def get_chain_registry() -> ChainRegistry:
    """Get the process-wide registry built from default settings."""
    global _chain_registry
    if _chain_registry is None:
        _chain_registry = ChainRegistry()
    return _chain_registry
