"""
Asset reference parsing and per-network address resolution.

Callers name an asset either by symbol ("USDC", "ETH") or by contract
address. ``AssetRef`` captures which one it is; ``TokenResolver`` turns it
into the canonical checksum address once, at the boundary, so the quoting
core only ever sees addresses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from eth_utils import to_checksum_address

from ..core.chains import NATIVE_PLACEHOLDER, ChainRegistry, TokenInfo, get_chain_registry
from ..core.errors import InvalidRequestError, UnsupportedError

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_NATIVE_ALIASES = {"native"}


class AssetKind(str, Enum):
    SYMBOL = "symbol"
    ADDRESS = "address"


@dataclass(frozen=True)
class AssetRef:
    """Either a token symbol or a contract address."""

    kind: AssetKind
    value: str

    @classmethod
    def symbol(cls, value: str) -> "AssetRef":
        return cls(AssetKind.SYMBOL, value.strip().upper())

    @classmethod
    def address(cls, value: str) -> "AssetRef":
        if not _EVM_ADDRESS_RE.match(value.strip()):
            raise InvalidRequestError(f"Not an EVM address: {value!r}", details={"asset": value})
        return cls(AssetKind.ADDRESS, value.strip())

    @classmethod
    def parse(cls, value: Union[str, "AssetRef"]) -> "AssetRef":
        """Classify free-form input; anything shaped like 0x + 40 hex is an address."""
        if isinstance(value, AssetRef):
            return value
        text = (value or "").strip()
        if not text:
            raise InvalidRequestError("Asset must not be empty")
        if text.lower().startswith("0x"):
            return cls.address(text)
        return cls.symbol(text)

    @property
    def is_address(self) -> bool:
        return self.kind is AssetKind.ADDRESS

    def __str__(self) -> str:
        return self.value


class TokenResolver:
    """Resolve ``AssetRef`` values against the chain registry."""

    def __init__(self, registry: Optional[ChainRegistry] = None) -> None:
        self._registry = registry or get_chain_registry()

    def lookup(self, ref: AssetRef, network_id: int) -> Optional[TokenInfo]:
        """Return registry metadata for a symbol or a known address."""
        network = self._registry.get_network_config(network_id)
        if ref.is_address:
            if ref.value.lower() == NATIVE_PLACEHOLDER.lower():
                return network.native_token
            target = ref.value.lower()
            for token in network.tokens.values():
                if token.address.lower() == target:
                    return token
            return None
        if ref.value.lower() in _NATIVE_ALIASES:
            return network.native_token
        return network.token(ref.value)

    def resolve_asset_address(self, ref: Union[str, AssetRef], network_id: int) -> str:
        """Return the checksum address for ``ref`` on ``network_id``.

        Addresses pass through (checksummed). The native unit maps to the
        aggregator placeholder address. Unknown symbols raise
        ``UnsupportedError``.
        """
        ref = AssetRef.parse(ref)
        if ref.is_address:
            # Validate the network even for pass-through addresses
            self._registry.get_network_config(network_id)
            return to_checksum_address(ref.value)

        token = self.lookup(ref, network_id)
        if token is None:
            raise UnsupportedError(
                f"Unknown token '{ref.value}' on network {network_id}",
                details={"asset": ref.value, "network_id": network_id},
            )
        return to_checksum_address(token.address)
