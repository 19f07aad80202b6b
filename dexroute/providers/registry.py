"""Injected set of quote venues with runtime enable/disable toggles."""

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..core.chains import ChainRegistry
from ..core.errors import UnsupportedError
from ..core.execution.rpc import ChainClientFactory
from .base import QuoteProvider
from .ninemm import NineMMProvider
from .oneinch import OneInchProvider
from .paraswap import ParaSwapProvider
from .v2_router import V2RouterProvider

logger = logging.getLogger(__name__)


class VenueRegistry:
    """Ordered venue set; registration order breaks ranking ties."""

    def __init__(self, providers: Iterable[QuoteProvider] = (), *, disabled: Iterable[str] = ()):
        self._providers: Dict[str, QuoteProvider] = {}
        self._enabled: Dict[str, bool] = {}
        for provider in providers:
            self.register(provider)
        for venue_id in disabled:
            self.set_enabled(venue_id, False)

    def register(self, provider: QuoteProvider, *, enabled: bool = True) -> None:
        if provider.venue_id in self._providers:
            raise ValueError(f"Venue '{provider.venue_id}' already registered")
        self._providers[provider.venue_id] = provider
        self._enabled[provider.venue_id] = enabled

    def get(self, venue_id: str) -> QuoteProvider:
        provider = self._providers.get(venue_id)
        if provider is None:
            raise UnsupportedError(f"Unknown venue '{venue_id}'", details={"venue": venue_id})
        return provider

    def set_enabled(self, venue_id: str, enabled: bool) -> None:
        self.get(venue_id)
        self._enabled[venue_id] = enabled
        logger.info("Venue %s %s", venue_id, "enabled" if enabled else "disabled")

    def is_enabled(self, venue_id: str) -> bool:
        return self._enabled.get(venue_id, False)

    def venues_for(self, network_id: int) -> List[QuoteProvider]:
        """Enabled venues serving ``network_id``, in registration order."""
        return [
            provider
            for venue_id, provider in self._providers.items()
            if self._enabled[venue_id] and provider.supports(network_id)
        ]

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {**provider.info(), "enabled": self._enabled[venue_id]}
            for venue_id, provider in self._providers.items()
        ]

    def __iter__(self):
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)


def build_default_registry(
    config: Optional[Settings] = None,
    *,
    chains: Optional[ChainRegistry] = None,
    clients: Optional[ChainClientFactory] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VenueRegistry:
    """Assemble the standard venues, honoring the per-venue toggles."""
    config = config or default_settings
    providers: List[QuoteProvider] = [
        NineMMProvider(transport=transport, registry=chains),
        V2RouterProvider(clients, registry=chains),
        OneInchProvider(transport=transport, registry=chains),
        ParaSwapProvider(transport=transport, registry=chains),
    ]
    toggles = {
        "9mm": config.enable_ninemm,
        "9mm_v2": config.enable_ninemm_v2,
        "1inch": config.enable_oneinch,
        "paraswap": config.enable_paraswap,
    }
    return VenueRegistry(providers, disabled=[venue for venue, on in toggles.items() if not on])
