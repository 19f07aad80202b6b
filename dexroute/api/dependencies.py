"""Component wiring for the HTTP surface."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings, settings as default_settings
from ..core.chains import ChainRegistry
from ..core.errors import UnauthorizedError
from ..core.execution.executor import SwapExecutor
from ..core.execution.rpc import ChainClientFactory
from ..core.swap.aggregator import QuoteAggregator
from ..core.swap.comparator import CrossNetworkComparator
from ..core.wallet.session_manager import SessionManager
from ..providers.prices import TokenPriceFeed
from ..providers.registry import VenueRegistry, build_default_registry
from ..providers.v2_router import V2RouterProvider
from ..services.token_resolution import TokenResolver

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Container:
    chains: ChainRegistry
    resolver: TokenResolver
    venues: VenueRegistry
    aggregator: QuoteAggregator
    comparator: CrossNetworkComparator
    sessions: SessionManager
    executor: SwapExecutor
    prices: TokenPriceFeed
    pools: V2RouterProvider


def build_container(
    config: Optional[Settings] = None,
    *,
    chains: Optional[ChainRegistry] = None,
    venues: Optional[VenueRegistry] = None,
    clients: Optional[ChainClientFactory] = None,
    sessions: Optional[SessionManager] = None,
    prices: Optional[TokenPriceFeed] = None,
) -> Container:
    config = config or default_settings
    chains = chains or ChainRegistry(config=config)
    clients = clients or ChainClientFactory()
    venues = venues or build_default_registry(config, chains=chains, clients=clients)
    aggregator = QuoteAggregator(
        venues,
        chains=chains,
        preferred_venue=config.preferred_venue,
        adapter_timeout_s=config.adapter_timeout_seconds,
    )
    resolver = TokenResolver(chains)
    sessions = sessions or SessionManager(config, chains=chains)
    return Container(
        chains=chains,
        resolver=resolver,
        venues=venues,
        aggregator=aggregator,
        comparator=CrossNetworkComparator(aggregator, chains=chains, resolver=resolver),
        sessions=sessions,
        executor=SwapExecutor(sessions, aggregator, chains=chains, clients=clients, config=config),
        prices=prices or TokenPriceFeed(registry=chains, config=config),
        pools=V2RouterProvider(clients, registry=chains, timeout_s=config.adapter_timeout_seconds),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


async def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Raw bearer token; validation happens in the session manager."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")
    return credentials.credentials
