import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import pytest

from dexroute.config import Settings
from dexroute.core.chains import ChainRegistry, Network
from dexroute.core.errors import NoLiquidityError
from dexroute.core.swap.models import Quote, TransactionRequest
from dexroute.providers.base import QuoteProvider
from dexroute.providers.registry import VenueRegistry

BASE = 8453
PULSE = 369
SONIC = 146

USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WETH_BASE = "0x4200000000000000000000000000000000000006"
ROUTER = "0x1111111111111111111111111111111111111111"


class StubProvider(QuoteProvider):
    """Venue double returning a fixed buy amount, raising, or stalling."""

    def __init__(
        self,
        venue_id: str,
        buy_amount: int = 0,
        *,
        networks=(BASE, PULSE, SONIC),
        error: Optional[Exception] = None,
        delay: float = 0.0,
        allowance_target: Optional[str] = ROUTER,
        build_error: Optional[Exception] = None,
    ):
        self.venue_id = venue_id
        self.display_name = venue_id
        self.buy_amount = buy_amount
        self.supported_networks = frozenset(networks)
        self.error = error
        self.delay = delay
        self.allowance_target = allowance_target
        self.build_error = build_error
        self.calls: List[dict] = []
        self.built: List[Quote] = []

    async def get_quote(self, network: Network, sell_asset, buy_asset, sell_amount, slippage, recipient=None):
        self.calls.append({"network_id": network.network_id, "sell": sell_asset, "buy": buy_asset})
        slippage_value = self._check_request(network, sell_amount, slippage)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        amount = self.buy_amount(network.network_id) if callable(self.buy_amount) else self.buy_amount
        return Quote.build(
            venue_id=self.venue_id,
            network_id=network.network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=amount,
            slippage=slippage_value,
            recipient=recipient,
        )

    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        if self.build_error is not None:
            raise self.build_error
        self.built.append(quote)
        return TransactionRequest(to=ROUTER, data="0xdeadbeef", value=0, gas=250_000, allowance_target=self.allowance_target)


def no_liquidity(venue: str) -> NoLiquidityError:
    return NoLiquidityError(f"{venue} has no route", venue=venue, network_id=BASE)


def make_quote(
    venue_id: str = "9mm",
    buy_amount: int = 1_000,
    *,
    network_id: int = BASE,
    sell_asset: str = USDC_BASE,
    buy_asset: str = WETH_BASE,
    sell_amount: int = 1_000_000,
    slippage: Any = "0.005",
    now: Optional[datetime] = None,
    recipient: Optional[str] = None,
) -> Quote:
    return Quote.build(
        venue_id=venue_id,
        network_id=network_id,
        sell_asset=sell_asset,
        buy_asset=buy_asset,
        sell_amount=sell_amount,
        buy_amount=buy_amount,
        slippage=slippage,
        now=now,
        recipient=recipient,
    )


def expired_quote(**kwargs) -> Quote:
    return make_quote(now=datetime.now(timezone.utc) - timedelta(minutes=5), **kwargs)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        jwt_secret="test-secret-for-dexroute-sessions-0123456789",
        session_inactivity_hours=24,
        reaper_interval_seconds=3600,
        confirmation_timeout_seconds=3,
        confirmation_poll_seconds=1,
        default_network_ids=[BASE, PULSE, SONIC],
        preferred_venue="9mm",
    )


@pytest.fixture
def chains(test_settings) -> ChainRegistry:
    return ChainRegistry(config=test_settings)


@pytest.fixture
def make_registry():
    def _make(*providers: QuoteProvider) -> VenueRegistry:
        return VenueRegistry(providers)

    return _make
