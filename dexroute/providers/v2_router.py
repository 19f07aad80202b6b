"""
On-chain quotes from a network's Uniswap-V2-style router.

``getAmountsOut`` is read through ``eth_call``; price impact is derived by
comparing the quoted rate with the rate for a small spot-read amount. Swap
calldata is encoded locally.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from ..config import settings
from ..core.chains import ChainRegistry, Network, get_chain_registry
from ..core.errors import NoLiquidityError, VenueTimeoutError, VenueUnsupportedError
from ..core.execution.rpc import ChainClientFactory, RPCError, function_selector
from ..core.swap.models import Quote, TransactionRequest
from .base import QuoteProvider, is_native

logger = logging.getLogger(__name__)

GET_AMOUNTS_OUT = function_selector("getAmountsOut(uint256,address[])")
SWAP_EXACT_TOKENS_FOR_TOKENS = function_selector(
    "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)"
)
SWAP_EXACT_ETH_FOR_TOKENS = function_selector("swapExactETHForTokens(uint256,address[],address,uint256)")
SWAP_EXACT_TOKENS_FOR_ETH = function_selector(
    "swapExactTokensForETH(uint256,uint256,address[],address,uint256)"
)

GET_PAIR = function_selector("getPair(address,address)")
GET_RESERVES = function_selector("getReserves()")
TOTAL_SUPPLY = function_selector("totalSupply()")
TOKEN0 = function_selector("token0()")

# Size of the spot-rate read relative to the requested amount
SPOT_DIVISOR = 1000


@dataclass(frozen=True)
class PoolInfo:
    """Reserves of one V2 pair, in token0/token1 order."""

    network_id: int
    pair_address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    total_supply: int
    fee_bps: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network_id": self.network_id,
            "pair_address": self.pair_address,
            "token0": self.token0,
            "token1": self.token1,
            "reserve0": str(self.reserve0),
            "reserve1": str(self.reserve1),
            "total_supply": str(self.total_supply),
            "fee_bps": self.fee_bps,
        }


class V2RouterProvider(QuoteProvider):
    venue_id = "9mm_v2"
    display_name = "9mm V2 Router"

    def __init__(
        self,
        clients: Optional[ChainClientFactory] = None,
        *,
        registry: Optional[ChainRegistry] = None,
        timeout_s: Optional[float] = None,
    ):
        self._registry = registry
        self._clients = clients or ChainClientFactory()
        self.timeout_s = timeout_s or settings.adapter_timeout_seconds
        self.supported_networks = frozenset(
            network.network_id for network in self.registry.list_networks() if network.v2_router
        )

    @property
    def registry(self) -> ChainRegistry:
        return self._registry or get_chain_registry()

    def _path(self, network: Network, sell_asset: str, buy_asset: str) -> List[str]:
        wrapped = network.wrapped_native
        sell = wrapped if is_native(sell_asset) else sell_asset
        buy = wrapped if is_native(buy_asset) else buy_asset
        if sell.lower() == buy.lower():
            raise NoLiquidityError(
                "Sell and buy resolve to the same token", venue=self.venue_id, network_id=network.network_id
            )
        return [to_checksum_address(sell), to_checksum_address(buy)]

    async def _amounts_out(self, network: Network, amount_in: int, path: List[str]) -> int:
        data = GET_AMOUNTS_OUT + encode(["uint256", "address[]"], [amount_in, path])
        client = self._clients.for_network(network)
        try:
            result = await client.call(network.v2_router, data)
        except RPCError as exc:
            if "revert" in str(exc).lower() or exc.code == 3:
                # Router reverts when the pair does not exist or is empty
                raise NoLiquidityError(
                    f"No V2 pool for the pair on {network.name}", venue=self.venue_id, network_id=network.network_id
                ) from exc
            raise VenueTimeoutError(str(exc), venue=self.venue_id, network_id=network.network_id) from exc
        if not result:
            raise NoLiquidityError("Router returned no data", venue=self.venue_id, network_id=network.network_id)
        (amounts,) = decode(["uint256[]"], result)
        return amounts[-1]

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
        if not network.v2_router:
            raise VenueUnsupportedError(
                f"No V2 router on {network.name}", venue=self.venue_id, network_id=network.network_id
            )
        path = self._path(network, sell_asset, buy_asset)
        spot_in = max(sell_amount // SPOT_DIVISOR, 1)

        buy_amount, spot_out = await asyncio.gather(
            self._amounts_out(network, sell_amount, path),
            self._amounts_out(network, spot_in, path),
        )

        return Quote.build(
            venue_id=self.venue_id,
            network_id=network.network_id,
            sell_asset=sell_asset,
            buy_asset=buy_asset,
            sell_amount=sell_amount,
            buy_amount=buy_amount,
            slippage=slippage_value,
            price_impact_bps=price_impact_bps(sell_amount, buy_amount, spot_in, spot_out),
            fee_bps=network.fee_tiers.get("v2", 30),
            gas_estimate=network.gas_limit,
            route=[f"{self.display_name}:{'>'.join(path)}"],
            recipient=recipient,
            raw={"path": path, "router": network.v2_router},
        )

    async def pool_info(self, network: Network, token_a: str, token_b: str) -> PoolInfo:
        """Read the factory pair for two tokens along with its reserves and LP supply."""
        if not network.v2_factory:
            raise VenueUnsupportedError(
                f"No V2 factory on {network.name}", venue=self.venue_id, network_id=network.network_id
            )
        sell, buy = self._path(network, token_a, token_b)
        client = self._clients.for_network(network)
        try:
            raw = await client.call(network.v2_factory, GET_PAIR + encode(["address", "address"], [sell, buy]))
            (pair,) = decode(["address"], raw)
            if int(pair, 16) == 0:
                raise NoLiquidityError(
                    f"No V2 pool for the pair on {network.name}", venue=self.venue_id, network_id=network.network_id
                )
            pair = to_checksum_address(pair)
            reserves_raw, supply_raw, token0_raw = await asyncio.gather(
                client.call(pair, GET_RESERVES),
                client.call(pair, TOTAL_SUPPLY),
                client.call(pair, TOKEN0),
            )
            reserve0, reserve1, _ = decode(["uint112", "uint112", "uint32"], reserves_raw)
            (total_supply,) = decode(["uint256"], supply_raw)
            (token0,) = decode(["address"], token0_raw)
        except RPCError as exc:
            raise VenueTimeoutError(str(exc), venue=self.venue_id, network_id=network.network_id) from exc
        except DecodingError as exc:
            raise NoLiquidityError(
                f"Pair contract on {network.name} returned malformed data",
                venue=self.venue_id,
                network_id=network.network_id,
            ) from exc

        token0 = to_checksum_address(token0)
        token1 = buy if token0.lower() == sell.lower() else sell
        return PoolInfo(
            network_id=network.network_id,
            pair_address=pair,
            token0=token0,
            token1=token1,
            reserve0=reserve0,
            reserve1=reserve1,
            total_supply=total_supply,
            fee_bps=network.fee_tiers.get("v2", 30),
        )

    async def build_swap_transaction(self, quote: Quote, sender: str) -> TransactionRequest:
        network = self.registry.get_network_config(quote.network_id)
        if not network.v2_router:
            raise VenueUnsupportedError(
                f"No V2 router on {network.name}", venue=self.venue_id, network_id=network.network_id
            )
        path = self._path(network, quote.sell_asset, quote.buy_asset)
        to = to_checksum_address(quote.recipient or sender)
        deadline = int(time.time()) + settings.swap_deadline_seconds

        if is_native(quote.sell_asset):
            data = SWAP_EXACT_ETH_FOR_TOKENS + encode(
                ["uint256", "address[]", "address", "uint256"],
                [quote.min_buy_amount, path, to, deadline],
            )
            value = quote.sell_amount
        else:
            selector = SWAP_EXACT_TOKENS_FOR_ETH if is_native(quote.buy_asset) else SWAP_EXACT_TOKENS_FOR_TOKENS
            data = selector + encode(
                ["uint256", "uint256", "address[]", "address", "uint256"],
                [quote.sell_amount, quote.min_buy_amount, path, to, deadline],
            )
            value = 0

        return TransactionRequest(
            to=to_checksum_address(network.v2_router),
            data="0x" + data.hex(),
            value=value,
            gas=network.gas_limit,
            allowance_target=None if value else to_checksum_address(network.v2_router),
        )


def price_impact_bps(amount_in: int, amount_out: int, spot_in: int, spot_out: int) -> Optional[int]:
    """Shortfall of the executed rate versus the spot rate, in bps."""
    if spot_out <= 0 or amount_in <= 0:
        return None
    # 1 - (out/in) / (spot_out/spot_in)
    numerator = spot_out * amount_in - amount_out * spot_in
    denominator = spot_out * amount_in
    return max(numerator * 10_000 // denominator, 0)
