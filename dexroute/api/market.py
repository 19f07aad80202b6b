from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from .dependencies import Container, get_container
from .envelope import ToolResponse, ok

router = APIRouter()


@router.get("/prices")
async def get_price(
    network: str,
    token: Optional[str] = Query(default=None, description="Symbol or address; defaults to the reference token"),
    c: Container = Depends(get_container),
) -> ToolResponse:
    net = c.chains.resolve(network)
    address = c.resolver.resolve_asset_address(token, net.network_id) if token else None
    price = await c.prices.get_price(net.network_id, address)
    return ok(price.to_dict())


@router.get("/prices/compare")
async def compare_prices(
    symbol: str,
    network_ids: Optional[List[int]] = Query(default=None),
    c: Container = Depends(get_container),
) -> ToolResponse:
    prices = await c.prices.compare_networks(symbol, network_ids)
    return ok({"symbol": symbol.upper(), "best_network": prices[0].network_id, "prices": [p.to_dict() for p in prices]})


@router.get("/pools")
async def get_pool(
    network: str,
    token_a: str,
    token_b: str,
    c: Container = Depends(get_container),
) -> ToolResponse:
    net = c.chains.resolve(network)
    a = c.resolver.resolve_asset_address(token_a, net.network_id)
    b = c.resolver.resolve_asset_address(token_b, net.network_id)
    pool = await c.pools.pool_info(net, a, b)
    return ok(pool.to_dict())
