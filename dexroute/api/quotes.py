from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap.constants import DEFAULT_SLIPPAGE
from .dependencies import Container, get_container
from .envelope import ToolResponse, ok

router = APIRouter(prefix="/quotes")


class BestQuoteRequest(BaseModel):
    network: Union[int, str] = Field(description="Chain id or network name")
    sell: str = Field(description="Symbol or address of the asset to sell")
    buy: str = Field(description="Symbol or address of the asset to buy")
    amount: int = Field(ge=0, description="Sell amount in the asset's smallest unit")
    slippage: float = Field(default=float(DEFAULT_SLIPPAGE), gt=0, le=0.1, description="Slippage fraction")
    venue: Optional[str] = Field(default=None, description="Restrict to a single venue")
    recipient: Optional[str] = Field(default=None, description="Taker address for executable quotes")


class CompareRequest(BaseModel):
    sell: str = Field(description="Symbol of the asset to sell")
    buy: str = Field(description="Symbol of the asset to buy")
    amount: int = Field(ge=0, description="Sell amount in the asset's smallest unit")
    slippage: float = Field(default=float(DEFAULT_SLIPPAGE), gt=0, le=0.1)
    network_ids: Optional[List[int]] = Field(default=None, description="Networks to compare; defaults to configured set")


@router.post("/best")
async def post_best_quote(req: BestQuoteRequest, c: Container = Depends(get_container)) -> ToolResponse:
    network = c.chains.resolve(req.network)
    sell = c.resolver.resolve_asset_address(req.sell, network.network_id)
    buy = c.resolver.resolve_asset_address(req.buy, network.network_id)
    slippage = str(req.slippage)

    if req.venue:
        quote = await c.aggregator.venue_quote(
            req.venue, network.network_id, sell, buy, req.amount, slippage, recipient=req.recipient
        )
        return ok({"quote": quote.to_dict()})

    result = await c.aggregator.get_best_quote(
        network.network_id, sell, buy, req.amount, slippage, recipient=req.recipient
    )
    return ok(result.to_dict())


@router.post("/compare")
async def post_compare(req: CompareRequest, c: Container = Depends(get_container)) -> ToolResponse:
    ranked = await c.comparator.compare_across_networks(
        req.sell, req.buy, req.amount, str(req.slippage), network_ids=req.network_ids
    )
    return ok({"best_network": ranked[0].network_id, "networks": [nq.to_dict() for nq in ranked]})


meta_router = APIRouter()


@meta_router.get("/venues")
async def get_venues(network_id: Optional[int] = None, c: Container = Depends(get_container)) -> ToolResponse:
    if network_id is not None:
        return ok([p.info() for p in c.venues.venues_for(network_id)])
    return ok(c.venues.describe())


@meta_router.get("/networks")
async def get_networks(c: Container = Depends(get_container)) -> ToolResponse:
    return ok(
        [
            {
                "network_id": n.network_id,
                "name": n.name,
                "native_symbol": n.native_symbol,
                "explorer_url": n.explorer_url,
                "tokens": sorted(n.tokens),
                "venues": [p.venue_id for p in c.venues.venues_for(n.network_id)],
            }
            for n in c.chains.list_networks()
        ]
    )
