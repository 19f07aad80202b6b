from typing import Optional, Union

from eth_utils import to_checksum_address
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap.constants import DEFAULT_SLIPPAGE, MAX_UINT256
from ..services.token_resolution import AssetRef
from .dependencies import Container, bearer_token, get_container
from .envelope import ToolResponse, ok

router = APIRouter(prefix="/swaps")


class ExecuteSwapRequest(BaseModel):
    network: Union[int, str]
    sell: str
    buy: str
    amount: int = Field(ge=0, description="Sell amount in the asset's smallest unit")
    slippage: float = Field(default=float(DEFAULT_SLIPPAGE), gt=0, le=0.1)


class ApproveRequest(BaseModel):
    network: Union[int, str]
    token: str = Field(description="Symbol or address of the ERC-20 token")
    spender: str = Field(description="Address allowed to spend the token")
    amount: Optional[int] = Field(default=None, ge=0, description="Allowance; unlimited when omitted")


@router.post("/execute")
async def execute_swap(
    req: ExecuteSwapRequest,
    token: str = Depends(bearer_token),
    c: Container = Depends(get_container),
) -> ToolResponse:
    c.sessions.require_session(token)
    network = c.chains.resolve(req.network)
    sell = c.resolver.resolve_asset_address(req.sell, network.network_id)
    buy = c.resolver.resolve_asset_address(req.buy, network.network_id)
    result = await c.executor.execute(token, network.network_id, sell, buy, req.amount, str(req.slippage))
    return ok(result.to_dict())


@router.post("/approve")
async def approve_token(
    req: ApproveRequest,
    token: str = Depends(bearer_token),
    c: Container = Depends(get_container),
) -> ToolResponse:
    c.sessions.require_session(token)
    network = c.chains.resolve(req.network)
    token_address = c.resolver.resolve_asset_address(req.token, network.network_id)
    spender = to_checksum_address(AssetRef.address(req.spender).value)
    amount = req.amount if req.amount is not None else MAX_UINT256
    result = await c.executor.approve(token, network.network_id, token_address, spender, amount)
    return ok(result.to_dict())
