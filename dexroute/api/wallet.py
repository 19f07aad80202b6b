from typing import List, Optional

from eth_utils import to_checksum_address
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..core.errors import UnauthorizedError
from ..services.token_resolution import AssetRef
from .dependencies import Container, bearer_token, get_container
from .envelope import ToolResponse, ok

router = APIRouter(prefix="/wallet")


class CreateSessionRequest(BaseModel):
    network_ids: Optional[List[int]] = Field(default=None, description="Networks to enable for the new wallet")
    user_id: Optional[str] = Field(default=None, description="Caller-chosen user identifier")
    allow_export: bool = Field(default=False, description="Grant the wallet:export scope")


@router.post("/sessions")
async def create_session(req: CreateSessionRequest, c: Container = Depends(get_container)) -> ToolResponse:
    session = await c.sessions.create_session(req.network_ids or None, user_id=req.user_id, allow_export=req.allow_export)
    return ok({**session.to_dict(), "bearer_token": session.bearer_token})


@router.get("/me")
async def get_me(
    include_balances: bool = False,
    token: str = Depends(bearer_token),
    c: Container = Depends(get_container),
) -> ToolResponse:
    session = c.sessions.require_session(token)
    data = session.to_dict()
    if include_balances:
        data["balances"] = (await c.executor.wallet_balances(token))["balances"]
    return ok(data)


@router.delete("/sessions")
async def revoke_session(token: str = Depends(bearer_token), c: Container = Depends(get_container)) -> ToolResponse:
    revoked = await c.sessions.revoke_session(token)
    if not revoked:
        raise UnauthorizedError("Session is not active")
    return ok({"revoked": True})


@router.post("/export")
async def export_key(token: str = Depends(bearer_token), c: Container = Depends(get_container)) -> ToolResponse:
    private_key = c.sessions.export_signing_key(token)
    return ok({"private_key": private_key})


@router.get("/allowance")
async def get_allowance(
    network: str,
    token: str,
    spender: Optional[str] = None,
    amount: Optional[int] = Query(default=None, ge=0, description="Amount the spender must be able to move"),
    bearer: str = Depends(bearer_token),
    c: Container = Depends(get_container),
) -> ToolResponse:
    c.sessions.require_session(bearer)
    net = c.chains.resolve(network)
    token_address = c.resolver.resolve_asset_address(token, net.network_id)
    spender_address = to_checksum_address(AssetRef.address(spender).value) if spender else None
    data = await c.executor.check_allowance(bearer, net.network_id, token_address, spender_address, amount)
    return ok(data)
