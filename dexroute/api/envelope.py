from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.errors import ErrorKind, SwapError


class ToolResponse(BaseModel):
    success: bool = Field(description="Whether the operation succeeded")
    data: Any = Field(default=None, description="Operation result")
    error: Optional[str] = Field(default=None, description="Human-readable failure message")
    kind: Optional[str] = Field(default=None, description="Stable error identifier")
    details: Dict[str, Any] = Field(default_factory=dict, description="Structured failure context")


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UNSUPPORTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_REQUEST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.NO_LIQUIDITY: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_QUOTES_AVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INSUFFICIENT_GAS: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.QUOTE_EXPIRED: status.HTTP_409_CONFLICT,
    ErrorKind.APPROVAL_REQUIRED: status.HTTP_409_CONFLICT,
    ErrorKind.SUBMISSION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UPSTREAM_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.KEY_GENERATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def ok(data: Any) -> ToolResponse:
    return ToolResponse(success=True, data=data)


def failure(exc: SwapError) -> ToolResponse:
    return ToolResponse(success=False, error=exc.message, kind=exc.kind.value, details=exc.details)


async def swap_error_handler(_request: Request, exc: SwapError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        content=jsonable_encoder(failure(exc)),
        headers=headers,
    )


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    body = ToolResponse(
        success=False,
        error="Request validation failed",
        kind=ErrorKind.INVALID_REQUEST.value,
        details={
            "errors": [
                {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ]
        },
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=jsonable_encoder(body))
