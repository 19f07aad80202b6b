from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import health, market, quotes, swaps, wallet
from .api.dependencies import Container, build_container
from .api.envelope import swap_error_handler, validation_error_handler
from .config import settings
from .core.errors import SwapError
from .logging_config import setup_logging
from .middleware.request_logging import RequestLoggingMiddleware


def create_app(container: Optional[Container] = None) -> FastAPI:
    container = container or build_container()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.sessions.start()
        try:
            yield
        finally:
            await container.sessions.stop()

    app = FastAPI(
        title="dexroute",
        description="Multi-chain DEX quote aggregation and swap execution",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(SwapError, swap_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(quotes.router, tags=["Quotes"])
    app.include_router(quotes.meta_router, tags=["Quotes"])
    app.include_router(wallet.router, tags=["Wallet"])
    app.include_router(swaps.router, tags=["Swaps"])
    app.include_router(market.router, tags=["Market"])

    @app.get("/")
    async def root():
        return {
            "name": "dexroute",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    setup_logging()
    uvicorn.run(
        "dexroute.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
