from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feeledger.api.v1.ledger.router import router as ledger_router
from feeledger.core.config import settings
from feeledger.core.http import create_api_client
from feeledger.core.logging import configure_logging
from feeledger.ledger.registry import LedgerRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A registry injected through create_app(client=...) owns nothing to close here.
    if getattr(app.state, "ledger_registry", None) is not None:
        yield
        return
    api_client = create_api_client()
    app.state.ledger_registry = LedgerRegistry(api_client)
    try:
        yield
    finally:
        await api_client.aclose()


def create_app(client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Build the ledger API. ``client`` replaces the fee-backend client (tests, in-process backends)."""
    configure_logging(settings.log_level)

    app = FastAPI(title="Fee Ledger", lifespan=lifespan)
    if client is not None:
        app.state.ledger_registry = LedgerRegistry(client)

    # CORS: allow the SPA dev server to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ledger_router)

    return app


app = create_app()
