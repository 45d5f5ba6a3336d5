"""
Sandbox fee backend for local development.

    python -m feeledger.scripts.seed_sandbox --school demo-school
    uvicorn feeledger.sandbox.app:app --port 5000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from feeledger.core.config import settings
from feeledger.core.logging import configure_logging
from feeledger.db.session import create_all

from .router import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all()
    yield


def create_sandbox_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Fee Ledger sandbox backend", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_sandbox_app()
