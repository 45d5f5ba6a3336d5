from decimal import Decimal
from typing import AsyncGenerator, Dict

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from feeledger.core.http import create_api_client
from feeledger.db.session import Base, get_db
from feeledger.main import create_app
from feeledger.sandbox import service as sandbox_service
from feeledger.sandbox.app import create_sandbox_app
from feeledger.sandbox.models import SandboxPayment


TEST_DATABASE_URL = "sqlite+aiosqlite://"
SCHOOL_ID = "school-1"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory sandbox database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def sandbox_app(db_session: AsyncSession) -> FastAPI:
    """Sandbox fee backend with get_db bound to the test session."""
    app = create_sandbox_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture()
async def fee_api(sandbox_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """The ledger's fee-backend client, served in-process by the sandbox."""
    client = create_api_client(
        base_url="http://sandbox/api",
        token="",
        transport=ASGITransport(app=sandbox_app),
    )
    async with client:
        yield client


@pytest.fixture()
async def ledger_client(fee_api: AsyncClient) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the ledger presentation API."""
    app = create_app(client=fee_api)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def seeded(db_session: AsyncSession) -> Dict[str, str]:
    """One school: 5th A with Asha (fees 5000) and 6th B with Ben (fees 7000, 1000 paid)."""
    fifth = await sandbox_service.create_classroom(db_session, SCHOOL_ID, "5th", "A", Decimal("5000"))
    sixth = await sandbox_service.create_classroom(db_session, SCHOOL_ID, "6th", "B", Decimal("7000"))
    asha = await sandbox_service.create_student(db_session, SCHOOL_ID, fifth.id, "Asha Verma", roll_no="1")
    ben = await sandbox_service.create_student(db_session, SCHOOL_ID, sixth.id, "Ben Thomas", roll_no="2")
    db_session.add(
        SandboxPayment(
            school_id=SCHOOL_ID,
            student_id=ben.id,
            class_id=sixth.id,
            amount=Decimal("1000"),
            payment_mode="UPI",
            transaction_id="UPI-OLD",
        )
    )
    await db_session.commit()
    return {
        "school_id": SCHOOL_ID,
        "fifth_id": fifth.id,
        "sixth_id": sixth.id,
        "asha_id": asha.id,
        "ben_id": ben.id,
    }
