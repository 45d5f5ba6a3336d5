from typing import Dict

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from feeledger.devproxy import create_proxy_app


@pytest.fixture()
async def proxy_client(sandbox_app: FastAPI):
    upstream = AsyncClient(transport=ASGITransport(app=sandbox_app), base_url="http://sandbox")
    app = create_proxy_app(target="http://sandbox", client=upstream)
    async with upstream, AsyncClient(transport=ASGITransport(app=app), base_url="http://proxy") as client:
        yield client


@pytest.mark.asyncio
async def test_proxy_forwards_to_backend(proxy_client: AsyncClient, seeded: Dict[str, str]) -> None:
    response = await proxy_client.get(
        f"/api/classrooms/{seeded['school_id']}/classes",
        headers={"Origin": "http://localhost:3000"},
    )

    assert response.status_code == 200
    assert {c["className"] for c in response.json()["classes"]} == {"5th", "6th"}
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_proxy_passes_body_and_upstream_errors(proxy_client: AsyncClient, seeded: Dict[str, str]) -> None:
    created = await proxy_client.post(
        f"/api/student-payments/school/{seeded['school_id']}/payments",
        json={
            "schoolId": seeded["school_id"],
            "studentId": seeded["asha_id"],
            "classId": seeded["fifth_id"],
            "amount": 250,
            "paymentMode": "Cash",
        },
    )
    assert created.status_code == 201
    assert created.json()["payment"]["amount"] == 250

    missing = await proxy_client.request(
        "DELETE",
        f"/api/student-payments/school/{seeded['school_id']}/payments/bulk-delete",
        json={"paymentIds": ["missing"]},
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_preflight_is_answered_by_proxy(proxy_client: AsyncClient) -> None:
    response = await proxy_client.options(
        "/api/classrooms/school-1/classes",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_unreachable_upstream_is_502() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstream = AsyncClient(transport=httpx.MockTransport(handler), base_url="http://down")
    app = create_proxy_app(target="http://down", client=upstream)
    async with upstream, AsyncClient(transport=ASGITransport(app=app), base_url="http://proxy") as client:
        response = await client.get("/api/classrooms/school-1/classes")

    assert response.status_code == 502
    assert response.json() == {"message": "Upstream unavailable: ConnectError"}
