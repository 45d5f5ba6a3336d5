from decimal import Decimal
from typing import Dict
from urllib.parse import quote

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.core.http import create_api_client
from feeledger.main import create_app
from feeledger.sandbox import service as sandbox_service

BASE = "/api/v1/ledger/school-1"


def _row(ledger: dict, student_id: str) -> dict:
    return next(r for r in ledger["rows"] if r["student_id"] == student_id)


async def _mount(client: AsyncClient) -> dict:
    response = await client.post(f"{BASE}/mount")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    return body["ledger"]


@pytest.mark.asyncio
async def test_unmounted_school_is_404(ledger_client: AsyncClient) -> None:
    response = await ledger_client.get(f"{BASE}/rows")
    assert response.status_code == 404
    assert "not mounted" in response.json()["detail"]


@pytest.mark.asyncio
async def test_mount_loads_rows_and_totals(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    ledger = await _mount(ledger_client)

    assert ledger["load_error"] is None
    assert ledger["totals"] == {"total": 12000, "received": 1000, "remaining": 11000}
    assert ledger["class_names"] == ["5th", "6th"]
    asha = _row(ledger, seeded["asha_id"])
    assert asha["status"] == "unpaid"
    assert asha["remaining"] == 5000
    assert _row(ledger, seeded["ben_id"])["status"] == "partially paid"

    totals = await ledger_client.get(f"{BASE}/totals")
    assert totals.json()["received"] == 1000


@pytest.mark.asyncio
async def test_rows_filtering(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)

    response = await ledger_client.get(f"{BASE}/rows", params={"status": "partially paid"})
    assert [r["student_name"] for r in response.json()["rows"]] == ["Ben Thomas"]

    response = await ledger_client.get(f"{BASE}/rows", params={"query": "asha"})
    assert [r["student_name"] for r in response.json()["rows"]] == ["Asha Verma"]

    response = await ledger_client.get(f"{BASE}/rows", params={"sort_by": "total_fees", "descending": "true"})
    assert [r["student_name"] for r in response.json()["rows"]] == ["Ben Thomas", "Asha Verma"]

    assert (await ledger_client.get(f"{BASE}/rows", params={"sort_by": "secret"})).status_code == 400
    assert (await ledger_client.get(f"{BASE}/rows", params={"status": "overdue"})).status_code == 422


@pytest.mark.asyncio
async def test_add_edit_delete_through_dialogs(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    asha, ben = seeded["asha_id"], seeded["ben_id"]
    await _mount(ledger_client)

    # Add 2000 for Asha.
    opened = await ledger_client.post(f"{BASE}/dialog", json={"student_id": asha, "kind": "add"})
    assert opened.status_code == 200
    assert opened.json()["ledger"]["dialog"]["state"] == "loaded"
    added = await ledger_client.post(
        f"{BASE}/dialog/add", json={"amount": 2000, "payment_mode": "UPI", "transaction_id": "UPI-9"}
    )
    assert added.status_code == 200
    ledger = added.json()["ledger"]
    assert ledger["dialog"] is None
    assert _row(ledger, asha)["paid_fees"] == 2000
    assert _row(ledger, asha)["status"] == "partially paid"
    assert ledger["totals"]["received"] == 3000

    # Edit Ben's 1000 installment to the full 7000.
    opened = await ledger_client.post(f"{BASE}/dialog", json={"student_id": ben, "kind": "edit"})
    [payment] = opened.json()["ledger"]["dialog"]["payments"]
    selected = await ledger_client.put(f"{BASE}/dialog/installment", json={"payment_id": payment["paymentId"]})
    dialog = selected.json()["ledger"]["dialog"]
    assert dialog["can_save_edit"] is True
    assert dialog["edit_form"]["amount"] == 1000
    assert dialog["edit_form"]["transaction_id"] == "UPI-OLD"
    edited = await ledger_client.post(
        f"{BASE}/dialog/edit",
        json={"payment_id": payment["paymentId"], "amount": 7000, "payment_mode": "UPI"},
    )
    assert edited.status_code == 200
    ledger = edited.json()["ledger"]
    assert _row(ledger, ben)["status"] == "paid"
    assert ledger["totals"] == {"total": 12000, "received": 9000, "remaining": 3000}

    # Delete every payment of Asha.
    await ledger_client.post(f"{BASE}/dialog", json={"student_id": asha, "kind": "delete"})
    selection = await ledger_client.put(f"{BASE}/dialog/selection", json={"select_all": True})
    assert selection.json()["ledger"]["dialog"]["all_selected"] is True
    assert selection.json()["ledger"]["dialog"]["selected_total"] == 2000
    deleted = await ledger_client.post(f"{BASE}/dialog/delete")
    assert deleted.status_code == 200
    ledger = deleted.json()["ledger"]
    assert _row(ledger, asha)["status"] == "unpaid"
    assert ledger["totals"]["received"] == 7000

    notifications = (await ledger_client.get(f"{BASE}/notifications")).json()["items"]
    messages = [n["message"] for n in notifications]
    assert "Payment added successfully" in messages
    assert "Payment updated successfully" in messages
    assert "Deleted 1 payment(s)" in messages


@pytest.mark.asyncio
async def test_edit_without_installment_is_rejected(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)
    opened = await ledger_client.post(f"{BASE}/dialog", json={"student_id": seeded["ben_id"], "kind": "edit"})
    [payment] = opened.json()["ledger"]["dialog"]["payments"]

    response = await ledger_client.post(
        f"{BASE}/dialog/edit", json={"payment_id": payment["paymentId"], "amount": 50}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Select an installment before saving"
    totals = (await ledger_client.get(f"{BASE}/totals")).json()
    assert totals["received"] == 1000


@pytest.mark.asyncio
async def test_submit_without_open_dialog_conflicts(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)
    response = await ledger_client.post(f"{BASE}/dialog/add", json={"amount": 10})
    assert response.status_code == 409

    assert (await ledger_client.post(f"{BASE}/dialog/add", json={"amount": 0})).status_code == 422


@pytest.mark.asyncio
async def test_close_dialog(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)
    await ledger_client.post(f"{BASE}/dialog", json={"student_id": seeded["asha_id"], "kind": "add"})
    assert (await ledger_client.get(f"{BASE}/dialog")).json()["kind"] == "add"

    assert (await ledger_client.delete(f"{BASE}/dialog")).status_code == 204
    assert (await ledger_client.get(f"{BASE}/dialog")).json() is None


@pytest.mark.asyncio
async def test_view_student_payments(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)
    await ledger_client.post(f"{BASE}/dialog", json={"student_id": seeded["asha_id"], "kind": "add"})

    response = await ledger_client.get(f"{BASE}/students/{seeded['ben_id']}/payments")

    assert response.status_code == 200
    body = response.json()
    assert body["row"]["student_name"] == "Ben Thomas"
    assert [p["amount"] for p in body["payments"]] == [1000]
    assert (await ledger_client.get(f"{BASE}/students/nobody/payments")).status_code == 404

    dialog = (await ledger_client.get(f"{BASE}/dialog")).json()
    assert dialog["kind"] == "add"
    assert dialog["student_id"] == seeded["asha_id"]


@pytest.mark.asyncio
async def test_class_options_suggest_student_class(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)

    response = await ledger_client.get(f"{BASE}/classes", params={"student_id": seeded["ben_id"]})

    body = response.json()
    assert body["class_names"] == ["5th", "6th"]
    assert body["suggested_class_id"] == seeded["sixth_id"]


@pytest.mark.asyncio
async def test_report_downloads(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)

    class_report = await ledger_client.get(f"{BASE}/reports/class/{seeded['fifth_id']}")
    assert class_report.status_code == 200
    assert "payment-report-5th-A.xlsx" in class_report.headers["content-disposition"]
    assert class_report.content[:2] == b"PK"

    student_report = await ledger_client.get(f"{BASE}/reports/student/{seeded['ben_id']}")
    assert student_report.status_code == 200
    assert student_report.headers["content-type"] == "application/pdf"
    assert student_report.content[:4] == b"%PDF"

    missing = await ledger_client.get(f"{BASE}/reports/class/unknown-class")
    assert missing.status_code == 502


@pytest.mark.asyncio
async def test_report_download_for_non_latin_class_name(
    ledger_client: AsyncClient, db_session: AsyncSession, seeded: Dict[str, str]
) -> None:
    hindi = await sandbox_service.create_classroom(db_session, seeded["school_id"], "कक्षा 5", "A", Decimal("4000"))
    await _mount(ledger_client)

    response = await ledger_client.get(f"{BASE}/reports/class/{hindi.id}")

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="payment-report-')
    assert f"filename*=UTF-8''{quote('payment-report-कक्षा 5-A.xlsx', safe='')}" in disposition
    assert response.content[:2] == b"PK"


@pytest.mark.asyncio
async def test_dismiss_notification(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)
    await ledger_client.get(f"{BASE}/reports/student/{seeded['ben_id']}")
    [item] = (await ledger_client.get(f"{BASE}/notifications")).json()["items"]
    assert item["kind"] == "success"

    assert (await ledger_client.delete(f"{BASE}/notifications/{item['id']}")).status_code == 204
    assert (await ledger_client.get(f"{BASE}/notifications")).json()["items"] == []
    assert (await ledger_client.delete(f"{BASE}/notifications/{item['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_unmount(ledger_client: AsyncClient, seeded: Dict[str, str]) -> None:
    await _mount(ledger_client)

    assert (await ledger_client.delete(BASE)).status_code == 204
    assert (await ledger_client.get(f"{BASE}/totals")).status_code == 404
    assert (await ledger_client.delete(BASE)).status_code == 404


@pytest.mark.asyncio
async def test_failed_load_reports_error_and_retries() -> None:
    healthy = {"up": False}

    def handler(request: httpx.Request) -> httpx.Response:
        if not healthy["up"]:
            return httpx.Response(503, json={"message": "maintenance"})
        if request.url.path.endswith("/classes"):
            return httpx.Response(200, json={"schoolId": "school-1", "classes": []})
        return httpx.Response(200, json={"schoolId": "school-1", "totalFees": 0, "students": []})

    api = create_api_client(base_url="http://fees/api", transport=httpx.MockTransport(handler))
    app = create_app(client=api)
    async with api, AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        mounted = await client.post(f"{BASE}/mount")
        assert mounted.status_code == 200
        body = mounted.json()
        assert body["ok"] is False
        assert "maintenance" in body["ledger"]["load_error"]
        assert body["ledger"]["rows"] == []

        healthy["up"] = True
        retried = (await client.post(f"{BASE}/retry")).json()
        assert retried["ok"] is True
        assert retried["ledger"]["load_error"] is None
