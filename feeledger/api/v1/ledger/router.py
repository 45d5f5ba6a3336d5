"""Ledger router: fee table, summary totals, payment dialogs, reports and notifications for one school."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from feeledger.core.http import attachment_disposition
from feeledger.ledger.forms import AddPaymentForm, EditPaymentForm
from feeledger.ledger.registry import LedgerRegistry
from feeledger.ledger.state import SchoolTotals
from feeledger.ledger.view_model import SORT_FIELDS, ActionResult, FeeLedgerViewModel

from .dependencies import get_ledger, get_registry
from .schemas import (
    ActionResponse,
    ClassOptions,
    DialogResponse,
    InstallmentRequest,
    LedgerSnapshot,
    NotificationList,
    OpenDialogRequest,
    SelectionRequest,
    StudentPaymentsView,
)

router = APIRouter(prefix="/api/v1/ledger/{school_id}", tags=["ledger"])


def _snapshot(
    ledger: FeeLedgerViewModel,
    query: str = "",
    status_filter: str = "all",
    class_name: str = "",
    sort_by: Optional[str] = None,
    descending: bool = False,
) -> LedgerSnapshot:
    return LedgerSnapshot(
        school_id=ledger.school_id,
        is_loading=ledger.is_loading,
        load_error=ledger.load_error,
        totals=ledger.totals,
        rows=ledger.filtered_rows(query, status_filter, class_name, sort_by, descending),
        class_names=ledger.class_names(),
        dialog=DialogResponse.from_dialog(ledger.dialog) if ledger.dialog else None,
        downloading=sorted(ledger.downloading),
    )


def _respond(ledger: FeeLedgerViewModel, result: ActionResult) -> ActionResponse:
    if not result.ok:
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return ActionResponse(ok=True, message=result.message, ledger=_snapshot(ledger))


# --- Lifecycle ---
@router.post("/mount", response_model=ActionResponse)
async def mount_ledger(
    school_id: str,
    registry: LedgerRegistry = Depends(get_registry),
) -> ActionResponse:
    """Create the school's ledger and run the initial load. A load failure is reported in ledger.load_error."""
    ledger = registry.mount(school_id)
    result = await ledger.load()
    return ActionResponse(ok=result.ok, message=result.message, ledger=_snapshot(ledger))


@router.post("/retry", response_model=ActionResponse)
async def retry_load(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> ActionResponse:
    result = await ledger.retry()
    return ActionResponse(ok=result.ok, message=result.message, ledger=_snapshot(ledger))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def unmount_ledger(
    school_id: str,
    registry: LedgerRegistry = Depends(get_registry),
) -> None:
    if not registry.unmount(school_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee ledger is not mounted")


# --- Table ---
@router.get("/rows", response_model=LedgerSnapshot)
async def list_rows(
    query: str = Query("", description="Matches student name, class name or roll number"),
    status_filter: str = Query("all", alias="status", pattern="^(all|paid|unpaid|partially paid)$"),
    class_name: str = Query(""),
    sort_by: Optional[str] = Query(None, description=", ".join(SORT_FIELDS)),
    descending: bool = Query(False),
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> LedgerSnapshot:
    if sort_by is not None and sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot sort by {sort_by}")
    return _snapshot(ledger, query, status_filter, class_name, sort_by, descending)


@router.get("/totals", response_model=SchoolTotals)
async def get_totals(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> SchoolTotals:
    return ledger.totals


@router.get("/classes", response_model=ClassOptions)
async def get_class_options(
    student_id: Optional[str] = Query(None, description="Pre-select this student's class"),
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ClassOptions:
    return ClassOptions(
        class_names=ledger.class_names(),
        classrooms=ledger.classrooms,
        suggested_class_id=ledger.suggest_report_class(student_id) if student_id else None,
    )


# --- Payment dialog ---
@router.post("/dialog", response_model=ActionResponse)
async def open_dialog(
    payload: OpenDialogRequest,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ActionResponse:
    return _respond(ledger, await ledger.open_dialog(payload.student_id, payload.kind))


@router.get("/dialog", response_model=Optional[DialogResponse])
async def get_dialog(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> Optional[DialogResponse]:
    return DialogResponse.from_dialog(ledger.dialog) if ledger.dialog else None


@router.delete("/dialog", status_code=status.HTTP_204_NO_CONTENT)
async def close_dialog(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> None:
    ledger.close_dialog()


@router.put("/dialog/installment", response_model=ActionResponse)
async def select_installment(
    payload: InstallmentRequest,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ActionResponse:
    return _respond(ledger, ledger.select_installment(payload.payment_id))


@router.put("/dialog/selection", response_model=ActionResponse)
async def set_selection(
    payload: SelectionRequest,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ActionResponse:
    if payload.select_all is not None:
        return _respond(ledger, ledger.select_all_payments(payload.select_all))
    return _respond(ledger, ledger.set_selection(payload.payment_ids))


@router.post("/dialog/add", response_model=ActionResponse)
async def add_payment(
    payload: AddPaymentForm,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ActionResponse:
    return _respond(ledger, await ledger.submit_add(payload))


@router.post("/dialog/edit", response_model=ActionResponse)
async def edit_payment(
    payload: EditPaymentForm,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> ActionResponse:
    return _respond(ledger, await ledger.submit_edit(payload))


@router.post("/dialog/delete", response_model=ActionResponse)
async def delete_payments(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> ActionResponse:
    return _respond(ledger, await ledger.submit_delete())


@router.get("/students/{student_id}/payments", response_model=StudentPaymentsView)
async def view_payments(
    student_id: str,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> StudentPaymentsView:
    result = await ledger.view_payments(student_id)
    if not result.ok:
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return StudentPaymentsView(row=ledger.get_row(student_id), payments=result.payments or [])


# --- Reports ---
def _report_response(result: ActionResult) -> Response:
    if not result.ok:
        raise HTTPException(status_code=result.status_code, detail=result.message)
    report = result.report
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": attachment_disposition(report.filename)},
    )


@router.get("/reports/class/{class_id}")
async def download_class_report(
    class_id: str,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> Response:
    """Class-wise payment report (spreadsheet) passed through from the fee backend."""
    return _report_response(await ledger.download_class_report(class_id))


@router.get("/reports/student/{student_id}")
async def download_student_report(
    student_id: str,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> Response:
    return _report_response(await ledger.download_student_report(student_id))


# --- Notifications ---
@router.get("/notifications", response_model=NotificationList)
async def list_notifications(ledger: FeeLedgerViewModel = Depends(get_ledger)) -> NotificationList:
    return NotificationList(items=ledger.notifier.active())


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_notification(
    notification_id: int,
    ledger: FeeLedgerViewModel = Depends(get_ledger),
) -> None:
    if not ledger.notifier.dismiss(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
