"""
Fee ledger view model for one school.

Holds the per-student fee rows and the school totals, and runs the add / edit / delete
payment workflows. Every successful mutation patches the owning row and the totals by the
same delta in one step, so the table and the summary cards never disagree. With
``confirm_with_server`` the summary is re-fetched afterwards and replaces the patched values.

No method raises: failures become a notification plus a failed ActionResult.
"""

import asyncio
import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Set

from fastapi import status
from pydantic import BaseModel

from feeledger.api.v1.classrooms.schemas import Classroom
from feeledger.api.v1.classrooms.service import ClassroomService, resolve_class_id
from feeledger.api.v1.student_payments.schemas import (
    AddPaymentRequest,
    FeeSummary,
    Payment,
    ReportFile,
    UpdatePaymentRequest,
)
from feeledger.api.v1.student_payments.service import StudentFeesService
from feeledger.core.enums import DialogKind, DialogState, FeeStatus, NotificationKind
from feeledger.core.exceptions import LedgerValidationError, ServiceError
from feeledger.ledger.dialog import PaymentDialog
from feeledger.ledger.forms import AddPaymentForm, EditPaymentForm
from feeledger.ledger.notifications import NotificationService
from feeledger.ledger.state import SchoolTotals, StudentFeeRow

logger = logging.getLogger(__name__)

SORT_FIELDS = ("student_name", "class_name", "roll_no", "total_fees", "paid_fees", "remaining", "status")


class ActionResult(BaseModel):
    ok: bool
    message: str = ""
    status_code: int = status.HTTP_200_OK
    payments: Optional[List[Payment]] = None
    report: Optional[ReportFile] = None


class FeeLedgerViewModel:
    def __init__(
        self,
        school_id: str,
        fees: StudentFeesService,
        classrooms: ClassroomService,
        notifier: Optional[NotificationService] = None,
        year_id: Optional[str] = None,
        confirm_with_server: bool = True,
    ) -> None:
        self.school_id = school_id
        self.year_id = year_id
        self.fees = fees
        self.classroom_service = classrooms
        self.notifier = notifier or NotificationService()
        self.confirm_with_server = confirm_with_server

        self.rows: List[StudentFeeRow] = []
        self.totals = SchoolTotals()
        self.classrooms: List[Classroom] = []
        self.is_loading = False
        self.load_error: Optional[str] = None
        self.dialog: Optional[PaymentDialog] = None
        self.downloading: Set[str] = set()
        self._generation = 0
        # Bumped whenever rows and totals are replaced from a summary.
        self._rows_version = 0

    # --- Load ---
    async def load(self) -> ActionResult:
        """Fetch classrooms and the fee summary concurrently and rebuild the table."""
        self.is_loading = True
        self.load_error = None
        try:
            classes, summary = await asyncio.gather(
                self.classroom_service.get_classes_by_school_id(self.school_id),
                self.fees.get_summary_by_school(self.school_id, self.year_id),
            )
        except ServiceError as e:
            self.rows = []
            self.totals = SchoolTotals()
            self._rows_version += 1
            self.load_error = e.message
            self.notifier.notify("Failed to load student fees", NotificationKind.ERROR)
            return ActionResult(ok=False, message=e.message, status_code=e.status_code)
        finally:
            self.is_loading = False

        self.classrooms = classes
        self._apply_summary(summary)
        logger.info("Loaded %d fee rows for school %s", len(self.rows), self.school_id)
        return ActionResult(ok=True, message=f"Loaded {len(self.rows)} students")

    async def retry(self) -> ActionResult:
        return await self.load()

    async def refresh_summary(self) -> bool:
        """Replace rows and totals with the backend's figures. Keeps local values on failure."""
        try:
            summary = await self.fees.get_summary_by_school(self.school_id, self.year_id)
        except ServiceError as e:
            logger.warning("Summary re-fetch failed for school %s, keeping local totals: %s", self.school_id, e.message)
            return False
        self._apply_summary(summary)
        return True

    def _apply_summary(self, summary: FeeSummary) -> None:
        self.rows = [StudentFeeRow.from_summary(s) for s in summary.students]
        self.totals = SchoolTotals.from_summary(summary)
        self._rows_version += 1

    # --- Rows ---
    def get_row(self, student_id: str) -> Optional[StudentFeeRow]:
        for row in self.rows:
            if row.student_id == student_id:
                return row
        return None

    def _require_row(self, student_id: str) -> StudentFeeRow:
        row = self.get_row(student_id)
        if row is None:
            raise LedgerValidationError("Student not found in fee ledger", status.HTTP_404_NOT_FOUND)
        return row

    def _apply_delta(self, student_id: str, delta: Decimal) -> None:
        row = self.get_row(student_id)
        if row is None:
            # Row vanished (e.g. a reload in between); totals still reflect the payment.
            self.totals.apply_received_delta(delta)
            return
        new_paid = max(row.paid_fees + delta, Decimal("0"))
        applied = new_paid - row.paid_fees
        row.paid_fees = new_paid
        self.totals.apply_received_delta(applied)

    def filtered_rows(
        self,
        query: str = "",
        status_filter: str = "all",
        class_name: str = "",
        sort_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[StudentFeeRow]:
        needle = (query or "").strip().lower()
        wanted_status = None if status_filter in ("", "all") else FeeStatus(status_filter)
        result = []
        for r in self.rows:
            if needle and needle not in f"{r.student_name} {r.class_name} {r.roll_no}".lower():
                continue
            if wanted_status is not None and r.status != wanted_status:
                continue
            if class_name and r.class_name != class_name:
                continue
            result.append(r)
        if sort_by:
            if sort_by not in SORT_FIELDS:
                raise ValueError(f"Cannot sort by {sort_by}")
            result.sort(key=lambda r: _sort_key(r, sort_by), reverse=descending)
        return result

    def class_names(self) -> List[str]:
        return sorted({r.class_name for r in self.rows if r.class_name})

    def suggest_report_class(self, student_id: str) -> Optional[str]:
        """classId to pre-select in the report dialog for this student, if resolvable."""
        row = self.get_row(student_id)
        if row is None:
            return None
        try:
            return resolve_class_id(row.class_id, row.class_name, row.division, self.classrooms)
        except LedgerValidationError:
            return None

    # --- Dialog ---
    def _is_current(self, generation: int) -> bool:
        return self.dialog is not None and self.dialog.generation == generation

    def close_dialog(self) -> None:
        self._generation += 1
        self.dialog = None

    async def open_dialog(self, student_id: str, kind: DialogKind) -> ActionResult:
        """Open a payment dialog and load the student's payments from scratch."""
        try:
            row = self._require_row(student_id)
        except LedgerValidationError as e:
            return self._reject(e)

        self._generation += 1
        generation = self._generation
        dialog = PaymentDialog(kind=kind, student_id=student_id, generation=generation)
        self.dialog = dialog

        try:
            dialog.class_id = resolve_class_id(row.class_id, row.class_name, row.division, self.classrooms)
            payments = await self.fees.get_student_payments(
                self.school_id, student_id, dialog.class_id, self.year_id
            )
        except ServiceError as e:
            if not self._is_current(generation):
                logger.info("Ignoring payment load failure for closed dialog (student %s): %s", student_id, e.message)
                return ActionResult(ok=False, message=e.message, status_code=e.status_code)
            dialog.state = DialogState.LOAD_ERROR
            dialog.error = e.message
            self.notifier.notify(e.message, NotificationKind.ERROR)
            return ActionResult(ok=False, message=e.message, status_code=e.status_code)

        if not self._is_current(generation):
            logger.info("Dropping payments for closed dialog (student %s)", student_id)
            return ActionResult(ok=False, message="Dialog was closed", status_code=status.HTTP_409_CONFLICT)

        dialog.payments = payments
        dialog.state = DialogState.LOADED
        return ActionResult(ok=True, payments=list(payments))

    async def view_payments(self, student_id: str) -> ActionResult:
        """Fresh payment list for one student. Any open dialog is left as it is."""
        try:
            row = self._require_row(student_id)
            class_id = resolve_class_id(row.class_id, row.class_name, row.division, self.classrooms)
            payments = await self.fees.get_student_payments(self.school_id, student_id, class_id, self.year_id)
        except ServiceError as e:
            self.notifier.notify(e.message, NotificationKind.ERROR)
            return ActionResult(ok=False, message=e.message, status_code=e.status_code)
        return ActionResult(ok=True, payments=list(payments))

    def _require_dialog(self, kind: DialogKind) -> PaymentDialog:
        dialog = self.dialog
        if dialog is None or dialog.kind != kind:
            raise LedgerValidationError(f"No {kind.value} payment dialog is open", status.HTTP_409_CONFLICT)
        if dialog.state != DialogState.LOADED:
            raise LedgerValidationError(
                f"Payment dialog is {dialog.state.value}", status.HTTP_409_CONFLICT
            )
        return dialog

    def select_installment(self, payment_id: str) -> ActionResult:
        """Pick the payment an edit applies to; pre-fills the edit form from it."""
        try:
            dialog = self._require_dialog(DialogKind.EDIT)
            payment = dialog.find_payment(payment_id)
            if payment is None:
                raise LedgerValidationError("Selected installment does not belong to this student")
        except LedgerValidationError as e:
            return self._reject(e)
        dialog.selected_payment_id = payment.payment_id
        dialog.edit_form = EditPaymentForm(
            payment_id=payment.payment_id,
            amount=payment.amount,
            payment_mode=payment.payment_mode,
            transaction_id=payment.transaction_id,
            remark=payment.remarks,
            date=payment.date,
        )
        return ActionResult(ok=True)

    def set_selection(self, payment_ids: Iterable[str]) -> ActionResult:
        try:
            dialog = self._require_dialog(DialogKind.DELETE)
            wanted = set(payment_ids)
            unknown = wanted - {p.payment_id for p in dialog.payments}
            if unknown:
                raise LedgerValidationError("Selection contains payments of another student")
        except LedgerValidationError as e:
            return self._reject(e)
        dialog.selected_ids = wanted
        return ActionResult(ok=True)

    def toggle_payment(self, payment_id: str) -> ActionResult:
        dialog = self.dialog
        current = set(dialog.selected_ids) if dialog is not None else set()
        current.symmetric_difference_update({payment_id})
        return self.set_selection(current)

    def select_all_payments(self, selected: bool = True) -> ActionResult:
        dialog = self.dialog
        ids = [p.payment_id for p in dialog.payments] if (dialog is not None and selected) else []
        return self.set_selection(ids)

    # --- Mutations ---
    async def submit_add(self, form: AddPaymentForm) -> ActionResult:
        try:
            dialog = self._require_dialog(DialogKind.ADD)
        except LedgerValidationError as e:
            return self._reject(e)

        payload = AddPaymentRequest(
            school_id=self.school_id,
            student_id=dialog.student_id,
            class_id=dialog.class_id,
            amount=form.amount,
            payment_mode=form.payment_mode,
            transaction_id=form.transaction_id or None,
            remarks=form.remark or None,
            date=form.date or datetime.utcnow(),
            installment=form.installment,
        )
        dialog.state = DialogState.SUBMITTING
        rows_version = self._rows_version
        try:
            await self.fees.add_payment(payload, self.year_id)
        except ServiceError as e:
            return self._submit_failed(dialog.generation, e)
        return await self._submit_succeeded(dialog, form.amount, "Payment added successfully", rows_version)

    async def submit_edit(self, form: EditPaymentForm) -> ActionResult:
        try:
            dialog = self._require_dialog(DialogKind.EDIT)
            old = dialog.selected_payment
            if old is None or not dialog.can_save_edit:
                raise LedgerValidationError("Select an installment before saving")
            if form.payment_id != old.payment_id:
                raise LedgerValidationError("Edited installment does not match the selected one")
        except LedgerValidationError as e:
            return self._reject(e)

        payload = UpdatePaymentRequest(
            student_id=dialog.student_id,
            class_id=dialog.class_id,
            amount=form.amount,
            payment_mode=form.payment_mode,
            transaction_id=form.transaction_id or None,
            remarks=form.remark or None,
            date=form.date or old.date,
            installment=old.installment,
        )
        delta = form.amount - old.amount
        dialog.state = DialogState.SUBMITTING
        rows_version = self._rows_version
        try:
            await self.fees.update_payment(self.school_id, old.payment_id, payload, self.year_id)
        except ServiceError as e:
            return self._submit_failed(dialog.generation, e)
        return await self._submit_succeeded(dialog, delta, "Payment updated successfully", rows_version)

    async def submit_delete(self) -> ActionResult:
        try:
            dialog = self._require_dialog(DialogKind.DELETE)
            if not dialog.selected_ids:
                raise LedgerValidationError("Select at least one payment to delete")
        except LedgerValidationError as e:
            return self._reject(e)

        ids = [p.payment_id for p in dialog.payments if p.payment_id in dialog.selected_ids]
        removed = dialog.selected_total()
        dialog.state = DialogState.SUBMITTING
        rows_version = self._rows_version
        try:
            await self.fees.delete_payments(self.school_id, ids, self.year_id)
        except ServiceError as e:
            return self._submit_failed(dialog.generation, e)
        return await self._submit_succeeded(dialog, -removed, f"Deleted {len(ids)} payment(s)", rows_version)

    def _submit_failed(self, generation: int, error: ServiceError) -> ActionResult:
        if self._is_current(generation):
            self.dialog.state = DialogState.LOADED
            self.dialog.error = error.message
        self.notifier.notify(error.message, NotificationKind.ERROR)
        return ActionResult(ok=False, message=error.message, status_code=error.status_code)

    async def _submit_succeeded(
        self, dialog: PaymentDialog, delta: Decimal, message: str, rows_version: int
    ) -> ActionResult:
        if not self._is_current(dialog.generation):
            # Saved on the server, but the dialog was dismissed while waiting.
            logger.info("Not patching ledger for closed dialog (student %s)", dialog.student_id)
            if self.confirm_with_server:
                await self.refresh_summary()
            return ActionResult(ok=True, message=f"{message}; dialog was closed before it completed")

        self.close_dialog()
        self.notifier.notify(message, NotificationKind.SUCCESS)
        if rows_version != self._rows_version:
            # Rows were reloaded while the request was in flight and may already include it.
            logger.info("Rows reloaded during save for student %s; re-fetching summary", dialog.student_id)
            await self.refresh_summary()
            return ActionResult(ok=True, message=message)

        self._apply_delta(dialog.student_id, delta)
        if self.confirm_with_server:
            await self.refresh_summary()
        return ActionResult(ok=True, message=message)

    def _reject(self, error: LedgerValidationError) -> ActionResult:
        self.notifier.notify(error.message, NotificationKind.ERROR)
        return ActionResult(ok=False, message=error.message, status_code=error.status_code)

    # --- Reports ---
    async def download_class_report(self, class_id: Optional[str]) -> ActionResult:
        if not class_id:
            return self._reject(LedgerValidationError("Please select a class first"))
        return await self._download(
            f"class:{class_id}",
            self.fees.download_class_payment_report(self.school_id, class_id, self.year_id),
        )

    async def download_student_report(self, student_id: str) -> ActionResult:
        if not student_id:
            return self._reject(LedgerValidationError("Please select a student first"))
        return await self._download(
            f"student:{student_id}",
            self.fees.download_student_payment_report(self.school_id, student_id, self.year_id),
        )

    async def _download(self, key: str, request) -> ActionResult:
        self.downloading.add(key)
        try:
            report = await request
        except ServiceError as e:
            self.notifier.notify("Failed to download report. Please try again.", NotificationKind.ERROR)
            return ActionResult(ok=False, message=e.message, status_code=e.status_code)
        finally:
            self.downloading.discard(key)
        self.notifier.notify("Report downloaded successfully", NotificationKind.SUCCESS)
        return ActionResult(ok=True, message=report.filename, report=report)


def _natural_key(value: str) -> tuple:
    """Numeric chunks compare as numbers: "2" < "10", "5A" < "5B" < "12"."""
    return tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
        for part in re.split(r"(\d+)", value.strip())
        if part
    )


def _sort_key(row: StudentFeeRow, field: str):
    value = getattr(row, field)
    if field == "roll_no":
        return _natural_key(value)
    if isinstance(value, FeeStatus):
        return value.value
    if isinstance(value, str):
        return value.lower()
    return value
