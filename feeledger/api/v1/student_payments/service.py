"""Remote fee API client: summary, student payments, payment mutations and report downloads."""

import logging
import re
from typing import List, Optional
from urllib.parse import unquote

import httpx

from feeledger.core import endpoints
from feeledger.core.exceptions import LedgerValidationError
from feeledger.core.http import json_body, parse_model, send

from .schemas import (
    AddPaymentRequest,
    AddPaymentResponse,
    ClassReportRequest,
    DeletePaymentsRequest,
    DeletePaymentsResponse,
    FeeSummary,
    Payment,
    ReportFile,
    StudentPaymentsResponse,
    StudentReportRequest,
    UpdatePaymentRequest,
    UpdatePaymentResponse,
)

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

_FILENAME_STAR_RE = re.compile(r"filename\*=UTF-8''([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename="?([^";]+)"?', re.IGNORECASE)


def _year_params(year_id: Optional[str]) -> dict:
    return {"yearId": year_id} if year_id else {}


def _report_file(response: httpx.Response, default_name: str, default_media_type: str) -> ReportFile:
    filename = default_name
    disposition = response.headers.get("content-disposition", "")
    star = _FILENAME_STAR_RE.search(disposition)
    match = _FILENAME_RE.search(disposition)
    if star:
        filename = unquote(star.group(1).strip())
    elif match:
        filename = match.group(1).strip()
    media_type = response.headers.get("content-type", default_media_type).split(";")[0].strip()
    return ReportFile(filename=filename, media_type=media_type or default_media_type, content=response.content)


class StudentFeesService:
    """Typed wrappers around the student-payments endpoints. No business logic."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def get_summary_by_school(self, school_id: str, year_id: Optional[str] = None) -> FeeSummary:
        path = endpoints.build_path(endpoints.STUDENT_PAYMENTS_SUMMARY_BY_SCHOOL, schoolId=school_id)
        response = await send(
            self.client, "GET", path, "Failed to fetch fee summary", params=_year_params(year_id)
        )
        return parse_model(FeeSummary, json_body(response, "Failed to fetch fee summary"), "Failed to fetch fee summary")

    async def get_student_payments(
        self,
        school_id: str,
        student_id: str,
        class_id: str,
        year_id: Optional[str] = None,
    ) -> List[Payment]:
        path = endpoints.build_path(
            endpoints.STUDENT_PAYMENTS_GET_STUDENT_PAYMENTS, schoolId=school_id, studentId=student_id
        )
        params = {"classId": class_id, **_year_params(year_id)}
        response = await send(self.client, "GET", path, "Failed to fetch student payments", params=params)
        body = json_body(response, "Failed to fetch student payments")
        if isinstance(body, list):
            body = {"payments": body}
        if not isinstance(body, dict) or body.get("payments") is None:
            return []
        return parse_model(StudentPaymentsResponse, body, "Failed to fetch student payments").payments

    async def add_payment(self, payload: AddPaymentRequest, year_id: Optional[str] = None) -> AddPaymentResponse:
        path = endpoints.build_path(endpoints.STUDENT_PAYMENTS_ADD_PAYMENT, schoolId=payload.school_id)
        response = await send(
            self.client,
            "POST",
            path,
            "Failed to add payment",
            params=_year_params(year_id),
            json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        result = parse_model(AddPaymentResponse, json_body(response, "Failed to add payment"), "Failed to add payment")
        logger.info(
            "Payment %s added for student %s: %s",
            result.payment.payment_id, payload.student_id, payload.amount,
        )
        return result

    async def update_payment(
        self,
        school_id: str,
        payment_id: str,
        payload: UpdatePaymentRequest,
        year_id: Optional[str] = None,
    ) -> UpdatePaymentResponse:
        path = endpoints.build_path(
            endpoints.STUDENT_PAYMENTS_UPDATE_PAYMENT, schoolId=school_id, paymentId=payment_id
        )
        body = payload.model_dump(mode="json", by_alias=True, exclude_unset=True)
        body["schoolId"] = school_id
        response = await send(
            self.client, "PUT", path, "Failed to update payment", params=_year_params(year_id), json=body
        )
        logger.info("Payment %s updated", payment_id)
        return parse_model(UpdatePaymentResponse, json_body(response, "Failed to update payment"), "Failed to update payment")

    async def delete_payments(
        self,
        school_id: str,
        payment_ids: List[str],
        year_id: Optional[str] = None,
    ) -> DeletePaymentsResponse:
        if not payment_ids:
            raise LedgerValidationError("Select at least one payment to delete")
        path = endpoints.build_path(endpoints.STUDENT_PAYMENTS_DELETE_PAYMENTS, schoolId=school_id)
        payload = DeletePaymentsRequest(payment_ids=list(payment_ids))
        response = await send(
            self.client,
            "DELETE",
            path,
            "Failed to delete payments",
            params=_year_params(year_id),
            json=payload.model_dump(mode="json", by_alias=True),
        )
        logger.info("Deleted %d payment(s) for school %s", len(payment_ids), school_id)
        return parse_model(DeletePaymentsResponse, json_body(response, "Failed to delete payments"), "Failed to delete payments")

    async def download_class_payment_report(
        self, school_id: str, class_id: str, year_id: Optional[str] = None
    ) -> ReportFile:
        payload = ClassReportRequest(school_id=school_id, class_id=class_id, year_id=year_id)
        response = await send(
            self.client,
            "POST",
            endpoints.STUDENT_PAYMENTS_DOWNLOAD_CLASS_REPORT,
            "Failed to download class report",
            json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return _report_file(response, f"payment-report-{class_id}.xlsx", XLSX_MEDIA_TYPE)

    async def download_student_payment_report(
        self, school_id: str, student_id: str, year_id: Optional[str] = None
    ) -> ReportFile:
        payload = StudentReportRequest(school_id=school_id, student_id=student_id, year_id=year_id)
        response = await send(
            self.client,
            "POST",
            endpoints.STUDENT_PAYMENTS_DOWNLOAD_STUDENT_REPORT,
            "Failed to download student report",
            json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return _report_file(response, f"payment-report-{student_id}.pdf", PDF_MEDIA_TYPE)
