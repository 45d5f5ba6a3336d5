"""REST path templates of the fee backend. ``:param`` segments are substituted by build_path()."""

import re
from typing import Dict
from urllib.parse import quote

CLASSROOM_GET_CLASSES = "/classrooms/:schoolId/classes"

STUDENT_PAYMENTS_SUMMARY_BY_SCHOOL = "/student-payments/school/:schoolId/summary"
STUDENT_PAYMENTS_GET_STUDENT_PAYMENTS = "/student-payments/school/:schoolId/student/:studentId/payments"
STUDENT_PAYMENTS_ADD_PAYMENT = "/student-payments/school/:schoolId/payments"
STUDENT_PAYMENTS_UPDATE_PAYMENT = "/student-payments/school/:schoolId/payments/:paymentId"
STUDENT_PAYMENTS_DELETE_PAYMENTS = "/student-payments/school/:schoolId/payments/bulk-delete"
STUDENT_PAYMENTS_DOWNLOAD_CLASS_REPORT = "/student-payments/class/payment-report-class-wise"
STUDENT_PAYMENTS_DOWNLOAD_STUDENT_REPORT = "/student-payments/student/payment-report"

_PARAM_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def build_path(template: str, **params: str) -> str:
    """Substitute ``:name`` placeholders; every placeholder must be supplied."""
    values: Dict[str, str] = {k: v for k, v in params.items() if v is not None}

    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in values or str(values[name]) == "":
            raise ValueError(f"Missing path parameter '{name}' for {template}")
        return quote(str(values[name]), safe="")

    return _PARAM_RE.sub(_sub, template)
