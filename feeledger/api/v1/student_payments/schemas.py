"""Student payment schemas: the fee backend's wire format."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from feeledger.core.enums import PaymentMode
from feeledger.core.schemas import Money, WireModel


# --- Payment ---
class Payment(WireModel):
    payment_id: str
    student_id: str
    class_id: str
    school_id: str
    amount: Money
    payment_mode: PaymentMode
    transaction_id: Optional[str] = None
    remarks: Optional[str] = None
    date: datetime
    installment: Optional[str] = None


class AddPaymentRequest(WireModel):
    school_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    class_id: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0)
    payment_mode: PaymentMode
    transaction_id: Optional[str] = None
    remarks: Optional[str] = None
    date: datetime = Field(default_factory=datetime.utcnow)
    installment: Optional[str] = None


class AddPaymentResponse(WireModel):
    message: str = ""
    payment: Payment


class UpdatePaymentRequest(WireModel):
    """Editable fields of one payment. Unset fields are left untouched by the backend."""

    student_id: Optional[str] = None
    class_id: Optional[str] = None
    amount: Optional[Money] = Field(None, gt=0)
    payment_mode: Optional[PaymentMode] = None
    transaction_id: Optional[str] = None
    remarks: Optional[str] = None
    date: Optional[datetime] = None
    installment: Optional[str] = None


class UpdatePaymentResponse(WireModel):
    message: str = ""
    payment: Optional[Payment] = None


class DeletePaymentsRequest(WireModel):
    payment_ids: List[str] = Field(..., min_length=1)


class DeletePaymentsResponse(WireModel):
    message: str = ""
    deleted_ids: List[str] = Field(default_factory=list)


class StudentPaymentsResponse(WireModel):
    payments: List[Payment] = Field(default_factory=list)


# --- Summary ---
class StudentSummaryRow(WireModel):
    student_id: str
    student_name: str
    roll_no: str = ""
    class_id: Optional[str] = None
    class_name: str = ""
    section: Optional[str] = None
    division: Optional[str] = None
    total_fees: Money = Decimal("0")
    paid_amount: Money = Decimal("0")
    remaining_amount: Money = Decimal("0")
    payments: List[Payment] = Field(default_factory=list)

    @model_validator(mode="after")
    def fill_division_from_section(self) -> "StudentSummaryRow":
        # Backend sends "section"; older payloads send "division".
        if not self.division and self.section:
            self.division = self.section
        return self


class FeeSummary(WireModel):
    school_id: str = ""
    total_fees: Money = Decimal("0")
    total_paid: Money = Decimal("0")
    remaining_amount: Money = Decimal("0")
    students: List[StudentSummaryRow] = Field(default_factory=list)


# --- Reports ---
class ClassReportRequest(WireModel):
    school_id: str
    class_id: str
    year_id: Optional[str] = None


class StudentReportRequest(WireModel):
    school_id: str
    student_id: str
    year_id: Optional[str] = None


class ReportFile(WireModel):
    filename: str
    media_type: str
    content: bytes
