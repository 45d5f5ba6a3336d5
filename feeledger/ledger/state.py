"""Ledger rows and school totals. Status is derived on every read, never stored."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, computed_field

from feeledger.api.v1.student_payments.schemas import FeeSummary, StudentSummaryRow
from feeledger.core.enums import FeeStatus
from feeledger.core.schemas import Money


def derive_status(paid_fees: Decimal, total_fees: Decimal) -> FeeStatus:
    if paid_fees <= 0:
        return FeeStatus.unpaid
    if paid_fees >= total_fees:
        return FeeStatus.paid
    return FeeStatus.partial


class StudentFeeRow(BaseModel):
    student_id: str
    student_name: str
    class_name: str = ""
    division: str = ""
    roll_no: str = ""
    class_id: Optional[str] = None
    total_fees: Money = Decimal("0")
    paid_fees: Money = Decimal("0")

    @computed_field
    @property
    def status(self) -> FeeStatus:
        return derive_status(self.paid_fees, self.total_fees)

    @computed_field
    @property
    def remaining(self) -> Money:
        # Overpayment shows as a negative balance.
        return self.total_fees - self.paid_fees

    @classmethod
    def from_summary(cls, row: StudentSummaryRow) -> "StudentFeeRow":
        return cls(
            student_id=row.student_id,
            student_name=row.student_name,
            class_name=row.class_name,
            division=row.division or "",
            roll_no=row.roll_no,
            class_id=row.class_id,
            total_fees=row.total_fees,
            paid_fees=max(row.paid_amount, Decimal("0")),
        )


class SchoolTotals(BaseModel):
    total: Money = Decimal("0")
    received: Money = Decimal("0")
    remaining: Money = Decimal("0")

    @classmethod
    def from_summary(cls, summary: FeeSummary) -> "SchoolTotals":
        return cls(
            total=summary.total_fees,
            received=summary.total_paid,
            remaining=summary.remaining_amount,
        )

    def apply_received_delta(self, delta: Decimal) -> None:
        self.received += delta
        self.remaining -= delta
