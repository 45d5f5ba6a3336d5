from decimal import Decimal

from feeledger.api.v1.student_payments.schemas import FeeSummary, StudentSummaryRow
from feeledger.core.enums import FeeStatus
from feeledger.ledger.state import SchoolTotals, StudentFeeRow, derive_status


def test_derive_status_boundaries() -> None:
    assert derive_status(Decimal("0"), Decimal("5000")) == FeeStatus.unpaid
    assert derive_status(Decimal("1"), Decimal("5000")) == FeeStatus.partial
    assert derive_status(Decimal("5000"), Decimal("5000")) == FeeStatus.paid
    assert derive_status(Decimal("6000"), Decimal("5000")) == FeeStatus.paid


def test_zero_fee_student_with_no_payment_is_unpaid() -> None:
    # paid <= 0 is checked before paid >= total
    assert derive_status(Decimal("0"), Decimal("0")) == FeeStatus.unpaid


def test_row_status_follows_paid_fees() -> None:
    row = StudentFeeRow(student_id="s1", student_name="Asha", total_fees=Decimal("5000"))
    assert row.status == FeeStatus.unpaid
    row.paid_fees = Decimal("2000")
    assert row.status == FeeStatus.partial
    assert row.remaining == Decimal("3000")
    row.paid_fees = Decimal("5500")
    assert row.status == FeeStatus.paid
    assert row.remaining == Decimal("-500")


def test_row_serializes_status_and_amounts() -> None:
    row = StudentFeeRow(student_id="s1", student_name="Asha", total_fees=Decimal("5000"), paid_fees=Decimal("2500.5"))
    data = row.model_dump(mode="json")
    assert data["status"] == "partially paid"
    assert data["total_fees"] == 5000
    assert data["paid_fees"] == 2500.5


def test_summary_row_uses_section_as_division() -> None:
    wire = {
        "studentId": "s1",
        "studentName": "Asha",
        "rollNo": "7",
        "className": "5th",
        "section": "A",
        "totalFees": 5000,
        "paidAmount": 1200,
        "remainingAmount": 3800,
    }
    row = StudentFeeRow.from_summary(StudentSummaryRow.model_validate(wire))
    assert row.division == "A"
    assert row.class_id is None
    assert row.paid_fees == Decimal("1200")


def test_totals_from_summary_and_delta() -> None:
    totals = SchoolTotals.from_summary(
        FeeSummary(total_fees=Decimal("10000"), total_paid=Decimal("4000"), remaining_amount=Decimal("6000"))
    )
    totals.apply_received_delta(Decimal("-1500"))
    assert totals.total == Decimal("10000")
    assert totals.received == Decimal("2500")
    assert totals.remaining == Decimal("7500")
