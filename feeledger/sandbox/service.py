"""Sandbox fee backend service: classrooms, fee summary, payments and reports for local development."""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.api.v1.classrooms.schemas import Classroom, ClassroomListResponse
from feeledger.api.v1.student_payments.schemas import (
    AddPaymentRequest,
    AddPaymentResponse,
    DeletePaymentsResponse,
    FeeSummary,
    Payment,
    StudentPaymentsResponse,
    StudentSummaryRow,
    UpdatePaymentRequest,
    UpdatePaymentResponse,
)
from feeledger.core.exceptions import ServiceError

from . import reports
from .models import SandboxClassroom, SandboxPayment, SandboxStudent


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _classroom_to_response(c: SandboxClassroom) -> Classroom:
    return Classroom(
        school_id=c.school_id,
        class_id=c.id,
        class_name=c.class_name,
        division=c.division or "",
        class_teacher=c.class_teacher,
        fee_amount=_to_decimal(c.fee_amount),
    )


def _payment_to_response(p: SandboxPayment) -> Payment:
    return Payment(
        payment_id=p.id,
        student_id=p.student_id,
        class_id=p.class_id,
        school_id=p.school_id,
        amount=_to_decimal(p.amount),
        payment_mode=p.payment_mode,
        transaction_id=p.transaction_id,
        remarks=p.remarks,
        date=p.paid_at,
        installment=p.installment,
    )


async def _get_student(db: AsyncSession, school_id: str, student_id: str) -> SandboxStudent:
    student = await db.get(SandboxStudent, student_id)
    if not student or student.school_id != school_id:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return student


async def _get_classroom(db: AsyncSession, school_id: str, class_id: str) -> SandboxClassroom:
    classroom = await db.get(SandboxClassroom, class_id)
    if not classroom or classroom.school_id != school_id:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    return classroom


# --- Seeding ---
async def create_classroom(
    db: AsyncSession,
    school_id: str,
    class_name: str,
    division: str = "",
    fee_amount: Decimal = Decimal("0"),
    class_teacher: Optional[str] = None,
) -> SandboxClassroom:
    try:
        obj = SandboxClassroom(
            school_id=school_id,
            class_name=class_name.strip(),
            division=division.strip(),
            fee_amount=fee_amount,
            class_teacher=class_teacher,
        )
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return obj
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class and division already exist for this school", status.HTTP_409_CONFLICT)


async def create_student(
    db: AsyncSession,
    school_id: str,
    class_id: str,
    full_name: str,
    roll_no: str = "",
    total_fees: Optional[Decimal] = None,
) -> SandboxStudent:
    """Enrol a student; total fees default to the class fee."""
    classroom = await _get_classroom(db, school_id, class_id)
    obj = SandboxStudent(
        school_id=school_id,
        class_id=class_id,
        full_name=full_name.strip(),
        roll_no=roll_no,
        total_fees=_to_decimal(classroom.fee_amount) if total_fees is None else total_fees,
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


# --- Read ---
async def list_classes(db: AsyncSession, school_id: str) -> ClassroomListResponse:
    result = await db.execute(
        select(SandboxClassroom)
        .where(SandboxClassroom.school_id == school_id)
        .order_by(SandboxClassroom.class_name, SandboxClassroom.division)
    )
    return ClassroomListResponse(
        school_id=school_id,
        classes=[_classroom_to_response(c) for c in result.scalars().all()],
    )


async def _paid_by_student(db: AsyncSession, school_id: str) -> Dict[str, Decimal]:
    result = await db.execute(
        select(SandboxPayment.student_id, func.coalesce(func.sum(SandboxPayment.amount), 0))
        .where(SandboxPayment.school_id == school_id)
        .group_by(SandboxPayment.student_id)
    )
    return {student_id: _to_decimal(total) for student_id, total in result.all()}


async def get_summary(db: AsyncSession, school_id: str) -> FeeSummary:
    """School-wide totals plus one row per student. Rows carry classId."""
    result = await db.execute(
        select(SandboxStudent, SandboxClassroom.class_name, SandboxClassroom.division)
        .join(SandboxClassroom, SandboxStudent.class_id == SandboxClassroom.id)
        .where(SandboxStudent.school_id == school_id)
        .order_by(SandboxStudent.full_name)
    )
    paid = await _paid_by_student(db, school_id)

    rows: List[StudentSummaryRow] = []
    total_fees = Decimal("0")
    total_paid = Decimal("0")
    for s, class_name, division in result.all():
        fees = _to_decimal(s.total_fees)
        paid_amount = paid.get(s.id, Decimal("0"))
        total_fees += fees
        total_paid += paid_amount
        rows.append(
            StudentSummaryRow(
                student_id=s.id,
                student_name=s.full_name,
                roll_no=s.roll_no or "",
                class_id=s.class_id,
                class_name=class_name,
                section=division or "",
                total_fees=fees,
                paid_amount=paid_amount,
                remaining_amount=fees - paid_amount,
            )
        )
    return FeeSummary(
        school_id=school_id,
        total_fees=total_fees,
        total_paid=total_paid,
        remaining_amount=total_fees - total_paid,
        students=rows,
    )


async def list_student_payments(
    db: AsyncSession,
    school_id: str,
    student_id: str,
    class_id: Optional[str] = None,
) -> StudentPaymentsResponse:
    await _get_student(db, school_id, student_id)
    stmt = select(SandboxPayment).where(
        SandboxPayment.school_id == school_id,
        SandboxPayment.student_id == student_id,
    )
    if class_id:
        stmt = stmt.where(SandboxPayment.class_id == class_id)
    result = await db.execute(stmt.order_by(SandboxPayment.paid_at, SandboxPayment.created_at))
    return StudentPaymentsResponse(payments=[_payment_to_response(p) for p in result.scalars().all()])


# --- Mutations ---
async def add_payment(db: AsyncSession, school_id: str, payload: AddPaymentRequest) -> AddPaymentResponse:
    if payload.school_id != school_id:
        raise ServiceError("schoolId does not match the request path", status.HTTP_400_BAD_REQUEST)
    student = await _get_student(db, school_id, payload.student_id)
    if student.class_id != payload.class_id:
        raise ServiceError("Student is not enrolled in this class", status.HTTP_400_BAD_REQUEST)
    obj = SandboxPayment(
        school_id=school_id,
        student_id=payload.student_id,
        class_id=payload.class_id,
        amount=payload.amount,
        payment_mode=payload.payment_mode.value,
        transaction_id=payload.transaction_id,
        remarks=payload.remarks,
        installment=payload.installment,
        paid_at=payload.date,
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return AddPaymentResponse(message="Payment added successfully", payment=_payment_to_response(obj))


async def update_payment(
    db: AsyncSession,
    school_id: str,
    payment_id: str,
    payload: UpdatePaymentRequest,
) -> UpdatePaymentResponse:
    obj = await db.get(SandboxPayment, payment_id)
    if not obj or obj.school_id != school_id:
        raise ServiceError("Payment not found", status.HTTP_404_NOT_FOUND)
    data = payload.model_dump(exclude_unset=True)
    for key in ("student_id", "class_id"):
        if data.get(key) and data[key] != getattr(obj, key):
            raise ServiceError(f"{key} of a payment cannot be changed", status.HTTP_400_BAD_REQUEST)
    if "amount" in data and data["amount"] is not None:
        obj.amount = data["amount"]
    if "payment_mode" in data and data["payment_mode"] is not None:
        obj.payment_mode = payload.payment_mode.value
    if "transaction_id" in data:
        obj.transaction_id = data["transaction_id"]
    if "remarks" in data:
        obj.remarks = data["remarks"]
    if "installment" in data:
        obj.installment = data["installment"]
    if data.get("date") is not None:
        obj.paid_at = data["date"]
    await db.commit()
    await db.refresh(obj)
    return UpdatePaymentResponse(message="Payment updated successfully", payment=_payment_to_response(obj))


async def delete_payments(db: AsyncSession, school_id: str, payment_ids: List[str]) -> DeletePaymentsResponse:
    """All-or-nothing: unknown ids reject the whole request."""
    wanted = list(dict.fromkeys(payment_ids))
    result = await db.execute(
        select(SandboxPayment.id).where(
            SandboxPayment.school_id == school_id,
            SandboxPayment.id.in_(wanted),
        )
    )
    found = set(result.scalars().all())
    missing = [pid for pid in wanted if pid not in found]
    if missing:
        raise ServiceError(f"Payments not found: {', '.join(missing)}", status.HTTP_404_NOT_FOUND)
    await db.execute(delete(SandboxPayment).where(SandboxPayment.id.in_(wanted)))
    await db.commit()
    return DeletePaymentsResponse(message=f"Deleted {len(wanted)} payment(s)", deleted_ids=wanted)


# --- Reports ---
async def build_class_report(db: AsyncSession, school_id: str, class_id: str) -> Tuple[bytes, str]:
    classroom = await _get_classroom(db, school_id, class_id)
    summary = await get_summary(db, school_id)
    rows = [r for r in summary.students if r.class_id == class_id]
    label = f"{classroom.class_name}-{classroom.division}".strip("-")
    return reports.build_class_workbook(label, rows), f"payment-report-{label}.xlsx"


async def build_student_report(db: AsyncSession, school_id: str, student_id: str) -> Tuple[bytes, str]:
    summary = await get_summary(db, school_id)
    row = next((r for r in summary.students if r.student_id == student_id), None)
    if row is None:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    payments = await list_student_payments(db, school_id, student_id)
    return reports.build_student_statement(row, payments.payments), f"payment-report-{row.roll_no or student_id}.pdf"
