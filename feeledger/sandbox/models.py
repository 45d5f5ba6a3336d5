"""Sandbox fee backend tables: classrooms, students with assigned fees, and their payments."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint

from feeledger.db.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class SandboxClassroom(Base):
    __tablename__ = "sandbox_classrooms"
    __table_args__ = (
        UniqueConstraint("school_id", "class_name", "division", name="uq_sandbox_class_school_name_division"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(String(64), nullable=False, index=True)
    class_name = Column(String(50), nullable=False)
    division = Column(String(20), nullable=False, default="")
    class_teacher = Column(String(255), nullable=True)
    fee_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class SandboxStudent(Base):
    """Student with the school-assigned total fee for the year."""

    __tablename__ = "sandbox_students"

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(String(64), nullable=False, index=True)
    class_id = Column(String(36), ForeignKey("sandbox_classrooms.id", ondelete="RESTRICT"), nullable=False)
    full_name = Column(String(255), nullable=False)
    roll_no = Column(String(20), nullable=False, default="")
    total_fees = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class SandboxPayment(Base):
    __tablename__ = "sandbox_payments"

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("sandbox_students.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(String(36), ForeignKey("sandbox_classrooms.id", ondelete="RESTRICT"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_mode = Column(String(30), nullable=False)  # Cash, UPI, Card, Net Banking, Cheque
    transaction_id = Column(String(100), nullable=True)
    remarks = Column(String(500), nullable=True)
    installment = Column(String(50), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
