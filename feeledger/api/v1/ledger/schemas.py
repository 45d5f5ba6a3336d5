"""Ledger presentation schemas: what the fee table, summary cards and dialogs render."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from feeledger.api.v1.classrooms.schemas import Classroom
from feeledger.api.v1.student_payments.schemas import Payment
from feeledger.core.enums import DialogKind, DialogState
from feeledger.core.schemas import Money
from feeledger.ledger.dialog import PaymentDialog
from feeledger.ledger.forms import EditPaymentForm
from feeledger.ledger.notifications import Notification
from feeledger.ledger.state import SchoolTotals, StudentFeeRow


class DialogResponse(BaseModel):
    kind: DialogKind
    student_id: str
    state: DialogState
    class_id: Optional[str] = None
    payments: List[Payment] = Field(default_factory=list)
    error: Optional[str] = None
    selected_payment_id: Optional[str] = None
    selected_ids: List[str] = Field(default_factory=list)
    edit_form: Optional[EditPaymentForm] = None
    can_save_edit: bool = False
    all_selected: bool = False
    selected_total: Money = Decimal("0")

    @classmethod
    def from_dialog(cls, dialog: PaymentDialog) -> "DialogResponse":
        return cls(
            kind=dialog.kind,
            student_id=dialog.student_id,
            state=dialog.state,
            class_id=dialog.class_id,
            payments=dialog.payments,
            error=dialog.error,
            selected_payment_id=dialog.selected_payment_id,
            selected_ids=sorted(dialog.selected_ids),
            edit_form=dialog.edit_form,
            can_save_edit=dialog.can_save_edit,
            all_selected=dialog.all_selected,
            selected_total=dialog.selected_total(),
        )


class LedgerSnapshot(BaseModel):
    school_id: str
    is_loading: bool
    load_error: Optional[str] = None
    totals: SchoolTotals
    rows: List[StudentFeeRow]
    class_names: List[str]
    dialog: Optional[DialogResponse] = None
    downloading: List[str] = Field(default_factory=list)


class ActionResponse(BaseModel):
    ok: bool
    message: str = ""
    ledger: LedgerSnapshot


class OpenDialogRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    kind: DialogKind


class InstallmentRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)


class SelectionRequest(BaseModel):
    payment_ids: List[str] = Field(default_factory=list)
    select_all: Optional[bool] = Field(None, description="True selects every payment, False clears")


class StudentPaymentsView(BaseModel):
    row: StudentFeeRow
    payments: List[Payment]


class ClassOptions(BaseModel):
    class_names: List[str]
    classrooms: List[Classroom]
    suggested_class_id: Optional[str] = None


class NotificationList(BaseModel):
    items: List[Notification]
