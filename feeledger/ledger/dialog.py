"""Per-row payment dialog: closed -> loading -> loaded | load-error; loaded -> submitting -> closed | loaded."""

from decimal import Decimal
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from feeledger.api.v1.student_payments.schemas import Payment
from feeledger.core.enums import DialogKind, DialogState
from feeledger.ledger.forms import EditPaymentForm


class PaymentDialog(BaseModel):
    kind: DialogKind
    student_id: str
    generation: int
    state: DialogState = DialogState.LOADING
    class_id: Optional[str] = None
    payments: List[Payment] = Field(default_factory=list)
    error: Optional[str] = None
    selected_payment_id: Optional[str] = None
    selected_ids: Set[str] = Field(default_factory=set)
    edit_form: Optional[EditPaymentForm] = None

    def find_payment(self, payment_id: Optional[str]) -> Optional[Payment]:
        if not payment_id:
            return None
        for payment in self.payments:
            if payment.payment_id == payment_id:
                return payment
        return None

    @property
    def selected_payment(self) -> Optional[Payment]:
        return self.find_payment(self.selected_payment_id)

    @property
    def can_save_edit(self) -> bool:
        return (
            self.kind == DialogKind.EDIT
            and self.state == DialogState.LOADED
            and self.selected_payment is not None
        )

    @property
    def all_selected(self) -> bool:
        return bool(self.payments) and self.selected_ids == {p.payment_id for p in self.payments}

    def selected_total(self) -> Decimal:
        return sum(
            (p.amount for p in self.payments if p.payment_id in self.selected_ids),
            Decimal("0"),
        )
