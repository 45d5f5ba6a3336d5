"""Payment dialog forms. ``mode`` discriminates which fields are required."""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from feeledger.core.enums import PaymentMode
from feeledger.core.schemas import Money


class _PaymentFormBase(BaseModel):
    amount: Money = Field(..., gt=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    transaction_id: Optional[str] = Field(None, max_length=100)
    remark: Optional[str] = Field(None, max_length=500)
    date: Optional[datetime] = None


class AddPaymentForm(_PaymentFormBase):
    mode: Literal["add"] = "add"
    installment: Optional[str] = None


class EditPaymentForm(_PaymentFormBase):
    mode: Literal["edit"] = "edit"
    payment_id: str = Field(..., min_length=1, description="Installment being edited")


PaymentForm = Annotated[Union[AddPaymentForm, EditPaymentForm], Field(discriminator="mode")]
