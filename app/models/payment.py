from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.payment import PaymentStatus


class Payment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    loan_id: str
    payment_reference: str
    amount: Decimal
    method: str
    phone_number: str
    status: PaymentStatus = PaymentStatus.PENDING
    receipt_number: str | None = None
    transaction_reference: str | None = None
    processed_at: datetime | None = None
    failure_reason: str | None = None
    principal: Decimal
    interest: Decimal
    penalties: Decimal = Decimal("0.00")
    created_at: datetime
    updated_at: datetime


class PaymentsDocument(BaseModel):
    payments: dict[str, Payment] = Field(default_factory=dict)
    next_id: int = 1
