from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.loan import LoanType, Pagination


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


class PaymentMethod(str, Enum):
    ECOCASH = "ECOCASH"
    ONEMONEY = "ONEMONEY"
    TELECASH = "TELECASH"


class PaymentRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    loan_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, le=Decimal("500000"))
    payment_method: PaymentMethod
    phone_number: str = Field(min_length=7, max_length=20)
    customer_reference: str | None = None


class PaymentSubmitted(BaseModel):
    payment_id: str
    status: PaymentStatus
    message: str
    transaction_reference: str
    estimated_processing_time: str = "3-10 seconds"


class PaymentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    user_id: str
    loan_id: str
    payment_reference: str
    amount: Decimal
    method: str
    phone_number: str
    status: PaymentStatus
    receipt_number: str | None = None
    transaction_reference: str | None = None
    processed_at: datetime | None = None
    failure_reason: str | None = None
    principal: Decimal
    interest: Decimal
    penalties: Decimal
    created_at: datetime
    updated_at: datetime


class PaymentStatusResponse(BaseModel):
    payment_id: str
    status: PaymentStatus
    message: str
    receipt_number: str | None = None
    transaction_reference: str | None = None
    failure_reason: str | None = None


class PaymentHistoryResponse(BaseModel):
    payments: list[PaymentDTO]
    pagination: Pagination


class NextPayment(BaseModel):
    loan_id: str
    amount: Decimal | None = None
    due_date: datetime | None = None


class LoanPaymentSummary(BaseModel):
    loan_id: str
    product_name: str | None = None
    amount_due: Decimal | None = None
    due_date: datetime | None = None
    status: str


class PaymentDashboardResponse(BaseModel):
    total_outstanding: Decimal
    active_loans_count: int
    next_payment: NextPayment | None = None
    recent_payments: list[PaymentDTO]
    payment_summary: list[LoanPaymentSummary]


class ReceiptResponse(BaseModel):
    receipt_number: str
    payment_reference: str
    loan_id: str
    amount: Decimal
    payment_method: str
    phone_number: str
    processed_at: datetime | None = None
    loan_type: LoanType | None = None
    product_name: str | None = None
    transaction_reference: str | None = None
    principal: Decimal
    interest: Decimal
    penalties: Decimal


class EarlyPayoffResponse(BaseModel):
    loan_id: str
    remaining_balance: Decimal
    early_payoff_discount: Decimal
    early_payoff_amount: Decimal
    savings: Decimal
    message: str
