from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.loan import LoanApplicationStatus, LoanStatus, LoanType


class LoanApplication(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    loan_type: LoanType
    loan_amount: Decimal
    repayment_period: str
    status: LoanApplicationStatus = LoanApplicationStatus.SUBMITTED
    submitted_at: datetime | None = None
    review_started_at: datetime | None = None
    review_completed_at: datetime | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    loan_purpose: str | None = None
    product_name: str | None = None
    loan_id: str | None = None
    created_at: datetime
    updated_at: datetime


class Loan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    application_id: str
    loan_type: LoanType
    original_amount: Decimal
    total_amount: Decimal
    remaining_balance: Decimal
    interest_rate: Decimal
    repayment_period: str
    disbursement_date: datetime
    maturity_date: datetime
    status: LoanStatus = LoanStatus.ACTIVE
    next_payment_date: datetime | None = None
    next_payment_amount: Decimal | None = None
    payments_completed: int = 0
    total_payments: int
    product_name: str | None = None
    loan_purpose: str | None = None
    installation_date: datetime | None = None
    # Payments already applied to the balance; a payment id appears at most once.
    applied_payment_ids: tuple[str, ...] = ()
    created_at: datetime
    updated_at: datetime


class LoansDocument(BaseModel):
    """Loans and the applications they were materialized from share one file."""

    loans: dict[str, Loan] = Field(default_factory=dict)
    applications: dict[str, LoanApplication] = Field(default_factory=dict)
    next_loan_id: int = 1
    next_application_id: int = 1
