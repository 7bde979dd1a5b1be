from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LoanType(str, Enum):
    CASH = "CASH"
    PAYGO = "PAYGO"


class RepaymentPeriod(str, Enum):
    THREE_MONTHS = "3_MONTHS"
    SIX_MONTHS = "6_MONTHS"
    TWELVE_MONTHS = "12_MONTHS"
    EIGHTEEN_MONTHS = "18_MONTHS"
    TWENTY_FOUR_MONTHS = "24_MONTHS"


class LoanApplicationStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class LoanHistoryFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class CashLoanCalculationRequest(BaseModel):
    loan_amount: Decimal = Field(gt=0)
    repayment_period: RepaymentPeriod


class PayGoCalculationRequest(BaseModel):
    product_price: Decimal = Field(gt=0)
    repayment_period: RepaymentPeriod


class LoanQuoteResponse(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    loan_type: LoanType
    principal: Decimal
    interest_rate: Decimal
    total_amount: Decimal
    repayment_period: str
    monthly_payment: Decimal
    total_payments: int
    total_interest: Decimal
    down_payment: Decimal | None = None


class CashLoanApplicationRequest(BaseModel):
    loan_amount: Decimal = Field(gt=0, le=Decimal("1000000"))
    repayment_period: RepaymentPeriod
    loan_purpose: str = Field(min_length=1, max_length=64)
    monthly_income: Decimal | None = Field(default=None, ge=0)
    employer_industry: str | None = None


class PayGoApplicationRequest(BaseModel):
    product_id: str = Field(min_length=1)
    product_name: str = Field(min_length=1, max_length=128)
    product_price: Decimal = Field(gt=0, le=Decimal("1000000"))
    repayment_period: RepaymentPeriod
    delivery_address: str | None = None


class LoanApplicationSubmitted(BaseModel):
    application_id: str
    status: LoanApplicationStatus
    message: str
    estimated_review_time: str = "2-5 minutes"


class LoanApplicationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    user_id: str
    loan_type: LoanType
    loan_amount: Decimal
    repayment_period: str
    status: LoanApplicationStatus
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


class LoanDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

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
    status: LoanStatus
    next_payment_date: datetime | None = None
    next_payment_amount: Decimal | None = None
    payments_completed: int
    total_payments: int
    product_name: str | None = None
    loan_purpose: str | None = None
    installation_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LoanScheduleEntry(BaseModel):
    payment_number: int
    due_date: datetime
    amount: Decimal
    principal: Decimal
    interest: Decimal
    status: str
    paid: bool
    paid_date: datetime | None = None


class LoanDetailsResponse(BaseModel):
    loan: LoanDTO
    payment_schedule: list[LoanScheduleEntry]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LoanHistoryResponse(BaseModel):
    loans: list[LoanDTO]
    pagination: Pagination


class LoanListResponse(BaseModel):
    loans: list[LoanDTO]


class WithdrawalResponse(BaseModel):
    success: bool
    message: str
