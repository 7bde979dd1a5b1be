from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from app.schemas.loan import LoanQuoteResponse, LoanStatus, LoanType


TWOPLACES = Decimal("0.01")
BILLING_CYCLE = timedelta(days=30)
DEFAULT_INSTALLMENTS = 12
PAYGO_DOWN_PAYMENT_RATE = Decimal("0.10")

_INSTALLMENTS_BY_PERIOD = {
    "3_MONTHS": 3,
    "6_MONTHS": 6,
    "12_MONTHS": 12,
    "18_MONTHS": 18,
    "24_MONTHS": 24,
}


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def interest_rate_for(loan_type: LoanType | str, amount) -> Decimal:
    """Flat interest rate charged over the whole term.

    Cash loans are tiered by amount; pay-as-you-go is flat.
    """
    amount = _as_decimal(amount)
    loan_type = getattr(loan_type, "value", loan_type)
    if loan_type == LoanType.CASH.value:
        if amount < Decimal("10000"):
            return Decimal("0.15")
        if amount < Decimal("50000"):
            return Decimal("0.12")
        return Decimal("0.10")
    if loan_type == LoanType.PAYGO.value:
        return Decimal("0.18")
    return Decimal("0.15")


def installments_for(repayment_period) -> int:
    period = getattr(repayment_period, "value", repayment_period)
    return _INSTALLMENTS_BY_PERIOD.get(period, DEFAULT_INSTALLMENTS)


def total_repayable(principal, rate: Decimal) -> Decimal:
    return _money(_as_decimal(principal) * (Decimal("1") + rate))


def installment_amount(total_amount, installments: int) -> Decimal:
    if installments <= 0:
        raise ValueError("installments must be >= 1")
    return _money(_as_decimal(total_amount) / Decimal(installments))


def maturity_date(disbursed_at: datetime, repayment_period) -> datetime:
    return disbursed_at + BILLING_CYCLE * installments_for(repayment_period)


def next_payment_date(now: datetime) -> datetime:
    return now + BILLING_CYCLE


@dataclass(frozen=True)
class LoanTerms:
    interest_rate: Decimal
    total_amount: Decimal
    total_payments: int
    installment: Decimal


def compute_terms(loan_type: LoanType | str, principal, repayment_period) -> LoanTerms:
    rate = interest_rate_for(loan_type, principal)
    total = total_repayable(principal, rate)
    payments = installments_for(repayment_period)
    return LoanTerms(
        interest_rate=rate,
        total_amount=total,
        total_payments=payments,
        installment=installment_amount(total, payments),
    )


@dataclass(frozen=True)
class BalanceChange:
    remaining_balance: Decimal
    payments_completed: int
    status: LoanStatus


def amortize(remaining_balance, payments_completed: int, payment_amount) -> BalanceChange:
    """Apply one successful payment to a running balance.

    The balance never goes below zero and the loan completes exactly when it
    reaches zero.
    """
    payment_amount = _as_decimal(payment_amount)
    if payment_amount <= 0:
        raise ValueError("payment amount must be positive")
    new_balance = _as_decimal(remaining_balance) - payment_amount
    if new_balance <= 0:
        return BalanceChange(
            remaining_balance=Decimal("0.00"),
            payments_completed=payments_completed + 1,
            status=LoanStatus.COMPLETED,
        )
    return BalanceChange(
        remaining_balance=_money(new_balance),
        payments_completed=payments_completed + 1,
        status=LoanStatus.ACTIVE,
    )


def build_quote(loan_type: LoanType, principal, repayment_period) -> LoanQuoteResponse:
    principal = _as_decimal(principal)
    terms = compute_terms(loan_type, principal, repayment_period)
    down_payment = None
    if loan_type == LoanType.PAYGO:
        down_payment = _money(principal * PAYGO_DOWN_PAYMENT_RATE)
    return LoanQuoteResponse(
        loan_type=loan_type,
        principal=principal,
        interest_rate=terms.interest_rate,
        total_amount=terms.total_amount,
        repayment_period=getattr(repayment_period, "value", repayment_period),
        monthly_payment=terms.installment,
        total_payments=terms.total_payments,
        total_interest=_money(terms.total_amount - principal),
        down_payment=down_payment,
    )
