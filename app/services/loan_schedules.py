from __future__ import annotations

from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from app.models.loan import Loan
from app.schemas.loan import LoanScheduleEntry
from app.schemas.payment import EarlyPayoffResponse
from app.services.loan_terms import BILLING_CYCLE, TWOPLACES
from app.stores.payments import split_amount


EARLY_PAYOFF_DISCOUNT_RATE = Decimal("0.05")
# Paid instalments are shown as settled a few days ahead of their due date.
PAID_AHEAD = timedelta(days=5)


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def scheduled_installment(loan: Loan) -> Decimal:
    if loan.next_payment_amount is not None:
        return loan.next_payment_amount
    if loan.total_payments <= 0:
        return Decimal("0.00")
    return _money(loan.total_amount / Decimal(loan.total_payments))


def build_schedule(loan: Loan) -> list[LoanScheduleEntry]:
    """One entry per instalment, due every billing cycle after disbursement."""
    amount = scheduled_installment(loan)
    principal, interest = split_amount(amount)
    entries: list[LoanScheduleEntry] = []
    for number in range(1, loan.total_payments + 1):
        due_date = loan.disbursement_date + BILLING_CYCLE * number
        paid = number <= loan.payments_completed
        entries.append(
            LoanScheduleEntry(
                payment_number=number,
                due_date=due_date,
                amount=amount,
                principal=principal,
                interest=interest,
                status="PAID" if paid else "PENDING",
                paid=paid,
                paid_date=due_date - PAID_AHEAD if paid else None,
            )
        )
    return entries


def early_payoff_quote(loan: Loan) -> EarlyPayoffResponse:
    remaining = loan.remaining_balance
    discount = _money(remaining * EARLY_PAYOFF_DISCOUNT_RATE)
    return EarlyPayoffResponse(
        loan_id=loan.id,
        remaining_balance=remaining,
        early_payoff_discount=discount,
        early_payoff_amount=_money(remaining - discount),
        savings=discount,
        message=f"Pay off early and save {discount}",
    )
