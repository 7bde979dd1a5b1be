from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence, TypeVar

from app.models.loan import Loan
from app.models.payment import Payment
from app.schemas.loan import LoanStatus, Pagination
from app.schemas.payment import (
    LoanPaymentSummary,
    NextPayment,
    PaymentDashboardResponse,
    PaymentDTO,
)

T = TypeVar("T")

RECENT_PAYMENTS_LIMIT = 5


def paginate(items: Sequence[T], page: int, limit: int) -> tuple[list[T], Pagination]:
    total = len(items)
    start = (page - 1) * limit
    window = list(items[start : start + limit]) if start < total else []
    total_pages = math.ceil(total / limit) if limit else 0
    return window, Pagination(page=page, limit=limit, total=total, total_pages=total_pages)


def _due_key(loan: Loan) -> datetime:
    return loan.next_payment_date or datetime.max.replace(tzinfo=timezone.utc)


def _payment_state(loan: Loan, now: datetime) -> str:
    if loan.next_payment_date is not None and now > loan.next_payment_date:
        return "OVERDUE"
    return "CURRENT"


def build_payment_dashboard(
    loans: Sequence[Loan],
    payments: Sequence[Payment],
    now: datetime | None = None,
) -> PaymentDashboardResponse:
    now = now or datetime.now(timezone.utc)
    active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    total_outstanding = sum((loan.remaining_balance for loan in active), Decimal("0.00"))

    next_payment = None
    if active:
        soonest = min(active, key=_due_key)
        next_payment = NextPayment(
            loan_id=soonest.id,
            amount=soonest.next_payment_amount,
            due_date=soonest.next_payment_date,
        )

    recent = sorted(payments, key=lambda payment: payment.created_at, reverse=True)[:RECENT_PAYMENTS_LIMIT]
    return PaymentDashboardResponse(
        total_outstanding=total_outstanding,
        active_loans_count=len(active),
        next_payment=next_payment,
        recent_payments=[PaymentDTO.model_validate(payment) for payment in recent],
        payment_summary=[
            LoanPaymentSummary(
                loan_id=loan.id,
                product_name=loan.product_name,
                amount_due=loan.next_payment_amount,
                due_date=loan.next_payment_date,
                status=_payment_state(loan, now),
            )
            for loan in active
        ],
    )
