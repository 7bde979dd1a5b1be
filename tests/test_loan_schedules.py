from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.models.loan import Loan
from app.models.payment import Payment
from app.schemas.loan import LoanStatus, LoanType
from app.schemas.payment import PaymentStatus
from app.services import loan_schedules
from app.services.payment_dashboard import build_payment_dashboard, paginate

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _loan(**overrides) -> Loan:
    defaults = dict(
        id="LOAN1",
        user_id="1",
        application_id="APP1",
        loan_type=LoanType.CASH,
        original_amount=Decimal("20000"),
        total_amount=Decimal("22400.00"),
        remaining_balance=Decimal("22400.00"),
        interest_rate=Decimal("0.12"),
        repayment_period="12_MONTHS",
        disbursement_date=NOW,
        maturity_date=NOW + timedelta(days=360),
        next_payment_date=NOW + timedelta(days=30),
        next_payment_amount=Decimal("1866.67"),
        total_payments=12,
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(overrides)
    return Loan(**defaults)


def _payment(index: int, **overrides) -> Payment:
    defaults = dict(
        id=f"PAY{index}",
        user_id="1",
        loan_id="LOAN1",
        payment_reference=f"TXN{index:08d}",
        amount=Decimal("100"),
        method="ECOCASH",
        phone_number="0771234567",
        status=PaymentStatus.SUCCESSFUL,
        principal=Decimal("85.00"),
        interest=Decimal("15.00"),
        created_at=NOW + timedelta(minutes=index),
        updated_at=NOW + timedelta(minutes=index),
    )
    defaults.update(overrides)
    return Payment(**defaults)


def test_schedule_marks_completed_installments_paid() -> None:
    schedule = loan_schedules.build_schedule(_loan(payments_completed=2))

    assert [entry.payment_number for entry in schedule] == list(range(1, 13))
    assert [entry.status for entry in schedule[:3]] == ["PAID", "PAID", "PENDING"]
    assert schedule[0].due_date == NOW + timedelta(days=30)
    assert schedule[11].due_date == NOW + timedelta(days=360)
    assert schedule[1].paid_date == schedule[1].due_date - timedelta(days=5)
    assert schedule[2].paid_date is None
    assert schedule[0].principal + schedule[0].interest == schedule[0].amount


def test_schedule_falls_back_to_even_split_without_next_amount() -> None:
    schedule = loan_schedules.build_schedule(
        _loan(next_payment_amount=None, total_amount=Decimal("1150.00"), total_payments=3)
    )

    assert [entry.amount for entry in schedule] == [Decimal("383.33")] * 3


def test_early_payoff_gives_five_percent_discount() -> None:
    quote = loan_schedules.early_payoff_quote(_loan(remaining_balance=Decimal("1000.00")))

    assert quote.early_payoff_discount == Decimal("50.00")
    assert quote.early_payoff_amount == Decimal("950.00")
    assert quote.savings == quote.early_payoff_discount


def test_dashboard_sums_active_loans_and_flags_overdue() -> None:
    overdue = _loan(
        id="LOAN2",
        remaining_balance=Decimal("500.00"),
        next_payment_date=NOW - timedelta(days=1),
    )
    completed = _loan(id="LOAN3", status=LoanStatus.COMPLETED, remaining_balance=Decimal("0.00"))
    payments = [_payment(index) for index in range(1, 8)]

    dashboard = build_payment_dashboard([_loan(), overdue, completed], payments, now=NOW)

    assert dashboard.total_outstanding == Decimal("22900.00")
    assert dashboard.active_loans_count == 2
    assert dashboard.next_payment.loan_id == "LOAN2"
    assert [payment.id for payment in dashboard.recent_payments] == [
        "PAY7", "PAY6", "PAY5", "PAY4", "PAY3"
    ]
    assert {item.loan_id: item.status for item in dashboard.payment_summary} == {
        "LOAN1": "CURRENT",
        "LOAN2": "OVERDUE",
    }


def test_dashboard_without_loans() -> None:
    dashboard = build_payment_dashboard([], [], now=NOW)

    assert dashboard.total_outstanding == Decimal("0.00")
    assert dashboard.next_payment is None
    assert dashboard.payment_summary == []


def test_paginate_windows() -> None:
    items = list(range(25))

    window, pagination = paginate(items, page=3, limit=10)
    assert window == [20, 21, 22, 23, 24]
    assert pagination.total_pages == 3

    window, pagination = paginate(items, page=4, limit=10)
    assert window == []
    assert pagination.total == 25
