from decimal import Decimal

import pytest

from conftest import ScriptedDecisions, always_approve, always_decline, no_sleep
from app.schemas.client import VerificationStatus
from app.schemas.loan import LoanApplicationStatus, LoanType
from app.services import underwriting
from app.services.decisions import RandomDecisionSource
from app.services.underwriting import UnderwritingDelays, UnderwritingWorkflow


@pytest.mark.parametrize(
    ("loan_type", "amount", "expected"),
    [
        (LoanType.CASH, "50000", 0.90),
        (LoanType.CASH, "50000.01", 0.70),
        (LoanType.PAYGO, "100000", 0.90),
        (LoanType.PAYGO, "100001", 0.80),
        ("CASH", "1000", 0.90),
    ],
)
def test_approval_probability(loan_type, amount, expected) -> None:
    assert underwriting.approval_probability(loan_type, Decimal(amount)) == expected


def test_unverified_applicant_is_always_rejected() -> None:
    source = always_approve()
    results = [
        underwriting.decide(LoanType.CASH, Decimal("100"), VerificationStatus.UNVERIFIED, source)
        for _ in range(100)
    ]

    assert results == [(False, underwriting.REASON_UNVERIFIED)] * 100
    assert source.draw_count == 0


def test_declined_large_request_gets_limit_reason() -> None:
    approved, reason = underwriting.decide(
        LoanType.PAYGO, Decimal("150000"), VerificationStatus.VERIFIED, always_decline()
    )
    assert approved is False
    assert reason == underwriting.REASON_OVER_LIMIT


def test_declined_small_request_gets_generic_reason() -> None:
    approved, reason = underwriting.decide(
        LoanType.CASH, Decimal("5000"), VerificationStatus.VERIFIED, always_decline()
    )
    assert approved is False
    assert reason == underwriting.REASON_GENERIC


def test_approval_rate_converges_to_ninety_percent() -> None:
    source = RandomDecisionSource(seed=1234)
    trials = 5000
    approvals = sum(
        underwriting.decide(LoanType.CASH, Decimal("1000"), VerificationStatus.VERIFIED, source)[0]
        for _ in range(trials)
    )

    assert 0.87 <= approvals / trials <= 0.93


@pytest.mark.asyncio
async def test_workflow_reports_review_start_and_approves() -> None:
    sleeps: list[float] = []
    started: list = []

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    async def _on_review_started(at) -> None:
        started.append(at)

    workflow = UnderwritingWorkflow(
        ScriptedDecisions(draws=(0.1,), delay=3.5),
        UnderwritingDelays(submission_seconds=1.0, review_min_seconds=2.0, review_max_seconds=5.0),
        sleep=_sleep,
    )
    outcome = await workflow.run(
        "APP1",
        LoanType.CASH,
        Decimal("2000"),
        VerificationStatus.VERIFIED,
        on_review_started=_on_review_started,
    )

    assert sleeps == [1.0, 3.5]
    assert started == [outcome.review_started_at]
    assert outcome.status == LoanApplicationStatus.APPROVED
    assert outcome.approved is True
    assert outcome.approved_at == outcome.review_completed_at
    assert outcome.rejection_reason is None
    assert outcome.submitted_at <= outcome.review_started_at <= outcome.review_completed_at


@pytest.mark.asyncio
async def test_workflow_rejection_has_reason_and_no_approval_time() -> None:
    workflow = UnderwritingWorkflow(always_decline(), sleep=no_sleep)

    outcome = await workflow.run("APP2", LoanType.CASH, Decimal("2000"), "VERIFIED")

    assert outcome.status == LoanApplicationStatus.REJECTED
    assert outcome.approved_at is None
    assert outcome.rejection_reason == underwriting.REASON_GENERIC
