from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable

from app.schemas.client import VerificationStatus
from app.schemas.loan import LoanApplicationStatus, LoanType
from app.services.decisions import DecisionSource

logger = logging.getLogger(__name__)


REASON_UNVERIFIED = "Profile verification incomplete"
REASON_OVER_LIMIT = "Requested amount exceeds maximum limit for your profile"
REASON_GENERIC = "Unable to approve at this time. Please contact support."

LARGE_CASH_THRESHOLD = Decimal("50000")
LARGE_PAYGO_THRESHOLD = Decimal("100000")
PROFILE_LIMIT = Decimal("100000")


@dataclass(frozen=True)
class UnderwritingDelays:
    submission_seconds: float = 1.0
    review_min_seconds: float = 2.0
    review_max_seconds: float = 5.0


@dataclass(frozen=True)
class DecisionOutcome:
    application_id: str
    status: LoanApplicationStatus
    submitted_at: datetime
    review_started_at: datetime
    review_completed_at: datetime
    approved_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def approved(self) -> bool:
        return self.status == LoanApplicationStatus.APPROVED


def approval_probability(loan_type: LoanType | str, amount: Decimal) -> float:
    loan_type = getattr(loan_type, "value", loan_type)
    if loan_type == LoanType.CASH.value and amount > LARGE_CASH_THRESHOLD:
        return 0.70
    if loan_type == LoanType.PAYGO.value and amount > LARGE_PAYGO_THRESHOLD:
        return 0.80
    return 0.90


def decide(
    loan_type: LoanType | str,
    amount: Decimal,
    verification_status: VerificationStatus | str,
    source: DecisionSource,
) -> tuple[bool, str | None]:
    """Return ``(approved, rejection_reason)`` for one application."""
    if verification_status != VerificationStatus.VERIFIED:
        return False, REASON_UNVERIFIED
    if source.draw() < approval_probability(loan_type, amount):
        return True, None
    if amount > PROFILE_LIMIT:
        return False, REASON_OVER_LIMIT
    return False, REASON_GENERIC


class UnderwritingWorkflow:
    """SUBMITTED -> UNDER_REVIEW -> APPROVED | REJECTED, with simulated latency.

    The workflow only decides; persisting the outcome is up to the caller.
    ``on_review_started`` lets the caller record the UNDER_REVIEW step; it is
    awaited outside of any simulated delay.
    """

    def __init__(
        self,
        decisions: DecisionSource,
        delays: UnderwritingDelays | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.decisions = decisions
        self.delays = delays or UnderwritingDelays()
        self._sleep = sleep

    async def run(
        self,
        application_id: str,
        loan_type: LoanType | str,
        amount: Decimal,
        verification_status: VerificationStatus | str,
        *,
        on_review_started: Callable[[datetime], Awaitable[None]] | None = None,
    ) -> DecisionOutcome:
        submitted_at = datetime.now(timezone.utc)
        await self._sleep(self.delays.submission_seconds)

        review_started_at = datetime.now(timezone.utc)
        logger.info("Application %s under review", application_id)
        if on_review_started is not None:
            await on_review_started(review_started_at)

        await self._sleep(
            self.decisions.uniform(self.delays.review_min_seconds, self.delays.review_max_seconds)
        )

        approved, reason = decide(loan_type, amount, verification_status, self.decisions)
        completed_at = datetime.now(timezone.utc)
        outcome = DecisionOutcome(
            application_id=application_id,
            status=LoanApplicationStatus.APPROVED if approved else LoanApplicationStatus.REJECTED,
            submitted_at=submitted_at,
            review_started_at=review_started_at,
            review_completed_at=completed_at,
            approved_at=completed_at if approved else None,
            rejection_reason=reason,
        )
        logger.info("Application %s decided: %s", application_id, outcome.status.value)
        return outcome
