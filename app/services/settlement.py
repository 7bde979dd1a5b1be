from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable
from uuid import uuid4

from app.schemas.payment import PaymentStatus
from app.services.decisions import DecisionSource

logger = logging.getLogger(__name__)


SUCCESS_PROBABILITY = 0.90

FAILURE_REASONS = (
    "Insufficient funds in account",
    "Payment timeout - please try again",
    "Transaction declined by provider",
    "Network error occurred",
    "Invalid phone number format",
)


@dataclass(frozen=True)
class SettlementDelays:
    pending_seconds: float = 0.5
    gateway_min_seconds: float = 3.0
    gateway_max_seconds: float = 10.0


@dataclass(frozen=True)
class SettlementOutcome:
    payment_id: str
    status: PaymentStatus
    processed_at: datetime
    transaction_reference: str | None = None
    receipt_number: str | None = None
    failure_reason: str | None = None

    @property
    def successful(self) -> bool:
        return self.status == PaymentStatus.SUCCESSFUL


def _transaction_reference() -> str:
    return f"TXN{uuid4().hex.upper()}"


def _receipt_number() -> str:
    return f"RCP{uuid4().hex[:16].upper()}"


class SettlementWorkflow:
    """PENDING -> PROCESSING -> SUCCESSFUL | FAILED against a simulated gateway.

    Success does not depend on amount or method. The caller persists the
    outcome and applies the balance change.
    """

    def __init__(
        self,
        decisions: DecisionSource,
        delays: SettlementDelays | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.decisions = decisions
        self.delays = delays or SettlementDelays()
        self._sleep = sleep

    async def run(
        self,
        payment_id: str,
        amount: Decimal,
        phone_number: str,
        method: str,
        *,
        on_processing: Callable[[], Awaitable[None]] | None = None,
    ) -> SettlementOutcome:
        await self._sleep(self.delays.pending_seconds)

        logger.info("Payment %s processing via %s", payment_id, method)
        if on_processing is not None:
            await on_processing()

        await self._sleep(
            self.decisions.uniform(self.delays.gateway_min_seconds, self.delays.gateway_max_seconds)
        )

        processed_at = datetime.now(timezone.utc)
        if self.decisions.draw() < SUCCESS_PROBABILITY:
            outcome = SettlementOutcome(
                payment_id=payment_id,
                status=PaymentStatus.SUCCESSFUL,
                processed_at=processed_at,
                transaction_reference=_transaction_reference(),
                receipt_number=_receipt_number(),
            )
        else:
            outcome = SettlementOutcome(
                payment_id=payment_id,
                status=PaymentStatus.FAILED,
                processed_at=processed_at,
                failure_reason=self.decisions.choice(FAILURE_REASONS),
            )
        logger.info("Payment %s settled: %s", payment_id, outcome.status.value)
        return outcome
