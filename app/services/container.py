from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from app.core.settings import Settings
from app.db.entity_store import EntityStore
from app.models import ClientsDocument, LoansDocument, PaymentsDocument, TokensDocument
from app.services.decisions import DecisionSource, RandomDecisionSource
from app.services.orchestration import LendingOrchestrator
from app.services.settlement import SettlementDelays, SettlementWorkflow
from app.services.underwriting import UnderwritingDelays, UnderwritingWorkflow
from app.services.workflow_runner import WorkflowRunner
from app.stores.clients import ClientStore
from app.stores.loans import LoanStore
from app.stores.payments import PaymentStore
from app.stores.tokens import TokenStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything one running application instance shares."""

    data_dir: Path
    clients: ClientStore
    loans: LoanStore
    payments: PaymentStore
    tokens: TokenStore
    runner: WorkflowRunner
    orchestrator: LendingOrchestrator

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        decisions: DecisionSource | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "ServiceContainer":
        data_dir = Path(settings.data_dir)
        decisions = decisions or RandomDecisionSource(settings.random_seed)

        clients = ClientStore(EntityStore(data_dir / "clients.json", ClientsDocument))
        loans = LoanStore(EntityStore(data_dir / "loans.json", LoansDocument))
        payments = PaymentStore(EntityStore(data_dir / "payments.json", PaymentsDocument))
        tokens = TokenStore(EntityStore(data_dir / "tokens.json", TokensDocument))

        underwriting = UnderwritingWorkflow(
            decisions,
            UnderwritingDelays(
                submission_seconds=settings.submission_delay_seconds,
                review_min_seconds=settings.review_delay_min_seconds,
                review_max_seconds=settings.review_delay_max_seconds,
            ),
            sleep=sleep,
        )
        settlement = SettlementWorkflow(
            decisions,
            SettlementDelays(
                pending_seconds=settings.payment_pending_delay_seconds,
                gateway_min_seconds=settings.gateway_delay_min_seconds,
                gateway_max_seconds=settings.gateway_delay_max_seconds,
            ),
            sleep=sleep,
        )
        runner = WorkflowRunner(
            workers=settings.workflow_workers, max_queue_size=settings.workflow_queue_size
        )
        orchestrator = LendingOrchestrator(
            clients=clients,
            loans=loans,
            payments=payments,
            underwriting=underwriting,
            settlement=settlement,
            runner=runner,
        )
        return cls(
            data_dir=data_dir,
            clients=clients,
            loans=loans,
            payments=payments,
            tokens=tokens,
            runner=runner,
            orchestrator=orchestrator,
        )

    @property
    def entity_stores(self) -> list[EntityStore]:
        return [self.clients.store, self.loans.store, self.payments.store, self.tokens.store]

    async def start(self) -> None:
        await self.runner.start()

    async def close(self, *, drain: bool = True) -> None:
        await self.runner.stop(drain=drain)
        for store in self.entity_stores:
            store.close()
        logger.info("Service container closed")
