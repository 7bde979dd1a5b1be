"""Boundary between request handlers and the detached lending workflows.

A request creates the initial record, enqueues exactly one workflow job for it
and returns. The job runs the workflow (which only decides) and then persists
the outcome through the stores. No store lock is held while a workflow sleeps.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from app.core.exceptions import InvalidTransition
from app.models.loan import Loan, LoanApplication
from app.models.payment import Payment
from app.schemas.client import VerificationStatus
from app.schemas.loan import LoanApplicationStatus, LoanStatus, LoanType
from app.schemas.payment import PaymentStatus
from app.services.outcomes import OperationResult, OutcomeCode
from app.services.settlement import SettlementOutcome, SettlementWorkflow
from app.services.underwriting import DecisionOutcome, UnderwritingWorkflow
from app.services.workflow_runner import WorkflowJob, WorkflowRunner
from app.stores.clients import ClientStore
from app.stores.loans import WITHDRAWABLE_STATUSES, LoanStore
from app.stores.payments import PaymentStore

logger = logging.getLogger(__name__)

UNDERWRITING = "underwriting"
SETTLEMENT = "settlement"
_NOT_ACCEPTING = "Service is shutting down. Please try again shortly."


class LendingOrchestrator:
    def __init__(
        self,
        *,
        clients: ClientStore,
        loans: LoanStore,
        payments: PaymentStore,
        underwriting: UnderwritingWorkflow,
        settlement: SettlementWorkflow,
        runner: WorkflowRunner,
    ) -> None:
        self.clients = clients
        self.loans = loans
        self.payments = payments
        self.underwriting = underwriting
        self.settlement = settlement
        self.runner = runner

    # -- loan applications -------------------------------------------------

    async def create_application(
        self,
        owner_id: str,
        loan_type: LoanType,
        amount: Decimal,
        repayment_period: str,
        purpose: str | None = None,
        product_name: str | None = None,
    ) -> LoanApplication:
        return await self.loans.create_application(
            user_id=owner_id,
            loan_type=loan_type,
            loan_amount=amount,
            repayment_period=repayment_period,
            loan_purpose=purpose,
            product_name=product_name,
        )

    async def run_underwriting(
        self,
        application_id: str,
        loan_type: LoanType,
        amount: Decimal,
        verification_status: VerificationStatus | str,
    ) -> DecisionOutcome:
        async def _review_started(at: datetime) -> None:
            try:
                await self.loans.update_application_status(
                    application_id, LoanApplicationStatus.UNDER_REVIEW, at=at
                )
            except InvalidTransition as exc:
                logger.warning("Review start not recorded: %s", exc)

        return await self.underwriting.run(
            application_id,
            loan_type,
            amount,
            verification_status,
            on_review_started=_review_started,
        )

    async def apply_decision(
        self, application_id: str, outcome: DecisionOutcome
    ) -> tuple[LoanApplication | None, Loan | None]:
        """Persist an underwriting decision and materialize the loan on approval.

        Raises ``InvalidTransition`` when the application already reached a
        terminal state (for example it was withdrawn while under review).
        """
        application = await self.loans.update_application_status(
            application_id,
            outcome.status,
            rejection_reason=outcome.rejection_reason,
            at=outcome.review_completed_at,
            review_started_at=outcome.review_started_at,
        )
        if application is None:
            logger.warning("Decision for unknown application %s dropped", application_id)
            return None, None
        loan = None
        if outcome.approved:
            loan = await self.loans.create_loan_from_application(application_id)
        return application, loan

    async def submit_application(
        self,
        client_id: str,
        loan_type: LoanType,
        amount: Decimal,
        repayment_period: str,
        purpose: str | None = None,
        product_name: str | None = None,
    ) -> OperationResult[LoanApplication]:
        client = await self.clients.find_by_id(client_id)
        if client is None:
            return OperationResult.failure(OutcomeCode.NOT_FOUND, "Client not found")
        if not client.can_apply_for_loan:
            return OperationResult.failure(
                OutcomeCode.INELIGIBLE,
                "Profile incomplete or not verified. Please complete your profile "
                "and upload required documents.",
            )
        if not self.runner.accepting:
            return OperationResult.failure(OutcomeCode.UNAVAILABLE, _NOT_ACCEPTING)

        application = await self.create_application(
            client_id, loan_type, amount, repayment_period, purpose, product_name
        )
        verification_status = client.verification_status

        async def _underwrite() -> None:
            outcome = await self.run_underwriting(
                application.id, application.loan_type, application.loan_amount, verification_status
            )
            try:
                await self.apply_decision(application.id, outcome)
            except InvalidTransition as exc:
                logger.warning("Underwriting decision discarded: %s", exc)

        try:
            await self.runner.submit(
                WorkflowJob(kind=UNDERWRITING, record_id=application.id, run=_underwrite)
            )
        except RuntimeError:
            logger.error("Application %s created but its underwriting job was not queued", application.id)
            raise
        return OperationResult.success(application)

    async def withdraw_application(
        self, client_id: str, application_id: str
    ) -> OperationResult[LoanApplication]:
        application = await self.loans.find_application_by_id(application_id)
        if application is None or application.user_id != client_id:
            return OperationResult.failure(OutcomeCode.NOT_FOUND, "Application not found")
        if application.status not in WITHDRAWABLE_STATUSES:
            return OperationResult.failure(
                OutcomeCode.NOT_WITHDRAWABLE, "Application cannot be withdrawn at this stage"
            )
        # The decision may land between the read above and this write.
        try:
            withdrawn = await self.loans.update_application_status(
                application_id, LoanApplicationStatus.CANCELLED
            )
        except InvalidTransition:
            return OperationResult.failure(
                OutcomeCode.NOT_WITHDRAWABLE, "Application cannot be withdrawn at this stage"
            )
        return OperationResult.success(withdrawn)

    # -- payments ----------------------------------------------------------

    async def create_payment(
        self,
        owner_id: str,
        loan_id: str,
        amount: Decimal,
        method: str,
        phone_number: str,
    ) -> Payment:
        return await self.payments.create_payment(
            user_id=owner_id,
            loan_id=loan_id,
            amount=amount,
            method=method,
            phone_number=phone_number,
        )

    async def run_settlement(
        self, payment_id: str, amount: Decimal, phone_number: str, method: str
    ) -> SettlementOutcome:
        async def _processing() -> None:
            try:
                await self.payments.update_payment_status(payment_id, PaymentStatus.PROCESSING)
            except InvalidTransition as exc:
                logger.warning("Processing step not recorded: %s", exc)

        return await self.settlement.run(
            payment_id, amount, phone_number, method, on_processing=_processing
        )

    async def apply_settlement(
        self, payment_id: str, outcome: SettlementOutcome
    ) -> tuple[Payment | None, Loan | None]:
        """Persist a settlement outcome; a success decrements its loan once.

        Raises ``InvalidTransition`` when the payment is already terminal, in
        which case the loan is left untouched. The payment is written before
        the loan; if the loan write fails the payment stays SUCCESSFUL with no
        balance change and the error names it for manual repair.
        """
        payment = await self.payments.update_payment_status(
            payment_id,
            outcome.status,
            transaction_reference=outcome.transaction_reference,
            receipt_number=outcome.receipt_number,
            failure_reason=outcome.failure_reason,
            at=outcome.processed_at,
        )
        if payment is None:
            logger.warning("Settlement for unknown payment %s dropped", payment_id)
            return None, None
        loan = None
        if outcome.successful:
            try:
                loan = await self.loans.apply_payment(payment.loan_id, payment.id, payment.amount)
            except Exception:
                logger.error(
                    "Payment %s settled but not applied to loan %s", payment.id, payment.loan_id
                )
                raise
        return payment, loan

    async def submit_payment(
        self,
        client_id: str,
        loan_id: str,
        amount: Decimal,
        method: str,
        phone_number: str,
    ) -> OperationResult[Payment]:
        loan = await self.loans.find_loan_by_id(loan_id)
        if loan is None or loan.user_id != client_id:
            return OperationResult.failure(OutcomeCode.NOT_FOUND, "Loan not found")
        if loan.status != LoanStatus.ACTIVE:
            return OperationResult.failure(OutcomeCode.LOAN_INACTIVE, "Loan is not active")
        if not self.runner.accepting:
            return OperationResult.failure(OutcomeCode.UNAVAILABLE, _NOT_ACCEPTING)

        payment = await self.create_payment(client_id, loan_id, amount, method, phone_number)

        async def _settle() -> None:
            outcome = await self.run_settlement(
                payment.id, payment.amount, payment.phone_number, payment.method
            )
            try:
                await self.apply_settlement(payment.id, outcome)
            except InvalidTransition as exc:
                logger.warning("Settlement outcome discarded: %s", exc)

        try:
            await self.runner.submit(WorkflowJob(kind=SETTLEMENT, record_id=payment.id, run=_settle))
        except RuntimeError:
            logger.error("Payment %s created but its settlement job was not queued", payment.id)
            raise
        return OperationResult.success(payment)
