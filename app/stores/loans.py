from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from app.core.exceptions import InvalidTransition
from app.core.logging import get_audit_logger
from app.db.entity_store import EntityStore
from app.models.loan import Loan, LoanApplication, LoansDocument
from app.schemas.loan import LoanApplicationStatus, LoanStatus, LoanType
from app.services import loan_terms

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


TERMINAL_APPLICATION_STATUSES = {
    LoanApplicationStatus.APPROVED,
    LoanApplicationStatus.REJECTED,
    LoanApplicationStatus.CANCELLED,
}

WITHDRAWABLE_STATUSES = {
    LoanApplicationStatus.SUBMITTED,
    LoanApplicationStatus.UNDER_REVIEW,
}

_ALLOWED_TRANSITIONS = {
    LoanApplicationStatus.SUBMITTED: {
        LoanApplicationStatus.UNDER_REVIEW,
        LoanApplicationStatus.CANCELLED,
    },
    LoanApplicationStatus.UNDER_REVIEW: {
        LoanApplicationStatus.APPROVED,
        LoanApplicationStatus.REJECTED,
        LoanApplicationStatus.CANCELLED,
    },
}


def _check_transition(application: LoanApplication, target: LoanApplicationStatus) -> None:
    current = LoanApplicationStatus(application.status)
    if target not in _ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition("loan_application", application.id, current.value, target.value)


class LoanStore:
    """Loan applications (``APP<n>``) and the loans (``LOAN<n>``) they produce."""

    def __init__(self, store: EntityStore[LoansDocument]) -> None:
        self.store = store

    async def create_application(
        self,
        *,
        user_id: str,
        loan_type: LoanType,
        loan_amount: Decimal,
        repayment_period: str,
        loan_purpose: str | None = None,
        product_name: str | None = None,
    ) -> LoanApplication:
        now = datetime.now(timezone.utc)

        def _create(document: LoansDocument) -> tuple[LoansDocument, LoanApplication]:
            application_id = f"APP{document.next_application_id}"
            application = LoanApplication(
                id=application_id,
                user_id=user_id,
                loan_type=loan_type,
                loan_amount=loan_amount,
                repayment_period=getattr(repayment_period, "value", repayment_period),
                status=LoanApplicationStatus.SUBMITTED,
                submitted_at=now,
                loan_purpose=loan_purpose,
                product_name=product_name,
                created_at=now,
                updated_at=now,
            )
            document.applications[application_id] = application
            document.next_application_id += 1
            return document, application

        application = await self.store.mutate(_create)
        audit_logger.info(
            "loan_application.submitted id=%s user_id=%s type=%s amount=%s",
            application.id,
            user_id,
            application.loan_type.value,
            application.loan_amount,
        )
        return application

    async def find_application_by_id(self, application_id: str) -> LoanApplication | None:
        document = await self.store.read()
        return document.applications.get(application_id)

    async def find_applications_by_user_id(self, user_id: str) -> list[LoanApplication]:
        document = await self.store.read()
        return [item for item in document.applications.values() if item.user_id == user_id]

    async def update_application_status(
        self,
        application_id: str,
        status: LoanApplicationStatus,
        *,
        rejection_reason: str | None = None,
        at: datetime | None = None,
        review_started_at: datetime | None = None,
    ) -> LoanApplication | None:
        """Move one application to ``status``.

        Returns None when the application does not exist and raises
        ``InvalidTransition`` when the move is not allowed from its current
        status. Transition timestamps are only filled in once.
        """
        status = LoanApplicationStatus(status)
        at = at or datetime.now(timezone.utc)

        def _apply(document: LoansDocument) -> tuple[LoansDocument, LoanApplication | None]:
            application = document.applications.get(application_id)
            if application is None:
                return document, None
            _check_transition(application, status)
            changes: dict = {"status": status, "updated_at": at}
            if status != LoanApplicationStatus.CANCELLED and application.review_started_at is None:
                changes["review_started_at"] = review_started_at or at
            if status in {LoanApplicationStatus.APPROVED, LoanApplicationStatus.REJECTED}:
                if application.review_completed_at is None:
                    changes["review_completed_at"] = at
            if status == LoanApplicationStatus.APPROVED and application.approved_at is None:
                changes["approved_at"] = at
            if status in {LoanApplicationStatus.REJECTED, LoanApplicationStatus.CANCELLED}:
                changes["rejection_reason"] = rejection_reason
            updated = application.model_copy(update=changes)
            document.applications[application_id] = updated
            return document, updated

        updated = await self.store.mutate(_apply)
        if updated is not None:
            audit_logger.info(
                "loan_application.status_changed id=%s status=%s", application_id, status.value
            )
        return updated

    async def create_loan_from_application(self, application_id: str) -> Loan | None:
        """Materialize the loan for an APPROVED application.

        Calling this again for the same application returns the loan created
        the first time.
        """
        now = datetime.now(timezone.utc)

        def _create(document: LoansDocument) -> tuple[LoansDocument, tuple[Loan | None, bool]]:
            application = document.applications.get(application_id)
            if application is None:
                return document, (None, False)
            if application.loan_id is not None:
                return document, (document.loans.get(application.loan_id), False)
            if application.status != LoanApplicationStatus.APPROVED:
                raise InvalidTransition(
                    "loan_application",
                    application.id,
                    LoanApplicationStatus(application.status).value,
                    "LOAN_CREATED",
                )
            terms = loan_terms.compute_terms(
                application.loan_type, application.loan_amount, application.repayment_period
            )
            loan_id = f"LOAN{document.next_loan_id}"
            loan = Loan(
                id=loan_id,
                user_id=application.user_id,
                application_id=application.id,
                loan_type=application.loan_type,
                original_amount=application.loan_amount,
                total_amount=terms.total_amount,
                remaining_balance=terms.total_amount,
                interest_rate=terms.interest_rate,
                repayment_period=application.repayment_period,
                disbursement_date=now,
                maturity_date=loan_terms.maturity_date(now, application.repayment_period),
                status=LoanStatus.ACTIVE,
                next_payment_date=loan_terms.next_payment_date(now),
                next_payment_amount=terms.installment,
                payments_completed=0,
                total_payments=terms.total_payments,
                product_name=application.product_name,
                loan_purpose=application.loan_purpose,
                installation_date=now if application.loan_type == LoanType.PAYGO else None,
                created_at=now,
                updated_at=now,
            )
            document.loans[loan_id] = loan
            document.applications[application_id] = application.model_copy(
                update={"loan_id": loan_id, "updated_at": now}
            )
            document.next_loan_id += 1
            return document, (loan, True)

        loan, created = await self.store.mutate(_create)
        if created:
            audit_logger.info(
                "loan.disbursed id=%s application_id=%s total_amount=%s",
                loan.id,
                application_id,
                loan.total_amount,
            )
        return loan

    async def find_loan_by_id(self, loan_id: str) -> Loan | None:
        document = await self.store.read()
        return document.loans.get(loan_id)

    async def find_loans_by_user_id(self, user_id: str) -> list[Loan]:
        document = await self.store.read()
        return [loan for loan in document.loans.values() if loan.user_id == user_id]

    async def apply_payment(self, loan_id: str, payment_id: str, amount: Decimal) -> Loan | None:
        """Decrement the balance of ``loan_id`` by one successful payment.

        A payment id is applied at most once; repeated calls return the loan
        unchanged. Completed loans are never reopened.
        """
        if amount <= 0:
            raise ValueError("payment amount must be positive")
        now = datetime.now(timezone.utc)

        def _apply(document: LoansDocument) -> tuple[LoansDocument, tuple[Loan | None, bool]]:
            loan = document.loans.get(loan_id)
            if loan is None:
                return document, (None, False)
            if payment_id in loan.applied_payment_ids:
                return document, (loan, False)
            applied_ids = loan.applied_payment_ids + (payment_id,)
            if loan.status == LoanStatus.COMPLETED:
                updated = loan.model_copy(update={"applied_payment_ids": applied_ids, "updated_at": now})
            else:
                change = loan_terms.amortize(loan.remaining_balance, loan.payments_completed, amount)
                updated = loan.model_copy(
                    update={
                        "remaining_balance": change.remaining_balance,
                        "payments_completed": change.payments_completed,
                        "status": change.status,
                        "next_payment_date": (
                            loan_terms.next_payment_date(now)
                            if change.status == LoanStatus.ACTIVE
                            else None
                        ),
                        "applied_payment_ids": applied_ids,
                        "updated_at": now,
                    }
                )
            document.loans[loan_id] = updated
            return document, (updated, True)

        loan, applied = await self.store.mutate(_apply)
        if loan is None:
            logger.warning("Payment %s references missing loan %s", payment_id, loan_id)
        elif not applied:
            logger.warning("Payment %s already applied to loan %s", payment_id, loan_id)
        else:
            audit_logger.info(
                "loan.payment_applied id=%s payment_id=%s remaining_balance=%s status=%s",
                loan_id,
                payment_id,
                loan.remaining_balance,
                loan.status.value,
            )
        return loan
