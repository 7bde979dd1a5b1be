from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from uuid import uuid4

from app.core.exceptions import InvalidTransition
from app.core.logging import get_audit_logger
from app.db.entity_store import EntityStore
from app.models.payment import Payment, PaymentsDocument
from app.schemas.payment import PaymentStatus

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


TWOPLACES = Decimal("0.01")
PRINCIPAL_SHARE = Decimal("0.85")

TERMINAL_PAYMENT_STATUSES = {PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED}

_ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING},
    PaymentStatus.PROCESSING: {PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED},
}


def new_payment_reference() -> str:
    return f"TXN{uuid4().hex[:8].upper()}"


def split_amount(amount: Decimal) -> tuple[Decimal, Decimal]:
    """Split a payment into its (principal, interest) portions."""
    principal = (amount * PRINCIPAL_SHARE).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return principal, (amount - principal).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class PaymentStore:
    """Payments (``PAY<n>``) made against loans."""

    def __init__(self, store: EntityStore[PaymentsDocument]) -> None:
        self.store = store

    async def create_payment(
        self,
        *,
        user_id: str,
        loan_id: str,
        amount: Decimal,
        method: str,
        phone_number: str,
    ) -> Payment:
        if amount <= 0:
            raise ValueError("payment amount must be positive")
        now = datetime.now(timezone.utc)
        principal, interest = split_amount(amount)

        def _create(document: PaymentsDocument) -> tuple[PaymentsDocument, Payment]:
            payment_id = f"PAY{document.next_id}"
            payment = Payment(
                id=payment_id,
                user_id=user_id,
                loan_id=loan_id,
                payment_reference=new_payment_reference(),
                amount=amount,
                method=getattr(method, "value", method),
                phone_number=phone_number,
                status=PaymentStatus.PENDING,
                principal=principal,
                interest=interest,
                created_at=now,
                updated_at=now,
            )
            document.payments[payment_id] = payment
            document.next_id += 1
            return document, payment

        payment = await self.store.mutate(_create)
        audit_logger.info(
            "payment.created id=%s loan_id=%s amount=%s", payment.id, loan_id, payment.amount
        )
        return payment

    async def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        *,
        transaction_reference: str | None = None,
        receipt_number: str | None = None,
        failure_reason: str | None = None,
        at: datetime | None = None,
    ) -> Payment | None:
        """Move one payment to ``status``; terminal payments raise ``InvalidTransition``."""
        status = PaymentStatus(status)
        at = at or datetime.now(timezone.utc)

        def _apply(document: PaymentsDocument) -> tuple[PaymentsDocument, Payment | None]:
            payment = document.payments.get(payment_id)
            if payment is None:
                return document, None
            current = PaymentStatus(payment.status)
            if status not in _ALLOWED_TRANSITIONS.get(current, set()):
                raise InvalidTransition("payment", payment_id, current.value, status.value)
            changes: dict = {
                "status": status,
                "transaction_reference": transaction_reference or payment.transaction_reference,
                "receipt_number": receipt_number or payment.receipt_number,
                "failure_reason": failure_reason,
                "updated_at": at,
            }
            if status in TERMINAL_PAYMENT_STATUSES:
                changes["processed_at"] = at
            updated = payment.model_copy(update=changes)
            document.payments[payment_id] = updated
            return document, updated

        updated = await self.store.mutate(_apply)
        if updated is not None:
            audit_logger.info("payment.status_changed id=%s status=%s", payment_id, status.value)
        return updated

    async def find_payment_by_id(self, payment_id: str) -> Payment | None:
        document = await self.store.read()
        return document.payments.get(payment_id)

    async def find_payments_by_user_id(self, user_id: str) -> list[Payment]:
        document = await self.store.read()
        return [payment for payment in document.payments.values() if payment.user_id == user_id]

    async def find_payments_by_loan_id(self, loan_id: str) -> list[Payment]:
        document = await self.store.read()
        return [payment for payment in document.payments.values() if payment.loan_id == loan_id]

    async def find_payment_by_receipt(self, user_id: str, receipt_number: str) -> Payment | None:
        payments = await self.find_payments_by_user_id(user_id)
        return next((item for item in payments if item.receipt_number == receipt_number), None)
