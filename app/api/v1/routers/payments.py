from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api import deps
from app.core.limiter import limiter
from app.core.settings import settings
from app.schemas.loan import LoanStatus
from app.schemas.payment import (
    EarlyPayoffResponse,
    PaymentDashboardResponse,
    PaymentDTO,
    PaymentHistoryResponse,
    PaymentRequest,
    PaymentStatus,
    PaymentStatusResponse,
    PaymentSubmitted,
    ReceiptResponse,
)
from app.services import loan_schedules
from app.services.container import ServiceContainer
from app.services.payment_dashboard import build_payment_dashboard, paginate

router = APIRouter(prefix="/payments", tags=["payments"])

PROCESS_LIMIT = f"{settings.rate_limit_per_minute}/minute"

_STATUS_MESSAGES = {
    PaymentStatus.PENDING: "Payment is pending",
    PaymentStatus.PROCESSING: "Payment is being processed",
    PaymentStatus.SUCCESSFUL: "Payment completed successfully",
    PaymentStatus.FAILED: "Payment failed",
}


@router.post(
    "/process",
    response_model=PaymentSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a payment against a loan",
)
@limiter.limit(PROCESS_LIMIT)
async def process_payment(
    request: Request,
    payload: PaymentRequest,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> PaymentSubmitted:
    result = await container.orchestrator.submit_payment(
        client_id,
        payload.loan_id,
        payload.amount,
        payload.payment_method,
        payload.phone_number,
    )
    deps.raise_for_outcome(result)
    payment = result.value
    return PaymentSubmitted(
        payment_id=payment.id,
        status=payment.status,
        message="Payment initiated. Please complete on your phone.",
        transaction_reference=payment.payment_reference,
    )


@router.get("/dashboard", response_model=PaymentDashboardResponse, summary="Payment overview")
async def payment_dashboard(
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> PaymentDashboardResponse:
    loans = await container.loans.find_loans_by_user_id(client_id)
    payments = await container.payments.find_payments_by_user_id(client_id)
    return build_payment_dashboard(loans, payments)


@router.get("/history", response_model=PaymentHistoryResponse, summary="Payment history")
async def payment_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> PaymentHistoryResponse:
    payments = await container.payments.find_payments_by_user_id(client_id)
    payments.sort(key=lambda payment: payment.created_at, reverse=True)
    window, pagination = paginate(payments, page, limit)
    return PaymentHistoryResponse(
        payments=[PaymentDTO.model_validate(payment) for payment in window],
        pagination=pagination,
    )


@router.get(
    "/receipts/{receipt_number}",
    response_model=ReceiptResponse,
    summary="Receipt for a successful payment",
)
async def get_receipt(
    receipt_number: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> ReceiptResponse:
    payment = await container.payments.find_payment_by_receipt(client_id, receipt_number)
    if payment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    loan = await container.loans.find_loan_by_id(payment.loan_id)
    return ReceiptResponse(
        receipt_number=receipt_number,
        payment_reference=payment.payment_reference,
        loan_id=payment.loan_id,
        amount=payment.amount,
        payment_method=payment.method,
        phone_number=payment.phone_number,
        processed_at=payment.processed_at,
        loan_type=loan.loan_type if loan is not None else None,
        product_name=loan.product_name if loan is not None else None,
        transaction_reference=payment.transaction_reference,
        principal=payment.principal,
        interest=payment.interest,
        penalties=payment.penalties,
    )


@router.get(
    "/loans/{loan_id}/early-payoff",
    response_model=EarlyPayoffResponse,
    summary="Quote for settling a loan early",
)
async def early_payoff(
    loan_id: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> EarlyPayoffResponse:
    loan = await container.loans.find_loan_by_id(loan_id)
    if loan is None or loan.user_id != client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Loan not found")
    if loan.status != LoanStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Loan is not active")
    return loan_schedules.early_payoff_quote(loan)


@router.get("/{payment_id}/status", response_model=PaymentStatusResponse, summary="Payment status")
async def payment_status(
    payment_id: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> PaymentStatusResponse:
    payment = await container.payments.find_payment_by_id(payment_id)
    if payment is None or payment.user_id != client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return PaymentStatusResponse(
        payment_id=payment.id,
        status=payment.status,
        message=_STATUS_MESSAGES[payment.status],
        receipt_number=payment.receipt_number,
        transaction_reference=payment.transaction_reference,
        failure_reason=payment.failure_reason,
    )
