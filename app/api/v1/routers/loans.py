from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api import deps
from app.core.limiter import limiter
from app.core.settings import settings
from app.schemas.loan import (
    CashLoanApplicationRequest,
    CashLoanCalculationRequest,
    LoanApplicationDTO,
    LoanApplicationSubmitted,
    LoanDetailsResponse,
    LoanDTO,
    LoanHistoryFilter,
    LoanHistoryResponse,
    LoanListResponse,
    LoanQuoteResponse,
    LoanStatus,
    LoanType,
    PayGoApplicationRequest,
    PayGoCalculationRequest,
    WithdrawalResponse,
)
from app.services import loan_schedules, loan_terms
from app.services.container import ServiceContainer
from app.services.payment_dashboard import paginate

router = APIRouter(prefix="/loans", tags=["loans"])

APPLY_LIMIT = f"{settings.rate_limit_per_minute}/minute"


def _submitted(result) -> LoanApplicationSubmitted:
    deps.raise_for_outcome(result)
    application = result.value
    return LoanApplicationSubmitted(
        application_id=application.id,
        status=application.status,
        message="Application submitted successfully and is under review",
    )


@router.post("/cash/calculate", response_model=LoanQuoteResponse, summary="Quote a cash loan")
async def calculate_cash_loan(payload: CashLoanCalculationRequest) -> LoanQuoteResponse:
    return loan_terms.build_quote(LoanType.CASH, payload.loan_amount, payload.repayment_period)


@router.post("/paygo/calculate", response_model=LoanQuoteResponse, summary="Quote a PayGo loan")
async def calculate_paygo_loan(payload: PayGoCalculationRequest) -> LoanQuoteResponse:
    return loan_terms.build_quote(LoanType.PAYGO, payload.product_price, payload.repayment_period)


@router.post(
    "/cash/apply",
    response_model=LoanApplicationSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Apply for a cash loan",
)
@limiter.limit(APPLY_LIMIT)
async def apply_cash_loan(
    request: Request,
    payload: CashLoanApplicationRequest,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanApplicationSubmitted:
    result = await container.orchestrator.submit_application(
        client_id,
        LoanType.CASH,
        payload.loan_amount,
        payload.repayment_period,
        purpose=payload.loan_purpose,
    )
    return _submitted(result)


@router.post(
    "/paygo/apply",
    response_model=LoanApplicationSubmitted,
    status_code=status.HTTP_201_CREATED,
    summary="Apply for a PayGo product loan",
)
@limiter.limit(APPLY_LIMIT)
async def apply_paygo_loan(
    request: Request,
    payload: PayGoApplicationRequest,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanApplicationSubmitted:
    result = await container.orchestrator.submit_application(
        client_id,
        LoanType.PAYGO,
        payload.product_price,
        payload.repayment_period,
        product_name=payload.product_name,
    )
    return _submitted(result)


@router.get(
    "/applications/{application_id}",
    response_model=LoanApplicationDTO,
    summary="Application status",
)
async def get_application(
    application_id: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanApplicationDTO:
    application = await container.loans.find_application_by_id(application_id)
    if application is None or application.user_id != client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    return LoanApplicationDTO.model_validate(application)


@router.post(
    "/applications/{application_id}/withdraw",
    response_model=WithdrawalResponse,
    summary="Withdraw an application still awaiting a decision",
)
async def withdraw_application(
    application_id: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> WithdrawalResponse:
    result = await container.orchestrator.withdraw_application(client_id, application_id)
    deps.raise_for_outcome(result)
    return WithdrawalResponse(success=True, message="Application withdrawn successfully")


@router.get("/history", response_model=LoanHistoryResponse, summary="Loan history")
async def loan_history(
    filter: LoanHistoryFilter = Query(default=LoanHistoryFilter.ALL),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanHistoryResponse:
    loans = await container.loans.find_loans_by_user_id(client_id)
    if filter == LoanHistoryFilter.ACTIVE:
        loans = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    elif filter == LoanHistoryFilter.COMPLETED:
        loans = [loan for loan in loans if loan.status == LoanStatus.COMPLETED]
    loans.sort(key=lambda loan: loan.created_at, reverse=True)
    window, pagination = paginate(loans, page, limit)
    return LoanHistoryResponse(
        loans=[LoanDTO.model_validate(loan) for loan in window],
        pagination=pagination,
    )


@router.get("/current", response_model=LoanListResponse, summary="Active loans")
async def current_loans(
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanListResponse:
    loans = await container.loans.find_loans_by_user_id(client_id)
    return LoanListResponse(
        loans=[LoanDTO.model_validate(loan) for loan in loans if loan.status == LoanStatus.ACTIVE]
    )


@router.get("/{loan_id}/details", response_model=LoanDetailsResponse, summary="Loan with schedule")
async def loan_details(
    loan_id: str,
    client_id: str = Depends(deps.get_current_client_id),
    container: ServiceContainer = Depends(deps.get_container),
) -> LoanDetailsResponse:
    loan = await container.loans.find_loan_by_id(loan_id)
    if loan is None or loan.user_id != client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Loan not found")
    return LoanDetailsResponse(
        loan=LoanDTO.model_validate(loan),
        payment_schedule=loan_schedules.build_schedule(loan),
    )
