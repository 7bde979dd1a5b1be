from fastapi import Depends, Header, HTTPException, Request, status

from app.models import Client
from app.services.container import ServiceContainer
from app.services.outcomes import OperationResult, OutcomeCode


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return container


async def get_current_client_id(
    client_id: str | None = Header(default=None, alias="X-Client-Id"),
) -> str:
    if not client_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Client-Id header",
        )
    return client_id


async def get_current_client(
    client_id: str = Depends(get_current_client_id),
    container: ServiceContainer = Depends(get_container),
) -> Client:
    client = await container.clients.find_by_id(client_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown client")
    return client


_OUTCOME_STATUS = {
    OutcomeCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OutcomeCode.INELIGIBLE: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.NOT_WITHDRAWABLE: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.LOAN_INACTIVE: status.HTTP_400_BAD_REQUEST,
    OutcomeCode.MOBILE_TAKEN: status.HTTP_409_CONFLICT,
    OutcomeCode.PIN_MISMATCH: status.HTTP_401_UNAUTHORIZED,
    OutcomeCode.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_outcome(result: OperationResult) -> None:
    """Turn an expected business refusal into an enveloped HTTP error."""
    if result.ok:
        return
    raise HTTPException(
        status_code=_OUTCOME_STATUS.get(result.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": result.code.value, "message": result.message, "details": {}},
    )
