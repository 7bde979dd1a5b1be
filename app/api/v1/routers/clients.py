from fastapi import APIRouter, Depends, HTTPException, status

from app.api import deps
from app.models import Client
from app.schemas.client import (
    ClientDTO,
    ClientRegistrationRequest,
    PinVerificationRequest,
    PinVerificationResponse,
    ProfileUpdateRequest,
    VerificationUpdateRequest,
)
from app.services import accounts
from app.services.container import ServiceContainer

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post(
    "",
    response_model=ClientDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Register a client",
)
async def register_client(
    payload: ClientRegistrationRequest,
    container: ServiceContainer = Depends(deps.get_container),
) -> ClientDTO:
    result = await accounts.register_client(container.clients, payload)
    deps.raise_for_outcome(result)
    return ClientDTO.model_validate(result.value)


@router.get("/me", response_model=ClientDTO, summary="Current client profile")
async def read_me(current_client: Client = Depends(deps.get_current_client)) -> ClientDTO:
    return ClientDTO.model_validate(current_client)


@router.put("/me/profile", response_model=ClientDTO, summary="Update profile sections")
async def update_profile(
    payload: ProfileUpdateRequest,
    current_client: Client = Depends(deps.get_current_client),
    container: ServiceContainer = Depends(deps.get_container),
) -> ClientDTO:
    updated = await container.clients.update_profile(
        current_client.id,
        personal_details=payload.personal_details,
        address=payload.address,
        documents=payload.documents,
        next_of_kin=payload.next_of_kin,
        profile_picture=payload.profile_picture,
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return ClientDTO.model_validate(updated)


@router.post(
    "/me/verify-pin",
    response_model=PinVerificationResponse,
    summary="Check a mobile/PIN pair",
)
async def verify_pin(
    payload: PinVerificationRequest,
    container: ServiceContainer = Depends(deps.get_container),
) -> PinVerificationResponse:
    result = await accounts.authenticate_pin(container.clients, payload.mobile, payload.pin)
    if not result.ok:
        return PinVerificationResponse(verified=False, reason=result.message)
    return PinVerificationResponse(verified=True, client_id=result.value.id)


@router.put(
    "/{client_id}/verification",
    response_model=ClientDTO,
    summary="Record the back-office verification result",
)
async def set_verification(
    client_id: str,
    payload: VerificationUpdateRequest,
    container: ServiceContainer = Depends(deps.get_container),
) -> ClientDTO:
    updated = await container.clients.set_verification_status(
        client_id, payload.verification_status
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return ClientDTO.model_validate(updated)
