from __future__ import annotations

from app.core.security import get_pin_hash, verify_pin
from app.models.client import Client
from app.schemas.client import ClientRegistrationRequest
from app.services.outcomes import OperationResult, OutcomeCode
from app.stores.clients import ClientStore


async def register_client(
    clients: ClientStore, payload: ClientRegistrationRequest
) -> OperationResult[Client]:
    client = await clients.create(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        mobile=payload.mobile,
        pin_hash=get_pin_hash(payload.pin),
    )
    if client is None:
        return OperationResult.failure(
            OutcomeCode.MOBILE_TAKEN, "A client with this mobile number already exists"
        )
    return OperationResult.success(client)


async def authenticate_pin(clients: ClientStore, mobile: str, pin: str) -> OperationResult[Client]:
    client = await clients.find_by_mobile(mobile)
    if client is None:
        return OperationResult.failure(OutcomeCode.NOT_FOUND, "Client not found")
    if not verify_pin(pin, client.pin_hash):
        return OperationResult.failure(OutcomeCode.PIN_MISMATCH, "Invalid PIN")
    return OperationResult.success(client)
