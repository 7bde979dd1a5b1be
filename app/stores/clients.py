from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.db.entity_store import EntityStore
from app.models.client import Client, ClientsDocument
from app.schemas.client import (
    Address,
    ClientDocuments,
    NextOfKin,
    PersonalDetails,
    VerificationStatus,
)
from app.services.eligibility import with_derived_fields

logger = logging.getLogger(__name__)


class ClientStore:
    """Client records keyed by numeric string id (``"1"``, ``"2"``, ...)."""

    def __init__(self, store: EntityStore[ClientsDocument]) -> None:
        self.store = store

    async def create(self, *, first_name: str, last_name: str, mobile: str, pin_hash: str) -> Client | None:
        """Register a client; returns None when ``mobile`` is already taken."""
        now = datetime.now(timezone.utc)

        def _create(document: ClientsDocument) -> tuple[ClientsDocument, Client | None]:
            if any(existing.mobile == mobile for existing in document.clients.values()):
                return document, None
            client_id = str(document.next_id)
            client = with_derived_fields(
                Client(
                    id=client_id,
                    first_name=first_name,
                    last_name=last_name,
                    mobile=mobile,
                    pin_hash=pin_hash,
                    created_at=now,
                    updated_at=now,
                )
            )
            document.clients[client_id] = client
            document.next_id += 1
            return document, client

        client = await self.store.mutate(_create)
        if client is not None:
            logger.info("Registered client %s", client.id)
        return client

    async def find_by_id(self, client_id: str) -> Client | None:
        document = await self.store.read()
        return document.clients.get(client_id)

    async def find_by_mobile(self, mobile: str) -> Client | None:
        document = await self.store.read()
        return next((client for client in document.clients.values() if client.mobile == mobile), None)

    async def update_profile(
        self,
        client_id: str,
        *,
        personal_details: PersonalDetails | None = None,
        address: Address | None = None,
        documents: ClientDocuments | None = None,
        next_of_kin: NextOfKin | None = None,
        profile_picture: str | None = None,
    ) -> Client | None:
        """Replace the given sections; sections passed as None are kept."""
        changes = {
            "personal_details": personal_details,
            "address": address,
            "documents": documents,
            "next_of_kin": next_of_kin,
            "profile_picture": profile_picture,
        }
        changes = {key: value for key, value in changes.items() if value is not None}
        return await self._update_client(client_id, changes)

    async def set_verification_status(
        self, client_id: str, verification_status: VerificationStatus
    ) -> Client | None:
        return await self._update_client(
            client_id, {"verification_status": VerificationStatus(verification_status)}
        )

    async def _update_client(self, client_id: str, changes: dict) -> Client | None:
        now = datetime.now(timezone.utc)

        def _apply(document: ClientsDocument) -> tuple[ClientsDocument, Client | None]:
            client = document.clients.get(client_id)
            if client is None:
                return document, None
            updated = with_derived_fields(client.model_copy(update={**changes, "updated_at": now}))
            document.clients[client_id] = updated
            return document, updated

        return await self.store.mutate(_apply)
