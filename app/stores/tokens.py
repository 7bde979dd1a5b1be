from __future__ import annotations

import logging

from app.db.entity_store import EntityStore
from app.models.token import TokensDocument

logger = logging.getLogger(__name__)


class TokenStore:
    """Revoked token ids plus the tokens still live on each device.

    Revocation is permanent for the lifetime of the data directory.
    """

    def __init__(self, store: EntityStore[TokensDocument]) -> None:
        self.store = store

    async def register_device_token(self, device_id: str, token_id: str) -> None:
        def _register(document: TokensDocument) -> TokensDocument:
            document.device_tokens.setdefault(device_id, set()).add(token_id)
            return document

        await self.store.update(_register)

    async def blacklist_token(self, token_id: str, device_id: str | None = None) -> None:
        def _revoke(document: TokensDocument) -> TokensDocument:
            document.blacklisted_tokens.add(token_id)
            if device_id is not None and device_id in document.device_tokens:
                document.device_tokens[device_id].discard(token_id)
            return document

        await self.store.update(_revoke)
        logger.info("Token %s revoked", token_id)

    async def blacklist_device_tokens(self, device_id: str) -> int:
        """Revoke every token issued to ``device_id``; returns how many were revoked."""

        def _revoke_all(document: TokensDocument) -> tuple[TokensDocument, int]:
            tokens = document.device_tokens.pop(device_id, set())
            document.blacklisted_tokens.update(tokens)
            return document, len(tokens)

        revoked = await self.store.mutate(_revoke_all)
        logger.info("Revoked %d token(s) for device %s", revoked, device_id)
        return revoked

    async def is_token_blacklisted(self, token_id: str) -> bool:
        document = await self.store.read()
        return token_id in document.blacklisted_tokens
