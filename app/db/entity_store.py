from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.exceptions import ConcurrencyViolation, StorageCorruption

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=BaseModel)
ResultT = TypeVar("ResultT")


class EntityStore(Generic[DocumentT]):
    """Persist one aggregate document per JSON file behind a single lock.

    The document is loaded on first access (created from the model defaults
    when the file does not exist yet) and written back whole after every
    mutation. ``read``, ``write``, ``update`` and ``mutate`` all take the same
    ``asyncio.Lock``, so updates to one document are applied one at a time and
    a reader only ever sees the state before or after a write.

    Callers always receive deep copies. Changing a returned document has no
    effect until it is passed back through ``write``; use ``update`` or
    ``mutate`` for read-modify-write so concurrent changes are not lost.
    """

    def __init__(self, path: Path | str, document_type: type[DocumentT]) -> None:
        self.path = Path(path)
        self.document_type = document_type
        self._lock = asyncio.Lock()
        self._document: DocumentT | None = None

    @property
    def name(self) -> str:
        return self.path.name

    async def read(self) -> DocumentT:
        async with self._lock:
            document = await self._current()
            return document.model_copy(deep=True)

    async def write(self, document: DocumentT) -> None:
        self._check_document(document)
        async with self._lock:
            await self._persist(document)

    async def update(self, fn: Callable[[DocumentT], DocumentT]) -> DocumentT:
        def _apply(document: DocumentT) -> tuple[DocumentT, DocumentT]:
            updated = fn(document)
            return updated, updated

        return await self.mutate(_apply)

    async def mutate(self, fn: Callable[[DocumentT], tuple[DocumentT, ResultT]]) -> ResultT:
        """Run ``fn`` on a private copy and persist the document it returns.

        ``fn`` must be synchronous: the lock is held while it runs and is never
        held across a suspension point.
        """
        async with self._lock:
            current = (await self._current()).model_copy(deep=True)
            outcome = fn(current)
            if inspect.isawaitable(outcome):
                if inspect.iscoroutine(outcome):
                    outcome.close()
                raise ConcurrencyViolation(
                    f"update function for {self.name} returned an awaitable; "
                    "the document lock must not be held across a suspension"
                )
            updated, result = outcome
            self._check_document(updated)
            await self._persist(updated)
            return result

    def close(self) -> None:
        if self._lock.locked():
            raise ConcurrencyViolation(f"{self.name} closed while a mutation is in flight")
        self._document = None
        logger.debug("Entity store %s closed", self.name)

    async def _current(self) -> DocumentT:
        if self._document is None:
            self._document = await asyncio.to_thread(self._load_sync)
        return self._document

    async def _persist(self, document: DocumentT) -> None:
        if not self._lock.locked():
            raise ConcurrencyViolation(f"write to {self.name} attempted without holding its lock")
        snapshot = document.model_copy(deep=True)
        await asyncio.to_thread(self._dump_sync, snapshot)
        self._document = snapshot

    def _check_document(self, document: object) -> None:
        if not isinstance(document, self.document_type):
            raise TypeError(
                f"{self.name} stores {self.document_type.__name__}, got {type(document).__name__}"
            )

    def _load_sync(self) -> DocumentT:
        if not self.path.exists():
            document = self.document_type()
            self._dump_sync(document)
            logger.info("Initialized empty document %s", self.path)
            return document
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise StorageCorruption(self.path, str(exc)) from exc
        try:
            return self.document_type.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.error("Refusing to load corrupt document %s", self.path)
            reason = f"{exc.error_count()} decode error(s)" if isinstance(exc, ValidationError) else str(exc)
            raise StorageCorruption(self.path, reason) from exc

    def _dump_sync(self, document: DocumentT) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
