from __future__ import annotations

from pathlib import Path


class StorageCorruption(RuntimeError):
    """A backing document exists but cannot be read or decoded."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Storage document {path} is unreadable: {reason}")
        self.path = str(path)
        self.reason = reason


class ConcurrencyViolation(RuntimeError):
    """The per-document locking discipline was broken by the caller.

    Treated as a programming error: never caught as a business outcome.
    """


class InvalidTransition(ValueError):
    def __init__(self, record_type: str, record_id: str, current: str, requested: str) -> None:
        self.record_type = record_type
        self.record_id = record_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"{record_type} {record_id} cannot move from {current} to {requested}"
        )

    @property
    def details(self) -> dict:
        return {
            "record_type": self.record_type,
            "record_id": self.record_id,
            "current_status": self.current,
            "requested_status": self.requested,
        }
