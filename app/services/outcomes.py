from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class OutcomeCode(str, Enum):
    NOT_FOUND = "not_found"
    INELIGIBLE = "ineligible"
    NOT_WITHDRAWABLE = "not_withdrawable"
    LOAN_INACTIVE = "loan_inactive"
    MOBILE_TAKEN = "mobile_taken"
    PIN_MISMATCH = "pin_mismatch"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Either a value or an expected business refusal; never an exception."""

    value: T | None = None
    code: OutcomeCode | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.code is None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, code: OutcomeCode, message: str) -> "OperationResult[T]":
        return cls(code=code, message=message)
