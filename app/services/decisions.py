from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class DecisionSource(Protocol):
    """Randomness behind the simulated underwriting and settlement decisions."""

    def draw(self) -> float:
        """Uniform value in ``[0, 1)``."""

    def uniform(self, low: float, high: float) -> float: ...

    def choice(self, options: Sequence[T]) -> T: ...


class RandomDecisionSource:
    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def draw(self) -> float:
        return self._random.random()

    def uniform(self, low: float, high: float) -> float:
        if high <= low:
            return low
        return self._random.uniform(low, high)

    def choice(self, options: Sequence[T]) -> T:
        return self._random.choice(options)
