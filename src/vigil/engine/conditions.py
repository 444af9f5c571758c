"""Condition evaluators — predicates over the latest sample(s).

A condition instance belongs to exactly one wait: Stasis keeps its own
SampleWindow, so never share one between loops.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sized
from typing import Any, Generic, TypeVar

S = TypeVar("S")

DEFAULT_WINDOW = 7


class Condition(ABC, Generic[S]):
    """Decides from one more sample whether the wait is done."""

    @abstractmethod
    def check(self, sample: S) -> bool:
        ...

    def describe(self) -> str:
        return type(self).__name__


def is_empty(value: Any) -> bool:
    """None, False and empty containers count as 'nothing found'."""
    if value is None or value is False:
        return True
    if isinstance(value, Sized) and not isinstance(value, str | bytes):
        return len(value) == 0
    return False


class Changed(Condition[S]):
    """Satisfied once a sample differs from the baseline."""

    def __init__(self, baseline: S) -> None:
        self.baseline = baseline

    def check(self, sample: S) -> bool:
        return sample != self.baseline

    def describe(self) -> str:
        return f"Changed(from={self.baseline!r})"


class SampleWindow:
    """Fixed-capacity ring buffer of the most recent samples.

    Slots start out holding distinct sentinels, so all_equal() stays False
    until every slot has been overwritten by a real sample.
    """

    def __init__(self, capacity: int = DEFAULT_WINDOW) -> None:
        if capacity < 2:
            msg = f"SampleWindow capacity must be >= 2, got {capacity}"
            raise ValueError(msg)
        self._slots: list[Any] = [object() for _ in range(capacity)]
        self._next = 0
        self._filled = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def filled(self) -> int:
        """Real samples held, capped at capacity."""
        return self._filled

    def push(self, sample: Any) -> None:
        self._slots[self._next] = sample
        self._next = (self._next + 1) % len(self._slots)
        self._filled = min(self._filled + 1, len(self._slots))

    def all_equal(self) -> bool:
        first = self._slots[0]
        return all(slot == first for slot in self._slots[1:])


class Stasis(Condition[S]):
    """Satisfied when every sample in the window is the same."""

    def __init__(self, capacity: int = DEFAULT_WINDOW) -> None:
        self.window = SampleWindow(capacity)

    def check(self, sample: S) -> bool:
        self.window.push(sample)
        return self.window.all_equal()

    def describe(self) -> str:
        return f"Stasis(window={self.window.capacity})"


class Present(Condition[Any]):
    """Satisfied when the lookup found something; the hit is the payload."""

    def check(self, sample: Any) -> bool:
        return not is_empty(sample)


class Absent(Condition[Any]):
    """Satisfied when the lookup found nothing."""

    def check(self, sample: Any) -> bool:
        return is_empty(sample)
