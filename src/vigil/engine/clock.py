"""Clock and cancellation token — the poll loop's two leaf collaborators."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Monotonic time source plus the loop's only suspension point."""

    @abstractmethod
    def now_ms(self) -> float:
        """Monotonic milliseconds. Only differences are meaningful."""
        ...

    @abstractmethod
    async def sleep(self, ms: float) -> None:
        """Yield the current task for roughly *ms* milliseconds."""
        ...


class MonotonicClock(Clock):
    """Wall clock backed by time.monotonic and asyncio.sleep."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    async def sleep(self, ms: float) -> None:
        await asyncio.sleep(max(ms, 0.0) / 1000.0)


class CancellationToken:
    """Cooperative stop flag shared by every wait of one automation run.

    Setting it never interrupts a sample or a sleep; loops notice it on their
    next iteration.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def reset(self) -> None:
        """Re-arm the token for a new run."""
        self._cancelled = False
        self.reason = None
