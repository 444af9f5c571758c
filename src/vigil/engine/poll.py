"""PollLoop — the generic sample / evaluate / sleep driver.

Every wait in vigil is one PollLoop.run() call:

    sample -> condition -> matched? return
                        -> cancelled? raise WaitCancelledError
                        -> timed out? return TimedOut
                        -> sleep(interval), repeat

The first sample is evaluated before any sleep, and the timeout is checked
after the condition, so a hit on the boundary is still a match.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from vigil.core.exceptions import SignalError, WaitCancelledError
from vigil.core.models import OutcomeKind, PollConfig, WaitOutcome
from vigil.engine.clock import CancellationToken, Clock, MonotonicClock

if TYPE_CHECKING:
    from vigil.engine.conditions import Condition

logger = logging.getLogger(__name__)

S = TypeVar("S")


class PollLoop:
    """Drives one condition to a WaitOutcome on an injectable clock."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or MonotonicClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    async def run(
        self,
        sample: Callable[[], S | Awaitable[S]],
        condition: Condition[S],
        config: PollConfig,
        token: CancellationToken | None = None,
    ) -> WaitOutcome[S]:
        """Poll until *condition* holds, the timeout passes, or *token* fires.

        Args:
            sample: Plain or async callable returning the current signal value.
            condition: Fresh evaluator for this run.
            config: Interval and optional timeout (None = wait forever).
            token: Cancellation token checked once per iteration.

        Returns:
            WaitOutcome with kind MATCHED (value = matching sample) or TIMED_OUT.

        Raises:
            WaitCancelledError: If the token was cancelled.
        """
        start = self._clock.now_ms()
        polls = 0

        while True:
            polls += 1
            try:
                value = sample()
                if inspect.isawaitable(value):
                    value = await value
            except SignalError as e:
                logger.debug("%s: sample %d failed, retrying: %s", condition.describe(), polls, e)
            else:
                if condition.check(value):
                    elapsed = self._clock.now_ms() - start
                    logger.debug(
                        "%s: matched after %d polls (%.0fms)",
                        condition.describe(),
                        polls,
                        elapsed,
                    )
                    return WaitOutcome(
                        kind=OutcomeKind.MATCHED,
                        value=value,
                        elapsed_ms=max(elapsed, 0.0),
                        polls=polls,
                    )

            elapsed = self._clock.now_ms() - start

            if token is not None and token.cancelled:
                logger.info(
                    "%s: cancelled after %d polls (%s)",
                    condition.describe(),
                    polls,
                    token.reason or "no reason given",
                )
                raise WaitCancelledError(
                    WaitOutcome(
                        kind=OutcomeKind.CANCELLED,
                        elapsed_ms=max(elapsed, 0.0),
                        polls=polls,
                    )
                )

            if config.timeout_ms is not None and elapsed >= config.timeout_ms:
                logger.debug(
                    "%s: timed out after %d polls (%.0fms)",
                    condition.describe(),
                    polls,
                    elapsed,
                )
                return WaitOutcome(
                    kind=OutcomeKind.TIMED_OUT,
                    elapsed_ms=max(elapsed, 0.0),
                    polls=polls,
                )

            await self._clock.sleep(config.interval_ms)
