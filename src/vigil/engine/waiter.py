"""Waiter — derived waits built on PollLoop.

Each public method pairs one Condition with one SignalSource lookup and runs
it through the shared PollLoop. Arguments are validated before the first
sample; timeouts come back as False/None, cancellation as
WaitCancelledError.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from vigil.core.exceptions import ArgumentError, WaitCancelledError
from vigil.core.models import (
    OutcomeKind,
    PollConfig,
    Position,
    Region,
    Spot,
    TextMatch,
    WaitConfig,
    WaitOptions,
    WaitOutcome,
)
from vigil.engine.clock import CancellationToken, Clock
from vigil.engine.conditions import Absent, Changed, Condition, Present, Stasis
from vigil.engine.poll import PollLoop

if TYPE_CHECKING:
    from vigil.core.events import StatusReporter
    from vigil.engine.base import BaseSignalSource

logger = logging.getLogger(__name__)

S = TypeVar("S")

# Success value of the "text is gone" waits, kept for script compatibility.
NO_TEXT_FOUND = 1


class Waiter:
    """Condition waits against one signal source.

    All dependencies are injected via constructor so tests can drive the
    loop on a fake clock.
    """

    def __init__(
        self,
        source: BaseSignalSource,
        config: WaitConfig | None = None,
        token: CancellationToken | None = None,
        clock: Clock | None = None,
        reporter: StatusReporter | None = None,
    ) -> None:
        self._source = source
        self._config = config or WaitConfig()
        self._token = token or CancellationToken()
        self._loop = PollLoop(clock)
        self._reporter = reporter

    @property
    def config(self) -> WaitConfig:
        return self._config

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def clock(self) -> Clock:
        return self._loop.clock

    # ------------------------------------------------------------------
    # Pixel waits
    # ------------------------------------------------------------------

    async def wait_for_change(
        self, spot: Spot | Mapping[str, Any], timeout_ms: int | None = None
    ) -> bool:
        """Wait until the pixel under *spot* differs from its baseline colour.

        Returns:
            True on change, False on timeout.
        """
        spot = require_spot(spot)
        check_timeout(timeout_ms)
        outcome = await self._run(
            lambda: self._source.read_pixel(spot.x, spot.y),
            Changed(spot.baseline_color),
            timeout_ms,
        )
        return outcome.matched

    async def wait_for_stasis(
        self, spot: Spot | Mapping[str, Any], timeout_ms: int
    ) -> bool:
        """Wait until the pixel under *spot* holds still for a full window of samples."""
        spot = require_spot(spot)
        _require_timeout(timeout_ms, "wait_for_stasis")
        outcome = await self._run(
            lambda: self._source.read_pixel(spot.x, spot.y),
            Stasis(self._config.stasis_window),
            timeout_ms,
        )
        return outcome.matched

    async def wait_for_screen_stable(
        self, region: Region | None = None, timeout_ms: int = 10000
    ) -> bool:
        """Wait until the captured *region* stops changing between frames."""
        _require_timeout(timeout_ms, "wait_for_screen_stable")

        async def sample() -> str:
            await self._source.capture_screen()
            return await self._source.region_digest(region)

        outcome = await self._run(sample, Stasis(self._config.stable_count), timeout_ms)
        return outcome.matched

    # ------------------------------------------------------------------
    # Image waits
    # ------------------------------------------------------------------

    async def wait_for_image(
        self,
        file: str,
        timeout_ms: int | None = None,
        options: WaitOptions | None = None,
    ) -> Position | None:
        """Wait for *file* anywhere in the window. No timeout waits forever."""
        _require_file(file)
        check_timeout(timeout_ms)
        return await self._image_in_region(file, await self._full_window(), timeout_ms, options)

    async def wait_for_image_in_range(
        self,
        file: str,
        region: Region,
        timeout_ms: int,
        options: WaitOptions | None = None,
    ) -> Position | None:
        """Wait for *file* inside *region*.

        Args:
            file: Template image path.
            region: Search rectangle (window-relative).
            timeout_ms: Required; a missing timeout is an ArgumentError.
            options: Tolerance (unset uses WaitConfig.tolerance) and a status message
                shown on every iteration.

        Returns:
            Match centre, or None on timeout.
        """
        _require_file(file)
        _require_region(region)
        _require_timeout(timeout_ms, "wait_for_image_in_range")
        return await self._image_in_region(file, region, timeout_ms, options)

    async def wait_for_all_images(
        self,
        file: str,
        timeout_ms: int | None = None,
        options: WaitOptions | None = None,
    ) -> list[Position]:
        """Wait until at least one copy of *file* is visible; return every copy."""
        _require_file(file)
        check_timeout(timeout_ms)
        opts = self._options(options)

        async def sample() -> list[Position]:
            self._status(opts.message)
            await self._source.capture_screen()
            return await self._source.find_all_images(file, opts.tolerance)

        try:
            outcome = await self._run(sample, Present(), timeout_ms)
        finally:
            self._clear_status(opts.message)
        return list(outcome.value or []) if outcome.matched else []

    async def wait_for_image_in_window(
        self,
        file: str,
        x: int,
        y: int,
        timeout_ms: int | None = None,
        bounds: Region | None = None,
        options: WaitOptions | None = None,
    ) -> Position | None:
        """Wait for *file* inside the sub-window that contains (x, y)."""
        _require_file(file)
        check_timeout(timeout_ms)
        if bounds is None:
            bounds = await self._source.get_window_borders(x, y)
        else:
            _require_region(bounds)
        logger.debug("Sub-window at (%d, %d): %s", x, y, bounds)
        return await self._image_in_region(file, bounds, timeout_ms, options)

    async def wait_for_image_while_updating(
        self,
        file: str,
        x: int,
        y: int,
        delay_ms: int,
        options: WaitOptions | None = None,
    ) -> Position:
        """Click (x, y), wait up to *delay_ms* for *file*, repeat until it shows.

        There is no overall timeout; only cancellation ends the loop early.
        """
        _require_file(file)
        if delay_ms is None or delay_ms <= 0:
            msg = f"wait_for_image_while_updating requires delay_ms > 0, got {delay_ms!r}"
            raise ArgumentError(msg)

        region = await self._full_window()
        start = self.clock.now_ms()
        rounds = 0
        while True:
            if self._token.cancelled:
                raise WaitCancelledError(
                    WaitOutcome(
                        kind=OutcomeKind.CANCELLED,
                        elapsed_ms=max(self.clock.now_ms() - start, 0.0),
                        polls=rounds,
                    )
                )
            await self._source.click_no_move(x, y)
            rounds += 1
            found = await self._image_in_region(file, region, delay_ms, options)
            if found is not None:
                logger.debug("%s appeared after %d update clicks", file, rounds)
                return found

    # ------------------------------------------------------------------
    # Text waits
    # ------------------------------------------------------------------

    async def wait_for_text_in_region(
        self,
        region: Region,
        text: str,
        delay_ms: int | None = None,
        timeout_ms: int | None = None,
        exact: bool = False,
        options: WaitOptions | None = None,
    ) -> TextMatch | None:
        """Wait for *text* inside *region*; returns the match or None on timeout.

        ``exact`` or ``options.exact`` selects whole-token matching;
        ``options.message`` is shown on every poll.
        """
        _require_region(region)
        outcome = await self._text_wait(
            lambda is_exact: self._source.find_text_in_region(region, text, is_exact),
            Present(),
            text,
            delay_ms,
            timeout_ms,
            self._options(options, exact),
        )
        return outcome.value if outcome.matched else None

    async def wait_for_no_text_in_region(
        self,
        region: Region,
        text: str,
        delay_ms: int | None = None,
        timeout_ms: int | None = None,
        exact: bool = False,
        options: WaitOptions | None = None,
    ) -> int | None:
        """Wait for *text* to leave *region*; returns NO_TEXT_FOUND or None."""
        _require_region(region)
        outcome = await self._text_wait(
            lambda is_exact: self._source.find_text_in_region(region, text, is_exact),
            Absent(),
            text,
            delay_ms,
            timeout_ms,
            self._options(options, exact),
        )
        return NO_TEXT_FOUND if outcome.matched else None

    async def wait_for_text(
        self,
        text: str,
        delay_ms: int | None = None,
        timeout_ms: int | None = None,
        exact: bool = False,
        options: WaitOptions | None = None,
    ) -> TextMatch | None:
        """Whole-screen variant of wait_for_text_in_region."""
        outcome = await self._text_wait(
            lambda is_exact: self._source.find_text(text, is_exact),
            Present(),
            text,
            delay_ms,
            timeout_ms,
            self._options(options, exact),
        )
        return outcome.value if outcome.matched else None

    async def wait_for_no_text(
        self,
        text: str,
        delay_ms: int | None = None,
        timeout_ms: int | None = None,
        exact: bool = False,
        options: WaitOptions | None = None,
    ) -> int | None:
        """Whole-screen variant of wait_for_no_text_in_region."""
        outcome = await self._text_wait(
            lambda is_exact: self._source.find_text(text, is_exact),
            Absent(),
            text,
            delay_ms,
            timeout_ms,
            self._options(options, exact),
        )
        return NO_TEXT_FOUND if outcome.matched else None

    async def wait_for_region_with_text(
        self,
        text: str,
        delay_ms: int | None = None,
        timeout_ms: int | None = None,
        exact: bool = False,
        options: WaitOptions | None = None,
    ) -> Region | None:
        """Wait for *text* and return the region containing it."""
        outcome = await self._text_wait(
            lambda is_exact: self._source.find_region_with_text(text, is_exact),
            Present(),
            text,
            delay_ms,
            timeout_ms,
            self._options(options, exact),
        )
        return outcome.value if outcome.matched else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        sample: Callable[[], S | Awaitable[S]],
        condition: Condition[S],
        timeout_ms: int | None,
        interval_ms: int | None = None,
    ) -> WaitOutcome[S]:
        config = PollConfig(
            interval_ms=interval_ms or self._config.poll_interval_ms,
            timeout_ms=timeout_ms,
        )
        return await self._loop.run(sample, condition, config, self._token)

    async def _image_in_region(
        self,
        file: str,
        region: Region,
        timeout_ms: int | None,
        options: WaitOptions | None,
    ) -> Position | None:
        opts = self._options(options)

        async def sample() -> Position | None:
            self._status(opts.message)
            await self._source.capture_screen()
            return await self._source.find_image_in_range(file, region, opts.tolerance)

        try:
            outcome = await self._run(sample, Present(), timeout_ms)
        finally:
            self._clear_status(opts.message)
        return outcome.value if outcome.matched else None

    async def _text_wait(
        self,
        lookup: Callable[[bool], Awaitable[S]],
        condition: Condition[S],
        text: str,
        delay_ms: int | None,
        timeout_ms: int | None,
        opts: WaitOptions,
    ) -> WaitOutcome[S]:
        if not text:
            msg = "text waits require a non-empty search text"
            raise ArgumentError(msg)
        if delay_ms is None:
            delay_ms = self._config.text_delay_ms
        elif delay_ms <= 0:
            msg = f"delay_ms must be > 0, got {delay_ms}"
            raise ArgumentError(msg)
        check_timeout(timeout_ms)

        async def sample() -> S:
            self._status(opts.message)
            await self._source.capture_screen()
            return await lookup(opts.exact)

        try:
            return await self._run(sample, condition, timeout_ms, interval_ms=delay_ms)
        finally:
            self._clear_status(opts.message)

    async def _full_window(self) -> Region:
        width, height = await self._source.get_window_size()
        return Region(x=0, y=0, width=width, height=height)

    def _options(self, options: WaitOptions | None, exact: bool = False) -> WaitOptions:
        """Fill unset option fields from the wait config."""
        opts = options if options is not None else WaitOptions()
        return opts.model_copy(
            update={
                "tolerance": (
                    opts.tolerance if opts.tolerance is not None else self._config.tolerance
                ),
                "exact": exact or opts.exact,
            }
        )

    def _status(self, message: str | None) -> None:
        if message and self._reporter is not None:
            self._reporter.show_status(message)

    def _clear_status(self, message: str | None) -> None:
        if message and self._reporter is not None:
            self._reporter.clear()


# ----------------------------------------------------------------------
# Argument checks; all raise ArgumentError before any polling
# ----------------------------------------------------------------------


def require_spot(spot: Any) -> Spot:
    """Return *spot* as a Spot, coercing a plain mapping of its three fields."""
    if isinstance(spot, Spot):
        return spot
    if isinstance(spot, Mapping):
        try:
            return Spot.model_validate(dict(spot))
        except ValidationError as e:
            msg = f"Malformed spot {dict(spot)!r}: expected exactly x, y, baseline_color"
            raise ArgumentError(msg) from e
    msg = f"A Spot is required, got {type(spot).__name__}"
    raise ArgumentError(msg)


def _require_region(region: Any) -> None:
    if not isinstance(region, Region):
        msg = f"A Region is required, got {type(region).__name__}"
        raise ArgumentError(msg)


def _require_file(file: Any) -> None:
    if not isinstance(file, str) or not file:
        msg = f"An image file path is required, got {file!r}"
        raise ArgumentError(msg)


def check_timeout(timeout_ms: Any) -> None:
    """Accept None (no limit) or a non-negative int."""
    if timeout_ms is None:
        return
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms < 0:
        msg = f"timeout_ms must be a non-negative int or None, got {timeout_ms!r}"
        raise ArgumentError(msg)


def _require_timeout(timeout_ms: Any, operation: str) -> None:
    if timeout_ms is None:
        msg = f"{operation} requires a timeout"
        raise ArgumentError(msg)
    check_timeout(timeout_ms)
