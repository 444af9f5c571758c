"""Shared fakes: a virtual clock and a scriptable signal source."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from vigil.core.events import StatusBuffer
from vigil.core.exceptions import SignalError
from vigil.core.models import Color, Position, Region, TextMatch, WaitConfig
from vigil.engine.base import BaseSignalSource
from vigil.engine.clock import CancellationToken, Clock
from vigil.engine.waiter import Waiter


class FakeClock(Clock):
    """Virtual time: only sleep() moves it forward."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep: Callable[[int], None] | None = None

    def now_ms(self) -> float:
        return self.now

    async def sleep(self, ms: float) -> None:
        self.now += ms
        self.sleeps.append(ms)
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps))
        await asyncio.sleep(0)


def _scripted(values: list[Any]) -> Callable[[], Any]:
    """Return values in order, then keep repeating the last one."""
    state = {"i": 0}

    def _next() -> Any:
        i = min(state["i"], len(values) - 1)
        state["i"] += 1
        value = values[i]
        if isinstance(value, Exception):
            raise value
        return value

    return _next


class FakeSignalSource(BaseSignalSource):
    """Signal source whose lookups are scripted per test."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.pixel: Callable[[int, int], Color] = lambda x, y: (0, 0, 0)
        self.window_size = (800, 600)
        self.borders = Region(x=100, y=50, width=300, height=200)
        self.calls: list[tuple[Any, ...]] = []
        self.captures = 0
        self._scripts: dict[str, Callable[[], Any]] = {}

    def script(self, lookup: str, values: list[Any]) -> None:
        """Script a lookup: 'image', 'all_images', 'text', 'region_text', 'digest'."""
        self._scripts[lookup] = _scripted(values)

    def pixel_timeline(self, before: Color, after: Color, at_ms: float) -> None:
        """Pixel reads *before* until virtual time *at_ms*, then *after*."""
        self.pixel = lambda x, y: before if self.clock.now < at_ms else after

    def _lookup(self, name: str, default: Any = None) -> Any:
        fn = self._scripts.get(name)
        return default if fn is None else fn()

    async def start(self) -> None:
        self.calls.append(("start",))

    async def stop(self) -> None:
        self.calls.append(("stop",))

    async def read_pixel(self, x: int, y: int) -> Color:
        self.calls.append(("read_pixel", x, y))
        return self.pixel(x, y)

    async def capture_screen(self) -> None:
        self.captures += 1
        fn = self._scripts.get("capture")
        if fn is not None:
            fn()

    async def region_digest(self, region: Region | None = None) -> str:
        self.calls.append(("region_digest", region))
        return str(self._lookup("digest", "same"))

    async def find_image(self, file: str, tolerance: int) -> Position | None:
        self.calls.append(("find_image", file, tolerance))
        return self._lookup("image")

    async def find_all_images(self, file: str, tolerance: int) -> list[Position]:
        self.calls.append(("find_all_images", file, tolerance))
        return list(self._lookup("all_images", []))

    async def find_image_in_range(
        self, file: str, region: Region, tolerance: int
    ) -> Position | None:
        self.calls.append(("find_image_in_range", file, region, tolerance))
        return self._lookup("image")

    async def get_window_size(self) -> tuple[int, int]:
        return self.window_size

    async def get_window_borders(self, x: int, y: int) -> Region:
        self.calls.append(("get_window_borders", x, y))
        return self.borders

    async def find_text_in_region(
        self, region: Region, text: str, exact: bool = False
    ) -> TextMatch | None:
        self.calls.append(("find_text_in_region", region, text, exact))
        return self._lookup("text")

    async def find_text(self, text: str, exact: bool = False) -> TextMatch | None:
        self.calls.append(("find_text", text, exact))
        return self._lookup("text")

    async def find_region_with_text(self, text: str, exact: bool = False) -> Region | None:
        self.calls.append(("find_region_with_text", text, exact))
        return self._lookup("region_text")

    async def set_mouse_pos(self, x: int, y: int) -> None:
        self.calls.append(("set_mouse_pos", x, y))

    async def mouse_down(self, right: bool = False) -> None:
        self.calls.append(("mouse_down", right))

    async def mouse_up(self, right: bool = False) -> None:
        self.calls.append(("mouse_up", right))

    async def click_no_move(self, x: int, y: int, right_click: bool = False) -> None:
        self.calls.append(("click_no_move", x, y, right_click))

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source(clock: FakeClock) -> FakeSignalSource:
    return FakeSignalSource(clock)


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def status() -> StatusBuffer:
    return StatusBuffer()


@pytest.fixture
def waiter(
    source: FakeSignalSource,
    clock: FakeClock,
    token: CancellationToken,
    status: StatusBuffer,
) -> Waiter:
    return Waiter(
        source,
        WaitConfig(poll_interval_ms=10, click_delay_ms=5),
        token,
        clock,
        reporter=status,
    )


@pytest.fixture
def signal_error() -> SignalError:
    return SignalError("capture failed")
