"""DesktopSignalSource — PyAutoGUI capture/injection + OpenCV/Tesseract lookups.

Screenshots, pixels and mouse input go through PyAutoGUI (OS-level).
Image lookups use TemplateMatcher, text lookups use OCRMatcher, both over the
last captured frame. Coordinates are relative to the watched window, whose
screen origin comes from EngineConfig.window_x / window_y.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import TYPE_CHECKING, Any

import cv2
import numpy as np

from vigil.core.exceptions import EngineError, SignalError
from vigil.core.models import EngineConfig, MatchingConfig, Position, Region, TextMatch
from vigil.engine.base import BaseSignalSource
from vigil.matchers.ocr import OCRMatcher
from vigil.matchers.template import TemplateMatcher

if TYPE_CHECKING:
    import types

    from vigil.core.models import Color

logger = logging.getLogger(__name__)


def _get_pyautogui() -> Any:
    """Lazy import pyautogui to avoid DISPLAY errors on headless Linux."""
    try:
        import pyautogui  # type: ignore[import-untyped]
    except KeyError as e:
        msg = f"pyautogui requires a display (DISPLAY env var): {e}"
        raise EngineError(msg) from e
    return pyautogui


class DesktopSignalSource(BaseSignalSource):
    """PyAutoGUI-backed signal source for a window on the local desktop."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        matching: MatchingConfig | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._templates = TemplateMatcher(matching)
        self._ocr = OCRMatcher(matching)
        self._frame: np.ndarray | None = None
        self._pag: types.ModuleType | None = None

    @property
    def pag(self) -> Any:
        """Lazy-loaded pyautogui module."""
        if self._pag is None:
            self._pag = _get_pyautogui()
        return self._pag

    @property
    def frame(self) -> np.ndarray:
        """Last captured BGR frame, window-relative."""
        if self._frame is None:
            msg = "No frame captured yet. Call capture_screen() first."
            raise SignalError(msg)
        return self._frame

    async def start(self) -> None:
        """Configure PyAutoGUI."""
        try:
            pag = self.pag
            pag.FAILSAFE = self._config.failsafe
            pag.PAUSE = self._config.pause_s
        except EngineError:
            raise
        except Exception as e:
            msg = f"Failed to start DesktopSignalSource: {e}"
            raise EngineError(msg) from e

    async def stop(self) -> None:
        self._frame = None

    # ------------------------------------------------------------------
    # Coordinate conversion (window → screen)
    # ------------------------------------------------------------------

    def _to_screen(self, x: int, y: int) -> tuple[int, int]:
        return (x + self._config.window_x, y + self._config.window_y)

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    async def read_pixel(self, x: int, y: int) -> Color:
        sx, sy = self._to_screen(x, y)
        try:
            rgb = await asyncio.to_thread(self.pag.pixel, sx, sy)
        except EngineError:
            raise
        except Exception as e:
            logger.debug("Pixel read at (%d, %d) failed: %s", x, y, e)
            msg = f"Pixel read at ({x}, {y}) failed: {e}"
            raise SignalError(msg) from e
        return (int(rgb[0]), int(rgb[1]), int(rgb[2]))

    async def capture_screen(self) -> None:
        """Grab the screen and keep the window-relative part as a BGR array."""
        try:
            img = await asyncio.to_thread(self.pag.screenshot)
        except EngineError:
            raise
        except Exception as e:
            logger.debug("Screenshot failed: %s", e)
            msg = f"Screenshot failed: {e}"
            raise SignalError(msg) from e
        rgb = np.asarray(img.convert("RGB"))
        bgr = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
        self._frame = bgr[max(self._config.window_y, 0) :, max(self._config.window_x, 0) :]

    async def region_digest(self, region: Region | None = None) -> str:
        frame = self.frame
        if region is not None:
            frame = frame[region.y : region.bottom, region.x : region.right]
        return hashlib.md5(np.ascontiguousarray(frame).tobytes()).hexdigest()  # noqa: S324

    # ------------------------------------------------------------------
    # Image search
    # ------------------------------------------------------------------

    async def find_image(self, file: str, tolerance: int) -> Position | None:
        return await asyncio.to_thread(self._templates.find, self.frame, file, tolerance)

    async def find_all_images(self, file: str, tolerance: int) -> list[Position]:
        return await asyncio.to_thread(self._templates.find_all, self.frame, file, tolerance)

    async def find_image_in_range(
        self, file: str, region: Region, tolerance: int
    ) -> Position | None:
        return await asyncio.to_thread(
            self._templates.find, self.frame, file, tolerance, region
        )

    # ------------------------------------------------------------------
    # Window geometry
    # ------------------------------------------------------------------

    async def get_window_size(self) -> tuple[int, int]:
        if self._frame is not None:
            h, w = self._frame.shape[:2]
            return (w, h)
        size = await asyncio.to_thread(self.pag.size)
        return (
            max(int(size[0]) - self._config.window_x, 0),
            max(int(size[1]) - self._config.window_y, 0),
        )

    async def get_window_borders(self, x: int, y: int) -> Region:
        """Bounds of the topmost OS window under (x, y), window-relative."""
        windows_at = getattr(self.pag, "getWindowsAt", None)
        if windows_at is None:
            msg = "Window lookup is not supported by pyautogui on this platform"
            raise EngineError(msg)
        sx, sy = self._to_screen(x, y)
        windows = await asyncio.to_thread(windows_at, sx, sy)
        logger.debug("%d window(s) at screen (%d, %d)", len(windows), sx, sy)
        if not windows:
            msg = f"No window found at ({x}, {y})"
            raise EngineError(msg)
        win = windows[0]
        logger.debug("Topmost window at (%d, %d): %r", x, y, getattr(win, "title", win))
        return Region(
            x=int(win.left) - self._config.window_x,
            y=int(win.top) - self._config.window_y,
            width=max(int(win.width), 0),
            height=max(int(win.height), 0),
        )

    # ------------------------------------------------------------------
    # Text search
    # ------------------------------------------------------------------

    async def find_text_in_region(
        self, region: Region, text: str, exact: bool = False
    ) -> TextMatch | None:
        return await asyncio.to_thread(self._ocr.find, self.frame, text, exact, region)

    async def find_text(self, text: str, exact: bool = False) -> TextMatch | None:
        return await asyncio.to_thread(self._ocr.find, self.frame, text, exact)

    async def find_region_with_text(
        self, text: str, exact: bool = False
    ) -> Region | None:
        return await asyncio.to_thread(self._ocr.find_block, self.frame, text, exact)

    # ------------------------------------------------------------------
    # Mouse — PyAutoGUI
    # ------------------------------------------------------------------

    async def set_mouse_pos(self, x: int, y: int) -> None:
        sx, sy = self._to_screen(x, y)
        await asyncio.to_thread(self.pag.moveTo, sx, sy)

    async def mouse_down(self, right: bool = False) -> None:
        await asyncio.to_thread(self.pag.mouseDown, button="right" if right else "left")

    async def mouse_up(self, right: bool = False) -> None:
        await asyncio.to_thread(self.pag.mouseUp, button="right" if right else "left")

    async def click_no_move(self, x: int, y: int, right_click: bool = False) -> None:
        """Click at (x, y), then put the pointer back where the user left it."""
        sx, sy = self._to_screen(x, y)
        button = "right" if right_click else "left"

        def _click() -> None:
            home = self.pag.position()
            self.pag.click(sx, sy, button=button)
            self.pag.moveTo(home[0], home[1])

        await asyncio.to_thread(_click)
