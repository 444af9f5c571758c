"""BaseSignalSource ABC — everything the wait engine samples or injects.

DesktopSignalSource (PyAutoGUI + OpenCV + Tesseract) implements this.
All coordinates are window-relative pixels. Lookups return None (or an empty
list) when nothing is found; a failed capture may raise SignalError, which
the poll loop treats as "not found yet".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vigil.core.models import Color, Position, Region, TextMatch


class BaseSignalSource(ABC):
    """Signal source abstract interface."""

    @abstractmethod
    async def start(self) -> None:
        """Initialize the backend."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release backend resources."""
        ...

    # -- point / region samples ----------------------------------------------

    @abstractmethod
    async def read_pixel(self, x: int, y: int) -> Color:
        """Live RGB colour at (x, y). Cheap and side-effect free."""
        ...

    @abstractmethod
    async def capture_screen(self) -> None:
        """Refresh the frame buffer used by image/text lookups."""
        ...

    @abstractmethod
    async def region_digest(self, region: Region | None = None) -> str:
        """Hash of the captured frame cropped to *region* (whole frame if None)."""
        ...

    # -- image search --------------------------------------------------------

    @abstractmethod
    async def find_image(self, file: str, tolerance: int) -> Position | None:
        """Best match of the template *file* in the captured frame."""
        ...

    @abstractmethod
    async def find_all_images(self, file: str, tolerance: int) -> list[Position]:
        """Every non-overlapping match of *file* in the captured frame."""
        ...

    @abstractmethod
    async def find_image_in_range(
        self, file: str, region: Region, tolerance: int
    ) -> Position | None:
        """Best match of *file* restricted to *region*."""
        ...

    # -- window geometry -----------------------------------------------------

    @abstractmethod
    async def get_window_size(self) -> tuple[int, int]:
        """(width, height) of the watched window."""
        ...

    @abstractmethod
    async def get_window_borders(self, x: int, y: int) -> Region:
        """Bounds of the sub-window containing (x, y)."""
        ...

    # -- text search ---------------------------------------------------------

    @abstractmethod
    async def find_text_in_region(
        self, region: Region, text: str, exact: bool = False
    ) -> TextMatch | None:
        """Text hit inside *region*."""
        ...

    @abstractmethod
    async def find_text(self, text: str, exact: bool = False) -> TextMatch | None:
        """Text hit anywhere in the captured frame."""
        ...

    @abstractmethod
    async def find_region_with_text(
        self, text: str, exact: bool = False
    ) -> Region | None:
        """Bounding region of the line containing *text*."""
        ...

    # -- injection -----------------------------------------------------------

    @abstractmethod
    async def set_mouse_pos(self, x: int, y: int) -> None:
        """Move the pointer."""
        ...

    @abstractmethod
    async def mouse_down(self, right: bool = False) -> None:
        """Press a mouse button at the current pointer position."""
        ...

    @abstractmethod
    async def mouse_up(self, right: bool = False) -> None:
        """Release a mouse button at the current pointer position."""
        ...

    @abstractmethod
    async def click_no_move(self, x: int, y: int, right_click: bool = False) -> None:
        """Click at (x, y) and leave the pointer where it was."""
        ...
