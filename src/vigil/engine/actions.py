"""Actions — input injection that leans on the wait engine.

Clicks are spaced by the configured click delay; drags are confirmed by
waiting for the grabbed pixel to change.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from vigil.engine.waiter import check_timeout, require_spot

if TYPE_CHECKING:
    from vigil.core.models import Position, Spot, WaitOptions
    from vigil.engine.base import BaseSignalSource
    from vigil.engine.waiter import Waiter

logger = logging.getLogger(__name__)


class Actions:
    """Click / drag helpers bound to one source and its Waiter."""

    def __init__(self, source: BaseSignalSource, waiter: Waiter) -> None:
        self._source = source
        self._waiter = waiter

    async def click(self, x: int, y: int, right: bool = False) -> None:
        """Click without moving the pointer, then pause for the click delay."""
        await self._source.click_no_move(x, y, right_click=right)
        await self._waiter.clock.sleep(self._waiter.config.click_delay_ms)

    async def click_image(
        self,
        file: str,
        timeout_ms: int | None = None,
        options: WaitOptions | None = None,
        right: bool = False,
    ) -> Position | None:
        """Wait for *file*, click its centre. Returns the position, or None on timeout."""
        position = await self._waiter.wait_for_image(file, timeout_ms, options)
        if position is None:
            logger.debug("click_image: %s not found, nothing clicked", file)
            return None
        await self.click(position.x, position.y, right=right)
        return position

    async def drag(
        self,
        spot: Spot | Mapping[str, Any],
        to_x: int,
        to_y: int,
        timeout_ms: int | None = None,
    ) -> bool:
        """Drag from *spot* to (to_x, to_y).

        Returns:
            True if the pixel under *spot* changed afterwards (something moved),
            False if it stayed the same until the timeout.

        Raises:
            ArgumentError: Bad spot or timeout; no input is sent.
        """
        grab = require_spot(spot)
        check_timeout(timeout_ms)
        delay = self._waiter.config.click_delay_ms
        clock = self._waiter.clock

        await self._source.set_mouse_pos(grab.x, grab.y)
        await self._source.mouse_down()
        await clock.sleep(delay)
        await self._source.set_mouse_pos(to_x, to_y)
        await clock.sleep(delay)
        await self._source.mouse_up()

        moved = await self._waiter.wait_for_change(grab, timeout_ms)
        if not moved:
            logger.info(
                "drag from (%d, %d) to (%d, %d) left the source unchanged",
                grab.x,
                grab.y,
                to_x,
                to_y,
            )
        return moved
