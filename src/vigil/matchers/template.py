"""TemplateMatcher — cv2.matchTemplate lookups with a tolerance scalar.

Tolerance is the largest accepted mean squared difference per template
sample (pixel x channel). 0 accepts only pixel-perfect hits; larger values
are more permissive. The default 5000 tolerates anti-aliasing and mild
colour drift.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import cv2
import numpy as np

from vigil.core.exceptions import MatchError
from vigil.core.models import MatchingConfig, Position

if TYPE_CHECKING:
    from vigil.core.models import Region

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = MatchingConfig()


class TemplateMatcher:
    """OpenCV template search over a captured BGR frame.

    Templates are loaded once per path and cached.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self._config = config or _DEFAULT_CONFIG
        self._templates: dict[str, np.ndarray] = {}

    def find(
        self,
        frame: np.ndarray,
        file: str,
        tolerance: int,
        region: Region | None = None,
    ) -> Position | None:
        """Centre of the best hit of *file* within *region*, or None."""
        prepared = self._prepare(frame, file, region)
        if prepared is None:
            return None
        scores, (tw, th), (ox, oy) = prepared

        min_val, _, min_loc, _ = cv2.minMaxLoc(scores)
        if min_val > tolerance:
            logger.debug("Template %s: best=%.1f > tolerance=%d", file, min_val, tolerance)
            return None
        return Position(x=ox + min_loc[0] + tw // 2, y=oy + min_loc[1] + th // 2)

    def find_all(
        self,
        frame: np.ndarray,
        file: str,
        tolerance: int,
        region: Region | None = None,
    ) -> list[Position]:
        """Centres of every non-overlapping hit, best first."""
        prepared = self._prepare(frame, file, region)
        if prepared is None:
            return []
        scores, (tw, th), (ox, oy) = prepared

        ys, xs = np.nonzero(scores <= tolerance)
        if len(xs) == 0:
            return []
        order = np.argsort(scores[ys, xs], kind="stable")

        taken: list[tuple[int, int]] = []
        for idx in order:
            x, y = int(xs[idx]), int(ys[idx])
            if any(abs(x - px) < tw and abs(y - py) < th for px, py in taken):
                continue
            taken.append((x, y))
        return [Position(x=ox + x + tw // 2, y=oy + y + th // 2) for x, y in taken]

    # -- internal helpers -----------------------------------------------------

    def load_template(self, file: str) -> np.ndarray:
        cached = self._templates.get(file)
        if cached is not None:
            return cached
        tmpl = cv2.imread(file, cv2.IMREAD_COLOR)
        if tmpl is None:
            msg = f"Cannot read template image: {file}"
            raise MatchError(msg)
        self._templates[file] = tmpl
        return tmpl

    def _to_gray(self, img: np.ndarray) -> np.ndarray:
        if len(img.shape) == 2:
            return img
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    def _prepare(
        self,
        frame: np.ndarray,
        file: str,
        region: Region | None,
    ) -> tuple[np.ndarray, tuple[int, int], tuple[int, int]] | None:
        """Crop, convert and score. Returns (scores, template size, crop offset)."""
        tmpl = self.load_template(file)

        ox, oy = 0, 0
        screen = frame
        if region is not None:
            fh, fw = frame.shape[:2]
            ox, oy = max(region.x, 0), max(region.y, 0)
            right, bottom = min(region.right, fw), min(region.bottom, fh)
            if right <= ox or bottom <= oy:
                return None
            screen = frame[oy:bottom, ox:right]

        if self._config.grayscale:
            screen = self._to_gray(screen)
            tmpl = self._to_gray(tmpl)

        th, tw = tmpl.shape[:2]
        sh, sw = screen.shape[:2]
        if th > sh or tw > sw:
            return None

        samples = tmpl.size
        scores = cv2.matchTemplate(
            screen.astype(np.float32), tmpl.astype(np.float32), cv2.TM_SQDIFF
        )
        return scores / float(samples), (tw, th), (ox, oy)
