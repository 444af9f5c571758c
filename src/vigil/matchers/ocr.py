"""OCRMatcher — pytesseract based text lookups over a captured frame."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import cv2
import pytesseract  # type: ignore[import-untyped]

from vigil.core.exceptions import SignalError
from vigil.core.models import MatchingConfig, Region, TextMatch

if TYPE_CHECKING:
    import numpy as np
    import pandas as pd  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = MatchingConfig()

_LINE_COLS = ["block_num", "par_num", "line_num"]


class OCRMatcher:
    """Find text using Tesseract OCR.

    Uses ``pytesseract.image_to_data`` to locate every word, then searches
    single tokens first and whole lines second. In exact mode a token or line
    must equal the search text; otherwise a case-insensitive substring is
    enough.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self._config = config or _DEFAULT_CONFIG

    def find(
        self,
        frame: np.ndarray,
        text: str,
        exact: bool = False,
        region: Region | None = None,
    ) -> TextMatch | None:
        """Best hit for *text* inside *region* (whole frame if None)."""
        cropped = _crop(frame, region)
        if cropped is None:
            return None
        image, (ox, oy) = cropped
        data = self._words(image)
        if data is None:
            return None

        hit = self._find_single_token(data, text, exact)
        if hit is None:
            hit = self._find_phrase(data, text, exact)
        if hit is None:
            return None
        return TextMatch(
            text=hit.text,
            x=hit.x + ox,
            y=hit.y + oy,
            width=hit.width,
            height=hit.height,
            confidence=hit.confidence,
        )

    def find_block(
        self,
        frame: np.ndarray,
        text: str,
        exact: bool = False,
    ) -> Region | None:
        """Bounding box of the whole text block whose lines contain *text*."""
        data = self._words(frame)
        if data is None:
            return None
        for _key, block in data.groupby("block_num"):
            for _line, group in block.groupby(_LINE_COLS):
                if _text_matches(" ".join(group["text"]), text, exact):
                    return _bbox(block)
        return None

    # -- internal helpers -----------------------------------------------------

    def _words(self, image: np.ndarray) -> pd.DataFrame | None:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        try:
            data: pd.DataFrame = pytesseract.image_to_data(
                gray,
                lang="+".join(self._config.ocr_languages),
                output_type=pytesseract.Output.DATAFRAME,
            )
        except (pytesseract.TesseractError, RuntimeError) as e:
            msg = f"OCR failed: {e}"
            raise SignalError(msg) from e

        data = data.dropna(subset=["text"])
        valid = data[
            (data["conf"] > 0) & (data["conf"] >= self._config.ocr_min_confidence)
        ].copy()
        if valid.empty:
            return None
        valid["text"] = valid["text"].astype(str).str.strip()
        valid = valid[valid["text"] != ""]
        if valid.empty:
            return None
        return valid

    def _find_single_token(
        self,
        data: pd.DataFrame,
        text: str,
        exact: bool,
    ) -> TextMatch | None:
        """Highest-confidence single OCR token matching *text*."""
        mask = data["text"].map(lambda token: _text_matches(token, text, exact))
        matches = data[mask.astype(bool)]
        if matches.empty:
            return None
        row = matches.loc[matches["conf"].idxmax()]
        return TextMatch(
            text=str(row["text"]),
            x=int(row["left"]),
            y=int(row["top"]),
            width=int(row["width"]),
            height=int(row["height"]),
            confidence=float(row["conf"]),
        )

    def _find_phrase(
        self,
        data: pd.DataFrame,
        text: str,
        exact: bool,
    ) -> TextMatch | None:
        """Concatenate words per line and match the phrase against the line."""
        for col in _LINE_COLS:
            if col not in data.columns:
                return None

        best: TextMatch | None = None
        for _key, group in data.groupby(_LINE_COLS):
            line_text = " ".join(group["text"])
            if not _text_matches(line_text, text, exact):
                continue
            box = _bbox(group)
            conf = float(group["conf"].mean())
            if best is None or conf > best.confidence:
                best = TextMatch(
                    text=line_text,
                    x=box.x,
                    y=box.y,
                    width=box.width,
                    height=box.height,
                    confidence=conf,
                )
        return best


def _text_matches(candidate: str, text: str, exact: bool) -> bool:
    if exact:
        return candidate.strip() == text.strip()
    return text.strip().lower() in candidate.lower()


def _bbox(group: pd.DataFrame) -> Region:
    left = int(group["left"].min())
    top = int(group["top"].min())
    right = int((group["left"] + group["width"]).max())
    bottom = int((group["top"] + group["height"]).max())
    return Region(x=left, y=top, width=right - left, height=bottom - top)


def _crop(
    frame: np.ndarray, region: Region | None
) -> tuple[np.ndarray, tuple[int, int]] | None:
    if region is None:
        return frame, (0, 0)
    fh, fw = frame.shape[:2]
    ox, oy = max(region.x, 0), max(region.y, 0)
    right, bottom = min(region.right, fw), min(region.bottom, fh)
    if right <= ox or bottom <= oy:
        return None
    return frame[oy:bottom, ox:right], (ox, oy)
