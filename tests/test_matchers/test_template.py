"""Tests for TemplateMatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np
import pytest

from vigil.core.exceptions import MatchError
from vigil.core.models import MatchingConfig, Position, Region
from vigil.matchers.template import TemplateMatcher

if TYPE_CHECKING:
    from pathlib import Path

# ── helpers ──────────────────────────────────────────────────────────────────


def _make_frame(width: int = 320, height: int = 240) -> np.ndarray:
    """Dark BGR frame with two identical badges and one recoloured one."""
    img = np.full((height, width, 3), 40, dtype=np.uint8)
    for x, y in [(40, 30), (200, 150)]:
        _badge(img, x, y)
    _badge(img, 120, 30, (0, 200, 0))
    return img


def _badge(
    img: np.ndarray, x: int, y: int, dot: tuple[int, int, int] = (0, 0, 200)
) -> None:
    cv2.rectangle(img, (x, y), (x + 29, y + 19), (255, 255, 255), -1)
    cv2.circle(img, (x + 15, y + 10), 5, dot, -1)


def _save_template(img: np.ndarray, tmp_dir: Path, name: str = "badge.png") -> str:
    """Save *img* as a PNG file and return the path string."""
    path = tmp_dir / name
    cv2.imwrite(str(path), img)
    return str(path)


# ── fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture()
def frame() -> np.ndarray:
    return _make_frame()


@pytest.fixture()
def badge_file(frame: np.ndarray, tmp_path: Path) -> str:
    return _save_template(frame[30:50, 40:70], tmp_path)


# ── find ─────────────────────────────────────────────────────────────────────


class TestFind:
    def test_exact_match_returns_centre(self, frame: np.ndarray, badge_file: str) -> None:
        found = TemplateMatcher().find(frame, badge_file, 10)
        assert found in (Position(x=55, y=40), Position(x=215, y=160))

    def test_region_restricts_search(self, frame: np.ndarray, badge_file: str) -> None:
        region = Region(x=180, y=120, width=100, height=100)
        assert TemplateMatcher().find(frame, badge_file, 10, region) == Position(x=215, y=160)

    def test_tolerance_zero_rejects_recoloured(self, frame: np.ndarray, badge_file: str) -> None:
        region = Region(x=110, y=20, width=60, height=40)
        assert TemplateMatcher().find(frame, badge_file, 0, region) is None

    def test_default_tolerance_accepts_small_drift(
        self, frame: np.ndarray, badge_file: str
    ) -> None:
        drifted = frame.astype(np.int16) + 6
        drifted = np.clip(drifted, 0, 255).astype(np.uint8)
        assert TemplateMatcher().find(drifted, badge_file, 5000) is not None

    def test_absent_template(self, tmp_path: Path) -> None:
        blank = np.full((100, 100, 3), 40, dtype=np.uint8)
        other = _save_template(_make_frame()[30:50, 40:70], tmp_path)
        assert TemplateMatcher().find(blank, other, 5000) is None

    def test_region_smaller_than_template(self, frame: np.ndarray, badge_file: str) -> None:
        tiny = Region(x=0, y=0, width=10, height=10)
        assert TemplateMatcher().find(frame, badge_file, 5000, tiny) is None

    def test_region_outside_frame(self, frame: np.ndarray, badge_file: str) -> None:
        outside = Region(x=1000, y=1000, width=50, height=50)
        assert TemplateMatcher().find(frame, badge_file, 5000, outside) is None

    def test_grayscale_mode(self, frame: np.ndarray, badge_file: str) -> None:
        matcher = TemplateMatcher(MatchingConfig(grayscale=True))
        region = Region(x=0, y=0, width=100, height=100)
        assert matcher.find(frame, badge_file, 10, region) == Position(x=55, y=40)

    def test_unreadable_template_is_match_error(
        self, frame: np.ndarray, tmp_path: Path
    ) -> None:
        with pytest.raises(MatchError, match="Cannot read"):
            TemplateMatcher().find(frame, str(tmp_path / "missing.png"), 5000)


class TestFindAll:
    def test_every_copy_once(self, frame: np.ndarray, badge_file: str) -> None:
        found = TemplateMatcher().find_all(frame, badge_file, 10)
        assert sorted(found, key=lambda p: p.x) == [
            Position(x=55, y=40),
            Position(x=215, y=160),
        ]

    def test_loose_tolerance_merges_neighbours(
        self, frame: np.ndarray, badge_file: str
    ) -> None:
        found = TemplateMatcher().find_all(frame, badge_file, 5000)
        assert len(found) == len(set(found))
        assert Position(x=55, y=40) in found

    def test_no_hits(self, tmp_path: Path) -> None:
        blank = np.full((100, 100, 3), 40, dtype=np.uint8)
        other = _save_template(_make_frame()[30:50, 40:70], tmp_path)
        assert TemplateMatcher().find_all(blank, other, 10) == []


class TestTemplateCache:
    def test_loaded_once(self, frame: np.ndarray, badge_file: str) -> None:
        matcher = TemplateMatcher()
        first = matcher.load_template(badge_file)
        assert matcher.load_template(badge_file) is first
