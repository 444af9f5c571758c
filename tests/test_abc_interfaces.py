"""Tests for ABC interfaces — verify contracts and prevent direct instantiation."""

from __future__ import annotations

import pytest

from vigil.engine.base import BaseSignalSource
from vigil.engine.clock import Clock
from vigil.engine.conditions import Condition

# ── BaseSignalSource ──


class TestBaseSignalSource:
    def test_cannot_instantiate(self) -> None:
        with pytest.raises(TypeError, match="abstract method"):
            BaseSignalSource()  # type: ignore[abstract]

    def test_has_all_abstract_methods(self) -> None:
        expected = {
            "start",
            "stop",
            "read_pixel",
            "capture_screen",
            "region_digest",
            "find_image",
            "find_all_images",
            "find_image_in_range",
            "get_window_size",
            "get_window_borders",
            "find_text_in_region",
            "find_text",
            "find_region_with_text",
            "set_mouse_pos",
            "mouse_down",
            "mouse_up",
            "click_no_move",
        }
        assert expected == BaseSignalSource.__abstractmethods__


# ── Clock ──


class TestClock:
    def test_cannot_instantiate(self) -> None:
        with pytest.raises(TypeError, match="abstract method"):
            Clock()  # type: ignore[abstract]

    def test_abstract_methods(self) -> None:
        assert {"now_ms", "sleep"} == Clock.__abstractmethods__


# ── Condition ──


class TestCondition:
    def test_only_check_is_abstract(self) -> None:
        assert {"check"} == Condition.__abstractmethods__
