"""Tests for condition evaluators and the SampleWindow ring buffer."""

from __future__ import annotations

import pytest

from vigil.core.models import Position
from vigil.engine.conditions import (
    DEFAULT_WINDOW,
    Absent,
    Changed,
    Present,
    SampleWindow,
    Stasis,
    is_empty,
)


class TestChanged:
    def test_same_value_not_satisfied(self) -> None:
        assert Changed((1, 2, 3)).check((1, 2, 3)) is False

    def test_different_value_satisfied(self) -> None:
        assert Changed((1, 2, 3)).check((1, 2, 4)) is True

    def test_describe_mentions_baseline(self) -> None:
        assert "(1, 2, 3)" in Changed((1, 2, 3)).describe()


class TestSampleWindow:
    def test_default_capacity(self) -> None:
        assert DEFAULT_WINDOW == 7
        assert SampleWindow().capacity == 7

    def test_rejects_tiny_capacity(self) -> None:
        with pytest.raises(ValueError, match=">= 2"):
            SampleWindow(1)

    def test_seeded_window_is_not_equal(self) -> None:
        assert SampleWindow(3).all_equal() is False

    def test_equal_only_after_full_overwrite(self) -> None:
        window = SampleWindow(3)
        window.push("a")
        window.push("a")
        assert window.all_equal() is False
        window.push("a")
        assert window.all_equal() is True

    def test_wraps_and_overwrites_oldest(self) -> None:
        window = SampleWindow(3)
        for value in ["x", "a", "a"]:
            window.push(value)
        assert window.all_equal() is False
        window.push("a")  # overwrites "x"
        assert window.all_equal() is True
        assert window.capacity == 3
        assert window.filled == 3


class TestStasis:
    def test_constant_signal_needs_full_window(self) -> None:
        stasis: Stasis[str] = Stasis()
        results = [stasis.check("same") for _ in range(DEFAULT_WINDOW)]
        assert results == [False] * (DEFAULT_WINDOW - 1) + [True]

    def test_change_resets_run(self) -> None:
        stasis: Stasis[int] = Stasis(3)
        assert [stasis.check(v) for v in [1, 1, 2, 2, 2]] == [False, False, False, False, True]

    def test_each_condition_has_its_own_window(self) -> None:
        first: Stasis[int] = Stasis(2)
        second: Stasis[int] = Stasis(2)
        first.check(1)
        assert second.check(1) is False


class TestPresentAbsent:
    @pytest.mark.parametrize("value", [None, [], (), False, {}])
    def test_empty_values(self, value: object) -> None:
        assert is_empty(value) is True
        assert Present().check(value) is False
        assert Absent().check(value) is True

    @pytest.mark.parametrize("value", [Position(x=1, y=2), [Position(x=0, y=0)], "Done", 0])
    def test_found_values(self, value: object) -> None:
        assert is_empty(value) is False
        assert Present().check(value) is True
        assert Absent().check(value) is False

    def test_describe_defaults_to_class_name(self) -> None:
        assert Present().describe() == "Present"
        assert Absent().describe() == "Absent"
