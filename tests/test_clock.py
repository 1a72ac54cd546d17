"""Tests for the height clock."""

import pytest

from pledges.clock import HeightClock


class TestHeightClock:
    def test_starts_at_zero(self) -> None:
        assert HeightClock().current == 0

    def test_advance(self) -> None:
        clock = HeightClock(start=50)
        assert clock.advance(10) == 60
        assert clock.advance() == 61
        assert clock() == 61

    def test_zero_advance_allowed(self) -> None:
        clock = HeightClock(start=5)
        assert clock.advance(0) == 5

    def test_cannot_go_backwards(self) -> None:
        clock = HeightClock(start=5)
        with pytest.raises(ValueError, match="monotonic"):
            clock.advance(-1)
        assert clock.current == 5

    def test_negative_start_rejected(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            HeightClock(start=-1)
