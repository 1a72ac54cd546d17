"""Height clock — the monotonic counter deadlines are measured against.

The clock never moves backwards. It is read once per deadline
assignment; nothing in the registry reacts to it advancing.
"""

from __future__ import annotations


class HeightClock:
    """Monotonic non-decreasing block-height counter.

    Usage:
        clock = HeightClock(start=50)
        clock.current        # 50
        clock.advance(10)    # 60
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"Height cannot be negative: {start}")
        self._height = start

    @property
    def current(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the clock forward and return the new height."""
        if blocks < 0:
            raise ValueError(f"Height is monotonic; cannot advance by {blocks}")
        self._height += blocks
        return self._height

    def __call__(self) -> int:
        return self._height
