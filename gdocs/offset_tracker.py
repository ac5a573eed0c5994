"""
Offset tracking for batch planning.

A tracker hands out absolute document indices while a front end appends text
to a batch that has not been executed yet. Each top-level planning pass owns
its own tracker seeded from a freshly read insertion point.
"""

import logging

logger = logging.getLogger(__name__)


def utf16_len(text: str) -> int:
    """Length of ``text`` in UTF-16 code units, the unit Docs indices count in."""
    return len(text.encode("utf-16-le")) // 2


class OffsetTracker:
    """Single cursor over the absolute index space of one planned batch."""

    def __init__(self, start_index: int = 1):
        self.start_index = start_index
        self.current_index = start_index

    def advance(self, text: str) -> int:
        """
        Account for ``text`` appended at the cursor.

        Returns:
            int: The index where ``text`` starts
        """
        start = self.current_index
        self.current_index += utf16_len(text)
        return start

    def shift(self, at_index: int, delta: int) -> None:
        """
        Recompute the cursor after a known-size edit elsewhere in the document.

        An insertion (positive delta) or deletion (negative delta) at or before
        the cursor moves it; edits after the cursor do not. A deletion whose
        range contains the cursor leaves it at the deletion start.
        """
        if at_index > self.current_index:
            return
        if delta < 0 and self.current_index < at_index - delta:
            self.current_index = at_index
        else:
            self.current_index += delta
        if delta:
            logger.debug(f"Offset tracker shifted by {delta} at {at_index}, now {self.current_index}")

    @property
    def consumed(self) -> int:
        """UTF-16 code units appended since the tracker was seeded."""
        return self.current_index - self.start_index

    def __repr__(self) -> str:
        return f"OffsetTracker(start_index={self.start_index}, current_index={self.current_index})"
