"""
Proximity warning levels.
"""

from enum import IntEnum
from typing import Iterable


class WarningLevel(IntEnum):
    """
    Ordered proximity warning.

    Integer order is severity order, so the worst of several levels is
    simply their max().
    """

    UNKNOWN = 0  # No distance available
    SAFE = 1     # Nearest peer beyond warn threshold (or peer alone)
    WARN = 2     # Nearest peer within warn threshold
    DANGER = 3   # Nearest peer within danger threshold

    @property
    def display_text(self) -> str:
        """Text shown on the status banner."""
        return _DISPLAY_TEXT[self]


_DISPLAY_TEXT = {
    WarningLevel.UNKNOWN: "UNKNOWN",
    WarningLevel.SAFE: "SAFE ZONE",
    WarningLevel.WARN: "WARNING ZONE",
    WarningLevel.DANGER: "DANGER ZONE",
}


def worst_warning(levels: Iterable[WarningLevel]) -> WarningLevel:
    """
    Most severe level among `levels`.

    Returns:
        WarningLevel.UNKNOWN for an empty iterable
    """
    return max(levels, default=WarningLevel.UNKNOWN)
