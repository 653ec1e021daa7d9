"""
Stability Tracker Module - debounce for decoded display text.

Compares each decoded string with the previous one:
  - A different value is reported as CHANGED immediately
  - The same value seen on `repeats` further ticks is reported once as
    STABLE_OUTPUT (4 consecutive ticks with the default of 3 repeats)
  - The counter keeps growing afterwards, so a value fires again only
    after it changes and comes back
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


__all__ = [
    "NotificationKind",
    "Notification",
    "StabilityTracker",
]


class NotificationKind(Enum):
    """
    Notification kinds emitted by the tracker.

    Kinds:
        CHANGED: Decoded text differs from the previous tick
        STABLE_OUTPUT: Decoded text persisted long enough to be trusted
    """
    CHANGED = auto()
    STABLE_OUTPUT = auto()


@dataclass(frozen=True)
class Notification:
    """One tracker notification."""
    kind: NotificationKind
    value: str


class StabilityTracker:
    """
    Debounces decoded display strings across ticks.

    Example:
        tracker = StabilityTracker()
        for text in ["A", "A", "A", "A", "B"]:
            for note in tracker.update(text):
                print(note.kind.name, note.value)
        # CHANGED A, STABLE_OUTPUT A, CHANGED B
    """

    def __init__(self, repeats: int = 3):
        """
        Initialize the tracker.

        Args:
            repeats: Unchanged repeats after the first sighting before output (default 3)
        """
        self.repeats = repeats
        self._last_value: Optional[str] = None
        self._match_count = 0

    @property
    def last_value(self) -> Optional[str]:
        """Most recently seen decoded string."""
        return self._last_value

    @property
    def match_count(self) -> int:
        """Consecutive repeats of the last value."""
        return self._match_count

    @property
    def is_stable(self) -> bool:
        """True once the current value has been reported as stable output."""
        return self._last_value is not None and self._match_count >= self.repeats

    def update(self, value: str) -> List[Notification]:
        """
        Feed the decoded string of one tick.

        Args:
            value: Decoded display text

        Returns:
            Notifications raised by this tick (possibly empty)
        """
        if value != self._last_value:
            logger.debug(f"Display changed: {self._last_value!r} -> {value!r}")
            self._last_value = value
            self._match_count = 0
            return [Notification(NotificationKind.CHANGED, value)]

        self._match_count += 1
        notifications = []
        if self._match_count == self.repeats:
            logger.info(f"Stable output: {value!r}")
            notifications.append(Notification(NotificationKind.STABLE_OUTPUT, value))
        return notifications

    def reset(self) -> None:
        """Forget the last value and counter."""
        self._last_value = None
        self._match_count = 0
        logger.debug("StabilityTracker reset")

    def get_state_string(self) -> str:
        """Get human-readable state string for UI display."""
        if self._last_value is None:
            return "Waiting"
        if self.is_stable:
            return "Stable"
        return f"Stabilizing ({self._match_count}/{self.repeats})"
