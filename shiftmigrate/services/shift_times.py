"""Shift-time policy table.

The legacy panel records events by day only; it never stores when a shift
starts or ends. Times are assigned per canonical shift type from this table.
Entries are matched by case-insensitive substring against the shift type
name, first match wins, so more specific names come before their prefixes
("front of house setup" before "front of house").

Bump ``SHIFT_TIME_POLICY_VERSION`` whenever an entry changes; the version is
written into every migration report.
"""

from dataclasses import dataclass
from datetime import datetime, time
from typing import Tuple

SHIFT_TIME_POLICY_VERSION = 1


@dataclass(frozen=True)
class ShiftWindow:
    """Start and end time of day for a shift type."""
    start: time
    end: time

    def on(self, day: datetime) -> Tuple[datetime, datetime]:
        """Anchor the window to a calendar day."""
        start = day.replace(hour=self.start.hour, minute=self.start.minute, second=0, microsecond=0)
        end = day.replace(hour=self.end.hour, minute=self.end.minute, second=0, microsecond=0)
        return start, end


DEFAULT_WINDOW = ShiftWindow(time(17, 30), time(21, 0))

SHIFT_TIME_POLICY: Tuple[Tuple[str, ShiftWindow], ...] = (
    ("dishwasher", ShiftWindow(time(17, 30), time(21, 0))),
    ("front of house setup", ShiftWindow(time(16, 30), time(21, 0))),
    ("front of house", ShiftWindow(time(17, 30), time(21, 0))),
    ("kitchen prep", ShiftWindow(time(12, 0), time(16, 0))),
    ("kitchen service", ShiftWindow(time(17, 30), time(21, 0))),
    ("kitchen pack", ShiftWindow(time(17, 30), time(21, 0))),
    ("media", ShiftWindow(time(17, 0), time(19, 0))),
    ("anywhere needed", ShiftWindow(time(16, 0), time(21, 0))),
)


def normalize_shift_name(name: str) -> str:
    """Lower-case and collapse separators: "Kitchen-Prep & Pack" -> "kitchen prep & pack"."""
    return " ".join(name.lower().replace("-", " ").replace("_", " ").split())


def shift_window(shift_type_name: str) -> ShiftWindow:
    """Look up the time window for a shift type name, or the default."""
    normalized = normalize_shift_name(shift_type_name or "")
    for key, window in SHIFT_TIME_POLICY:
        if key in normalized:
            return window
    return DEFAULT_WINDOW
