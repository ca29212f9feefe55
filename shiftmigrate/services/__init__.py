"""Mapping services for the migration pipeline."""

from .shift_times import SHIFT_TIME_POLICY, SHIFT_TIME_POLICY_VERSION, ShiftWindow, shift_window
from .status_mapping import map_status
from .transformer import RecordTransformer

__all__ = [
    "SHIFT_TIME_POLICY",
    "SHIFT_TIME_POLICY_VERSION",
    "ShiftWindow",
    "shift_window",
    "map_status",
    "RecordTransformer",
]
