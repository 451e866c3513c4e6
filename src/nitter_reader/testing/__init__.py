"""Deterministic clock and sleep doubles for tests."""

from .time_control import SleepRecorder, fixed_now, stepping_now

__all__ = [
    "SleepRecorder",
    "fixed_now",
    "stepping_now",
]
