"""Deterministic clock and sleep doubles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from nitter_reader.testing.time_control import SleepRecorder, fixed_now, stepping_now

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_fixed_now_always_returns_the_same_aware_value() -> None:
    now_fn = fixed_now(START)
    assert now_fn() == START
    assert now_fn() == START


def test_stepping_now_advances_per_call() -> None:
    now_fn = stepping_now(START, step=timedelta(seconds=30))

    assert [now_fn(), now_fn(), now_fn()] == [
        START,
        START + timedelta(seconds=30),
        START + timedelta(seconds=60),
    ]


def test_clocks_reject_naive_start_and_negative_step() -> None:
    with pytest.raises(ValueError, match="tzinfo"):
        fixed_now(datetime(2026, 3, 1, 12, 0))
    with pytest.raises(ValueError, match="negative"):
        stepping_now(START, step=timedelta(seconds=-1))


def test_sleep_recorder_tracks_seconds() -> None:
    recorder = SleepRecorder()
    recorder(1)
    recorder(2.5)
    assert recorder.calls == [1.0, 2.5]
    assert recorder.total == 3.5
