"""Tests for the rollover worker schedule."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from hrleave.worker import seconds_until_next_run


def test_sleeps_until_next_midnight() -> None:
    assert seconds_until_next_run(datetime(2025, 6, 10, 23, 0)) == 3600


def test_crosses_year_boundary() -> None:
    assert seconds_until_next_run(datetime(2025, 12, 31, 23, 59, 59, 500000)) == 0.5


def test_run_at_midnight_waits_a_full_day() -> None:
    assert seconds_until_next_run(datetime(2026, 1, 1)) == 86400


def test_late_run_does_not_shift_schedule() -> None:
    # A run that finished at 00:07 still targets the following midnight.
    assert seconds_until_next_run(datetime(2026, 1, 1, 0, 7)) == 86400 - 7 * 60


def test_timezone_aware_now() -> None:
    manila = timezone(timedelta(hours=8))
    assert seconds_until_next_run(datetime(2025, 6, 10, 18, 30, tzinfo=manila)) == 5.5 * 3600
    assert seconds_until_next_run(datetime(2025, 6, 10, 12, 0, tzinfo=UTC)) == 12 * 3600
