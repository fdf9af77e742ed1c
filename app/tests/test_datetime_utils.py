"""
Tests for UTC datetime helpers used by time entries
"""
from datetime import datetime, timedelta, timezone

from app.utils.datetime_utils import (
    elapsed_since,
    ensure_utc,
    format_hours_minutes,
    hours_between,
    iso_8601_utc,
)

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_naive_datetimes_are_treated_as_utc():
    assert ensure_utc(datetime(2026, 3, 2, 9, 0)) == START


def test_iso_8601_uses_z_suffix():
    assert iso_8601_utc(START) == "2026-03-02T09:00:00Z"
    assert iso_8601_utc(None) is None


def test_format_hours_minutes_truncates_seconds():
    assert format_hours_minutes(timedelta(hours=7, minutes=45, seconds=59)) == "7h 45m"
    assert format_hours_minutes(timedelta(0)) == "0h 0m"


def test_elapsed_since_never_negative():
    assert elapsed_since(START, START - timedelta(minutes=5)) == timedelta(0)
    assert elapsed_since(None) == timedelta(0)


def test_hours_between_rounds_to_two_decimals():
    assert hours_between(START, START + timedelta(hours=7, minutes=45)) == 7.75
    assert hours_between(START, START + timedelta(minutes=20)) == 0.33
