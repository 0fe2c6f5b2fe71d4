"""Tests for sprint date arithmetic."""

from datetime import UTC, datetime, timedelta

from scrumboard.core.clock import as_utc, calculate_days_remaining, calculate_end_date, utcnow

START = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is not None


def test_end_date_is_calendar_days_after_start():
    assert calculate_end_date(START, 14) == datetime(2026, 3, 15, 9, 30, tzinfo=UTC)


def test_end_date_crosses_month_boundary():
    assert calculate_end_date(datetime(2026, 1, 25, tzinfo=UTC), 10) == datetime(2026, 2, 4, tzinfo=UTC)


def test_days_remaining_rounds_up():
    end = START + timedelta(days=3, hours=1)
    assert calculate_days_remaining(START, end) == 4


def test_days_remaining_whole_days():
    assert calculate_days_remaining(START, START + timedelta(days=14)) == 14


def test_days_remaining_never_negative():
    assert calculate_days_remaining(START, START - timedelta(days=2)) == 0


def test_days_remaining_zero_at_end():
    assert calculate_days_remaining(START, START) == 0


def test_days_remaining_without_end_date():
    assert calculate_days_remaining(START, None) == 0


def test_naive_datetimes_are_treated_as_utc():
    naive_end = datetime(2026, 3, 3, 9, 30)
    assert as_utc(naive_end).tzinfo is UTC
    assert calculate_days_remaining(START, naive_end) == 2
