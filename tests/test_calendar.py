from datetime import datetime, timedelta, timezone

import pytest

from chartpager.utils.time import Calendar, CalendarError, TimeUnit, as_utc, to_datetime

UTC = timezone.utc


def test_month_addition_clamps_to_month_length() -> None:
    cal = Calendar("UTC")
    jan31 = datetime(2024, 1, 31, 12, tzinfo=UTC)

    assert cal.add(TimeUnit.MONTH, jan31, 1) == datetime(2024, 2, 29, 12, tzinfo=UTC)
    assert cal.add(TimeUnit.MONTH, jan31, 2) == datetime(2024, 3, 31, 12, tzinfo=UTC)
    assert cal.add(TimeUnit.MONTH, datetime(2023, 1, 31, tzinfo=UTC), 1) == datetime(2023, 2, 28, tzinfo=UTC)
    assert cal.add(TimeUnit.MONTH, datetime(2024, 3, 31, tzinfo=UTC), -1) == datetime(2024, 2, 29, tzinfo=UTC)
    assert cal.add(TimeUnit.MONTH, datetime(2023, 12, 15, tzinfo=UTC), 1) == datetime(2024, 1, 15, tzinfo=UTC)


def test_month_buckets_follow_real_month_lengths() -> None:
    cal = Calendar("UTC")
    for month, days in [(1, 31), (2, 29), (4, 30), (12, 31)]:
        start, end = cal.bucket(TimeUnit.MONTH, datetime(2024, month, 15, 8, tzinfo=UTC))
        assert start == datetime(2024, month, 1, tzinfo=UTC)
        assert end - start == timedelta(days=days)


def test_day_bucket_spans_dst_transitions() -> None:
    cal = Calendar("America/New_York")

    # Spring forward: the local day is 23 hours long.
    start, end = cal.bucket(TimeUnit.DAY, datetime(2024, 3, 10, 12, tzinfo=UTC))
    assert start == datetime(2024, 3, 10, 5, tzinfo=UTC)
    assert end == datetime(2024, 3, 11, 4, tzinfo=UTC)

    # Fall back: the local day is 25 hours long.
    start, end = cal.bucket(TimeUnit.DAY, datetime(2024, 11, 3, 12, tzinfo=UTC))
    assert start == datetime(2024, 11, 3, 4, tzinfo=UTC)
    assert end - start == timedelta(hours=25)


def test_repeated_wall_clock_hour_gives_two_buckets() -> None:
    cal = Calendar("America/New_York")
    first = cal.bucket(TimeUnit.HOUR, datetime(2024, 11, 3, 5, 30, tzinfo=UTC))
    second = cal.bucket(TimeUnit.HOUR, datetime(2024, 11, 3, 6, 30, tzinfo=UTC))

    assert first == (datetime(2024, 11, 3, 5, tzinfo=UTC), datetime(2024, 11, 3, 6, tzinfo=UTC))
    assert second == (datetime(2024, 11, 3, 6, tzinfo=UTC), datetime(2024, 11, 3, 7, tzinfo=UTC))


def test_start_of_uses_local_midnight() -> None:
    cal = Calendar("Europe/Istanbul")
    # 2024-01-01 22:30 UTC is already January 2nd in Istanbul (UTC+3).
    start = cal.start_of(TimeUnit.DAY, datetime(2024, 1, 1, 22, 30, tzinfo=UTC))
    assert start == datetime(2024, 1, 1, 21, tzinfo=UTC)


def test_out_of_range_arithmetic_raises_calendar_error() -> None:
    cal = Calendar("UTC")
    with pytest.raises(CalendarError):
        cal.add(TimeUnit.MONTH, datetime(9999, 12, 15, tzinfo=UTC), 1)
    with pytest.raises(CalendarError):
        cal.bucket(TimeUnit.DAY, datetime(9999, 12, 31, 12, tzinfo=UTC))


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(CalendarError):
        Calendar("Mars/Olympus_Mons")


def test_timestamp_coercion() -> None:
    assert as_utc(datetime(2024, 1, 1, 8)) == datetime(2024, 1, 1, 8, tzinfo=UTC)
    assert to_datetime("2024-01-01T08:00:00Z") == datetime(2024, 1, 1, 8, tzinfo=UTC)
    assert to_datetime("2024-01-01T11:00:00+03:00") == datetime(2024, 1, 1, 8, tzinfo=UTC)
    assert to_datetime(0) == datetime(1970, 1, 1, tzinfo=UTC)
    with pytest.raises(ValueError):
        to_datetime("not a date")
