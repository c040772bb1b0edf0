from datetime import datetime, timezone

import pytest

from chartpager.entries import TimeRange, YDomain
from chartpager.services.axis import compute_y_domain, default_domain, nice_ceil, visible_axis_dates
from chartpager.utils.time import Calendar, TimeUnit

UTC = timezone.utc


@pytest.mark.parametrize(
    "value,expected",
    [(120, 200), (35, 50), (4, 5), (42, 50), (1.5, 2), (7, 10), (0.03, 0.05)],
)
def test_nice_ceil_rounds_to_one_two_five(value, expected) -> None:
    assert nice_ceil(value) == pytest.approx(expected)


def test_nice_ceil_of_non_positive_is_zero() -> None:
    assert nice_ceil(0) == 0.0
    assert nice_ceil(-12) == 0.0
    assert nice_ceil(float("nan")) == 0.0


def test_y_domain_pads_and_rounds_the_maximum() -> None:
    domain = compute_y_domain([35, 12, 4], floor=10)

    assert domain.lower == pytest.approx(3.6)
    assert domain.upper == 50.0


def test_y_domain_respects_the_floor() -> None:
    assert compute_y_domain([0], floor=3000) == YDomain(lower=0.0, upper=3000.0)
    assert compute_y_domain([1000, 1100], floor=3000) == YDomain(lower=900.0, upper=3000.0)
    # above the floor the rounded maximum wins
    assert compute_y_domain([2600, 3100], floor=3000) == YDomain(lower=2340.0, upper=5000.0)


def test_empty_y_domain_uses_default() -> None:
    assert compute_y_domain([], floor=40_000) == default_domain(40_000)
    assert default_domain(40_000) == YDomain(lower=0.0, upper=40_000.0)


def test_hourly_axis_dates_are_thinned() -> None:
    visible = TimeRange(
        datetime(2024, 1, 1, 0, 30, tzinfo=UTC),
        datetime(2024, 1, 1, 12, 30, tzinfo=UTC),
    )

    dates = visible_axis_dates(visible, TimeUnit.HOUR, Calendar("UTC"), 6)

    assert [d.hour for d in dates] == [1, 3, 5, 7, 9, 11]


def test_monthly_axis_dates_are_local_month_starts() -> None:
    cal = Calendar("Europe/Berlin")
    visible = TimeRange(datetime(2024, 1, 10, tzinfo=UTC), datetime(2024, 5, 10, tzinfo=UTC))

    dates = visible_axis_dates(visible, TimeUnit.MONTH, cal, 12)

    assert [(cal.local(d).month, cal.local(d).day, cal.local(d).hour) for d in dates] == [
        (2, 1, 0),
        (3, 1, 0),
        (4, 1, 0),
        (5, 1, 0),
    ]


def test_axis_dates_with_no_marks_requested() -> None:
    visible = TimeRange(datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 2, tzinfo=UTC))
    assert visible_axis_dates(visible, TimeUnit.HOUR, Calendar("UTC"), 0) == []
