from datetime import date

import pytest

from schoolhub.core.errors import ValidationError
from schoolhub.services.attendance_stats import StatusCounts, attendance_rate, count_statuses, format_mark_message
from schoolhub.services.report_service import is_weekend, month_bounds, trend_between, working_days


@pytest.mark.parametrize(
    "present, absent, late, half_day, expected",
    [
        (8, 1, 1, 0, 90.0),
        (2, 1, 0, 1, 62.5),
        (1, 2, 0, 0, 33.33),
        (0, 0, 0, 0, 0.0),
        (0, 0, 3, 0, 100.0),
    ],
)
def test_attendance_rate(present, absent, late, half_day, expected):
    assert attendance_rate(present, absent, late, half_day) == expected


def test_count_statuses_skips_unmarked():
    counts = count_statuses(["present", None, "late", "absent", "half_day", "present", None])

    assert counts.as_dict() == {"present": 2, "absent": 1, "late": 1, "half_day": 1}
    assert counts.marked == 5
    assert counts.attended == 4
    assert counts.rate == 70.0


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        StatusCounts().add("excused")


def test_format_mark_message():
    counts = count_statuses(["present", "present", "absent", "late"])
    assert format_mark_message(counts) == "Attendance marked: 2 present, 1 absent, 1 late, 0 half-day"


def test_weekends():
    assert is_weekend(date(2026, 10, 17)) is True   # Saturday
    assert is_weekend(date(2026, 10, 18)) is True   # Sunday
    assert is_weekend(date(2026, 10, 19)) is False  # Monday


def test_working_days_skip_weekends():
    days = working_days(date(2026, 10, 12), date(2026, 10, 18))
    assert days == [date(2026, 10, d) for d in range(12, 17)]


def test_month_bounds():
    assert month_bounds(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))
    assert month_bounds(2028, 2) == (date(2028, 2, 1), date(2028, 2, 29))

    with pytest.raises(ValidationError):
        month_bounds(2026, 13)
    with pytest.raises(ValidationError):
        month_bounds(1999, 5)


@pytest.mark.parametrize(
    "current, previous, expected",
    [
        (80.0, 70.0, "improving"),
        (70.0, 80.0, "declining"),
        (72.0, 70.0, "stable"),
        (75.0, 70.0, "improving"),
        (65.0, 70.0, "declining"),
        (74.99, 70.0, "stable"),
        (50.0, None, "stable"),
    ],
)
def test_trend(current, previous, expected):
    assert trend_between(current, previous) == expected
