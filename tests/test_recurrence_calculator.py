"""
Recurring Billing Scheduler - Next Run Date Calculator Tests

Unit tests for the pure schedule arithmetic.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from billing_scheduler.models.recurring_invoice import RecurrenceFrequency
from billing_scheduler.services.holiday_calendar import HolidayCalendar
from billing_scheduler.services.recurrence_calculator import (
    RecurrenceOptions,
    calculate_due_date,
    compute_next_run_date,
    snap_to_weekday,
    to_local_date,
)
from billing_scheduler.utils.error_handling import CalculationError, ErrorCode


FRIDAY = date(2024, 3, 15)


class TestAdvance:
    """Plain frequency / interval arithmetic."""

    @pytest.mark.parametrize("frequency", list(RecurrenceFrequency))
    @pytest.mark.parametrize("interval", [1, 2, 5])
    def test_result_is_strictly_later(self, frequency, interval):
        assert compute_next_run_date(FRIDAY, frequency, interval) > FRIDAY

    @pytest.mark.parametrize(
        "frequency,interval,expected",
        [
            (RecurrenceFrequency.DAILY, 1, date(2024, 3, 16)),
            (RecurrenceFrequency.DAILY, 10, date(2024, 3, 25)),
            (RecurrenceFrequency.WEEKLY, 1, date(2024, 3, 22)),
            (RecurrenceFrequency.WEEKLY, 2, date(2024, 3, 29)),
            (RecurrenceFrequency.BIWEEKLY, 1, date(2024, 3, 29)),
            (RecurrenceFrequency.BIWEEKLY, 2, date(2024, 4, 12)),
            (RecurrenceFrequency.MONTHLY, 1, date(2024, 4, 15)),
            (RecurrenceFrequency.MONTHLY, 3, date(2024, 6, 15)),
            (RecurrenceFrequency.QUARTERLY, 1, date(2024, 6, 15)),
            (RecurrenceFrequency.QUARTERLY, 2, date(2024, 9, 15)),
            (RecurrenceFrequency.ANNUALLY, 1, date(2025, 3, 15)),
        ],
    )
    def test_period_lengths(self, frequency, interval, expected):
        assert compute_next_run_date(FRIDAY, frequency, interval) == expected

    def test_accepts_string_frequency_and_yearly_alias(self):
        assert compute_next_run_date(FRIDAY, "monthly", 1) == date(2024, 4, 15)
        assert compute_next_run_date(FRIDAY, "yearly", 1) == date(2025, 3, 15)

    def test_month_end_clamps_without_pin(self):
        assert compute_next_run_date(date(2024, 1, 31), RecurrenceFrequency.MONTHLY, 1) == date(2024, 2, 29)

    def test_leap_day_annual_clamps(self):
        assert compute_next_run_date(date(2024, 2, 29), RecurrenceFrequency.ANNUALLY, 1) == date(2025, 2, 28)


class TestPins:
    """day_of_month / day_of_week pinning."""

    def test_day_of_month_clamps_to_leap_february(self):
        options = RecurrenceOptions(day_of_month=31)
        assert compute_next_run_date(date(2024, 1, 31), "monthly", 1, options) == date(2024, 2, 29)

    def test_day_of_month_clamps_to_common_february(self):
        options = RecurrenceOptions(day_of_month=31)
        assert compute_next_run_date(date(2023, 1, 31), "monthly", 1, options) == date(2023, 2, 28)

    def test_day_of_month_recovers_after_short_month(self):
        options = RecurrenceOptions(day_of_month=31)
        assert compute_next_run_date(date(2024, 2, 29), "monthly", 1, options) == date(2024, 3, 31)

    def test_day_of_month_on_quarterly(self):
        options = RecurrenceOptions(day_of_month=1)
        assert compute_next_run_date(date(2024, 1, 15), "quarterly", 1, options) == date(2024, 4, 1)

    def test_day_of_week_snaps_forward(self):
        # Friday + 1 week = Friday 22nd, then forward to Monday 25th
        options = RecurrenceOptions(day_of_week=1)
        assert compute_next_run_date(FRIDAY, "weekly", 1, options) == date(2024, 3, 25)

    def test_day_of_week_already_matching(self):
        options = RecurrenceOptions(day_of_week=5)  # Friday
        assert compute_next_run_date(FRIDAY, "weekly", 1, options) == date(2024, 3, 22)

    def test_sunday_is_zero(self):
        assert snap_to_weekday(FRIDAY, 0) == date(2024, 3, 17)
        assert snap_to_weekday(FRIDAY, 6) == date(2024, 3, 16)

    def test_pins_ignored_for_other_cadences(self):
        options = RecurrenceOptions(day_of_week=1, day_of_month=1)
        assert compute_next_run_date(FRIDAY, "daily", 1, options) == date(2024, 3, 16)


class TestBusinessCalendar:
    """Weekend and holiday rolling."""

    def test_weekend_rolls_to_monday(self):
        options = RecurrenceOptions(business_days_only=True)
        assert compute_next_run_date(FRIDAY, "daily", 1, options) == date(2024, 3, 18)

    def test_weekday_unchanged(self):
        options = RecurrenceOptions(business_days_only=True)
        assert compute_next_run_date(date(2024, 3, 13), "daily", 1, options) == date(2024, 3, 14)

    def test_consecutive_holidays(self):
        holidays = HolidayCalendar(dates=frozenset({date(2024, 3, 18), date(2024, 3, 19)}))
        options = RecurrenceOptions(skip_holidays=True, holidays=holidays)
        assert compute_next_run_date(date(2024, 3, 17), "daily", 1, options) == date(2024, 3, 20)

    def test_holiday_then_weekend(self):
        holidays = HolidayCalendar(dates=frozenset({FRIDAY}))
        options = RecurrenceOptions(business_days_only=True, skip_holidays=True, holidays=holidays)
        assert compute_next_run_date(date(2024, 3, 14), "daily", 1, options) == date(2024, 3, 18)

    def test_annual_holiday(self):
        holidays = HolidayCalendar.from_month_days(["12-25"])
        options = RecurrenceOptions(skip_holidays=True, holidays=holidays)
        assert compute_next_run_date(date(2024, 12, 24), "daily", 1, options) == date(2024, 12, 26)

    def test_holidays_ignored_unless_skip_holidays(self):
        holidays = HolidayCalendar(dates=frozenset({date(2024, 3, 16)}))
        options = RecurrenceOptions(holidays=holidays)
        assert compute_next_run_date(FRIDAY, "daily", 1, options) == date(2024, 3, 16)

    def test_fully_blocked_calendar_raises(self):
        blocked = frozenset(FRIDAY + timedelta(days=n) for n in range(1, 800))
        options = RecurrenceOptions(skip_holidays=True, holidays=HolidayCalendar(dates=blocked))
        with pytest.raises(CalculationError):
            compute_next_run_date(FRIDAY, "daily", 1, options)


class TestTimezones:
    """Interpretation of the current run instant."""

    def test_aware_datetime_uses_local_calendar(self):
        late_evening_utc = datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc)
        options = RecurrenceOptions(timezone="Asia/Tokyo")
        # Already the 16th in Tokyo
        assert compute_next_run_date(late_evening_utc, "daily", 1, options) == date(2024, 3, 17)

    def test_naive_datetime_is_utc(self):
        assert to_local_date(datetime(2024, 3, 15, 2, 0), "America/New_York") == date(2024, 3, 14)

    def test_plain_date_is_already_local(self):
        assert to_local_date(FRIDAY, "Pacific/Auckland") == FRIDAY

    def test_legacy_abbreviation(self):
        options = RecurrenceOptions(timezone="PST")
        assert compute_next_run_date(FRIDAY, "daily", 1, options) == date(2024, 3, 16)


class TestValidation:
    """Invalid schedules raise CalculationError."""

    @pytest.mark.parametrize("interval", [0, -1])
    def test_non_positive_interval(self, interval):
        with pytest.raises(CalculationError) as exc_info:
            compute_next_run_date(FRIDAY, "daily", interval)
        assert exc_info.value.field == "interval"
        assert exc_info.value.code == ErrorCode.INVALID_SCHEDULE

    def test_unknown_frequency(self):
        with pytest.raises(CalculationError):
            compute_next_run_date(FRIDAY, "hourly", 1)

    @pytest.mark.parametrize("day_of_week", [-1, 7])
    def test_day_of_week_out_of_range(self, day_of_week):
        with pytest.raises(CalculationError):
            compute_next_run_date(FRIDAY, "weekly", 1, RecurrenceOptions(day_of_week=day_of_week))

    @pytest.mark.parametrize("day_of_month", [0, 32])
    def test_day_of_month_out_of_range(self, day_of_month):
        with pytest.raises(CalculationError):
            compute_next_run_date(FRIDAY, "monthly", 1, RecurrenceOptions(day_of_month=day_of_month))

    def test_unknown_timezone(self):
        with pytest.raises(CalculationError) as exc_info:
            compute_next_run_date(FRIDAY, "daily", 1, RecurrenceOptions(timezone="Mars/Olympus_Mons"))
        assert exc_info.value.field == "timezone"


class TestDueDate:
    def test_default_payment_terms(self):
        assert calculate_due_date(FRIDAY, None) == date(2024, 4, 14)

    def test_explicit_payment_terms(self):
        assert calculate_due_date(FRIDAY, 15) == date(2024, 3, 30)
