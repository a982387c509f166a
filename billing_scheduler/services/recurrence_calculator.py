"""
Recurring Billing Scheduler - Next Run Date Calculator

Pure calendar arithmetic for recurring invoice templates. No database access,
no clock: the same inputs always produce the same date.

Algorithm:
1. Advance the current run date by `interval` periods of `frequency`, on the
   template's local calendar.
2. Weekly cadences pinned to a weekday snap forward to that weekday.
3. Monthly cadences pinned to a day of month snap to that day, clamped to the
   last day of shorter months.
4. business_days_only rolls Saturday/Sunday forward to Monday.
5. skip_holidays rolls forward past the tenant's holidays until a valid day.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from billing_scheduler.config import settings
from billing_scheduler.models.recurring_invoice import RecurrenceFrequency, RecurringInvoiceTemplate
from billing_scheduler.services.holiday_calendar import EMPTY_CALENDAR, HolidayCalendar
from billing_scheduler.utils.error_handling import CalculationError


# Python weekday() numbers for Saturday and Sunday
WEEKEND_DAYS = (5, 6)

# Upper bound on forward rolling; a calendar that blocks a whole year is invalid
MAX_ROLL_DAYS = 366

WEEKLY_FREQUENCIES = (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY)
MONTHLY_FREQUENCIES = (
    RecurrenceFrequency.MONTHLY,
    RecurrenceFrequency.QUARTERLY,
    RecurrenceFrequency.ANNUALLY,
)

FREQUENCY_ALIASES = {
    "yearly": RecurrenceFrequency.ANNUALLY,
    "fortnightly": RecurrenceFrequency.BIWEEKLY,
}

# Abbreviations stored by older template rows that are not IANA zone names
TIMEZONE_ALIASES = {
    "PST": "America/Los_Angeles",
    "JST": "Asia/Tokyo",
    "IST": "Asia/Kolkata",
    "AEST": "Australia/Sydney",
}


@dataclass(frozen=True)
class RecurrenceOptions:
    """Pinning and calendar options for a recurring schedule."""

    day_of_week: Optional[int] = None  # 0=Sunday .. 6=Saturday
    day_of_month: Optional[int] = None  # 1..31
    business_days_only: bool = False
    skip_holidays: bool = False
    timezone: str = "UTC"
    holidays: HolidayCalendar = field(default=EMPTY_CALENDAR)

    @classmethod
    def from_template(
        cls,
        template: RecurringInvoiceTemplate,
        holidays: HolidayCalendar = EMPTY_CALENDAR,
    ) -> "RecurrenceOptions":
        return cls(
            day_of_week=template.day_of_week,
            day_of_month=template.day_of_month,
            business_days_only=template.business_days_only,
            skip_holidays=template.skip_holidays,
            timezone=template.timezone or "UTC",
            holidays=holidays,
        )


def parse_frequency(value: Union[str, RecurrenceFrequency]) -> RecurrenceFrequency:
    """Coerce a stored frequency value to RecurrenceFrequency."""
    if isinstance(value, RecurrenceFrequency):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in FREQUENCY_ALIASES:
            return FREQUENCY_ALIASES[key]
        try:
            return RecurrenceFrequency(key)
        except ValueError:
            pass
    raise CalculationError(f"Unsupported frequency: {value!r}", field="frequency")


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    name = (name or "UTC").strip()
    try:
        return ZoneInfo(TIMEZONE_ALIASES.get(name, name))
    except (ZoneInfoNotFoundError, ValueError):
        raise CalculationError(f"Unknown timezone: {name!r}", field="timezone")


def to_local_date(current: Union[date, datetime], tz_name: Optional[str] = "UTC") -> date:
    """
    Calendar date of `current` in the given timezone.

    Naive datetimes are taken as UTC. Plain dates are already local.
    """
    tz = resolve_timezone(tz_name)
    if isinstance(current, datetime):
        if current.tzinfo is None:
            current = current.replace(tzinfo=dt_timezone.utc)
        return current.astimezone(tz).date()
    return current


def _validate(interval: int, options: RecurrenceOptions) -> None:
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise CalculationError(
            f"Interval must be a positive integer, got {interval!r}",
            field="interval",
        )
    if options.day_of_week is not None and not 0 <= options.day_of_week <= 6:
        raise CalculationError(
            f"day_of_week must be between 0 (Sunday) and 6 (Saturday), got {options.day_of_week}",
            field="day_of_week",
        )
    if options.day_of_month is not None and not 1 <= options.day_of_month <= 31:
        raise CalculationError(
            f"day_of_month must be between 1 and 31, got {options.day_of_month}",
            field="day_of_month",
        )


def advance(start: date, frequency: RecurrenceFrequency, interval: int) -> date:
    """Move `start` forward by `interval` whole periods."""
    if frequency == RecurrenceFrequency.DAILY:
        return start + timedelta(days=interval)
    if frequency == RecurrenceFrequency.WEEKLY:
        return start + timedelta(weeks=interval)
    if frequency == RecurrenceFrequency.BIWEEKLY:
        return start + timedelta(weeks=2 * interval)
    if frequency == RecurrenceFrequency.MONTHLY:
        return start + relativedelta(months=interval)
    if frequency == RecurrenceFrequency.QUARTERLY:
        return start + relativedelta(months=3 * interval)
    if frequency == RecurrenceFrequency.ANNUALLY:
        return start + relativedelta(years=interval)
    raise CalculationError(f"Unsupported frequency: {frequency!r}", field="frequency")


def snap_to_weekday(day: date, day_of_week: int) -> date:
    """Next occurrence (on or after `day`) of a 0=Sunday based weekday."""
    target = (day_of_week - 1) % 7
    return day + timedelta(days=(target - day.weekday()) % 7)


def snap_to_day_of_month(day: date, day_of_month: int) -> date:
    """Same month as `day`, on `day_of_month` or the month's last day."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=min(day_of_month, last_day))


def is_business_day(day: date) -> bool:
    return day.weekday() not in WEEKEND_DAYS


def roll_forward(day: date, options: RecurrenceOptions) -> date:
    """Roll past weekends and/or holidays, never backward."""
    for _ in range(MAX_ROLL_DAYS):
        if options.business_days_only and not is_business_day(day):
            day += timedelta(days=1)
            continue
        if options.skip_holidays and options.holidays.is_holiday(day):
            day += timedelta(days=1)
            continue
        return day
    raise CalculationError(
        f"No schedulable day within {MAX_ROLL_DAYS} days of {day.isoformat()}",
        details={"business_days_only": options.business_days_only, "skip_holidays": options.skip_holidays},
    )


def compute_next_run_date(
    current: Union[date, datetime],
    frequency: Union[str, RecurrenceFrequency],
    interval: int = 1,
    options: Optional[RecurrenceOptions] = None,
) -> date:
    """
    Compute the next run date of a recurring schedule.

    Args:
        current: The run date being advanced (the template's next_run_date)
        frequency: Period unit
        interval: Number of periods per run (>= 1)
        options: Pinning and calendar options

    Returns:
        A local calendar date strictly after `current`

    Raises:
        CalculationError: invalid frequency, interval, pin or timezone
    """
    options = options or RecurrenceOptions()
    frequency = parse_frequency(frequency)
    _validate(interval, options)

    start = to_local_date(current, options.timezone)
    next_date = advance(start, frequency, interval)

    # Pins only apply to the cadences they make sense for
    if options.day_of_week is not None and frequency in WEEKLY_FREQUENCIES:
        next_date = snap_to_weekday(next_date, options.day_of_week)
    if options.day_of_month is not None and frequency in MONTHLY_FREQUENCIES:
        next_date = snap_to_day_of_month(next_date, options.day_of_month)

    next_date = roll_forward(next_date, options)

    if next_date <= start:
        raise CalculationError(
            f"Computed run date {next_date.isoformat()} does not advance past {start.isoformat()}"
        )
    return next_date


def calculate_due_date(issue_date: date, payment_terms: Optional[int]) -> date:
    """Due date for an invoice issued on `issue_date`."""
    if payment_terms is None:
        payment_terms = settings.default_payment_terms_days
    return issue_date + timedelta(days=payment_terms)
