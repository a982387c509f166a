"""
Recurring Billing Scheduler - Holiday Calendar

Tenant business calendars used when a recurring template skips holidays.
Tenants without configured holidays fall back to settings.default_holidays.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Iterable, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_scheduler.config import settings
from billing_scheduler.models.tenant import TenantHoliday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HolidayCalendar:
    """Set of one-off holiday dates plus (month, day) pairs that recur every year."""

    dates: FrozenSet[date] = field(default_factory=frozenset)
    annual: FrozenSet[Tuple[int, int]] = field(default_factory=frozenset)

    def is_holiday(self, day: date) -> bool:
        return day in self.dates or (day.month, day.day) in self.annual

    def __bool__(self) -> bool:
        return bool(self.dates or self.annual)

    @classmethod
    def from_month_days(cls, month_days: Iterable[str]) -> "HolidayCalendar":
        """Build an annual calendar from "MM-DD" strings."""
        annual = set()
        for value in month_days:
            month, day = value.split("-")
            annual.add((int(month), int(day)))
        return cls(annual=frozenset(annual))

    @classmethod
    def from_holidays(cls, holidays: Iterable[TenantHoliday]) -> "HolidayCalendar":
        dates = set()
        annual = set()
        for holiday in holidays:
            if holiday.recurs_annually:
                annual.add((holiday.holiday_date.month, holiday.holiday_date.day))
            else:
                dates.add(holiday.holiday_date)
        return cls(dates=frozenset(dates), annual=frozenset(annual))


EMPTY_CALENDAR = HolidayCalendar()


def default_holiday_calendar() -> HolidayCalendar:
    return HolidayCalendar.from_month_days(settings.default_holidays_list)


async def load_tenant_holiday_calendar(db: AsyncSession, tenant_id: uuid.UUID) -> HolidayCalendar:
    """Load a tenant's holiday calendar, falling back to the configured defaults."""
    result = await db.execute(
        select(TenantHoliday).where(TenantHoliday.tenant_id == tenant_id)
    )
    holidays = result.scalars().all()

    if not holidays:
        logger.debug(f"Tenant {tenant_id} has no holidays configured, using defaults")
        return default_holiday_calendar()

    return HolidayCalendar.from_holidays(holidays)
