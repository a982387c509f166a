"""
Scheduler clock helpers.

Jobs receive an explicit `now` so runs are reproducible; "today" for due
checks is that instant on the scheduler's calendar.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from billing_scheduler.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def scheduler_today(now: Optional[datetime] = None) -> date:
    """Calendar date of `now` (default: current time) in settings.scheduler_timezone."""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(settings.scheduler_timezone)).date()
