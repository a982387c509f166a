"""
Recurring Billing Scheduler - Weekly Report Service

Aggregates a tenant's invoices created over the trailing week into a
WeeklyReport row.
"""

import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_scheduler.config import settings
from billing_scheduler.models.invoice import Invoice, InvoiceStatus
from billing_scheduler.models.report import WeeklyReport
from billing_scheduler.utils.clock import utc_now

logger = logging.getLogger(__name__)


class WeeklyReportAggregator:
    """Builds weekly invoice summaries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> WeeklyReport:
        """
        Summarise invoices created in the last `settings.weekly_report_days` days.

        Every call persists a new report, even for a window already reported.
        """
        now = now or utc_now()
        period_start = now - timedelta(days=settings.weekly_report_days)

        result = await self.db.execute(
            select(
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.total_amount), 0),
                func.coalesce(func.sum(case((Invoice.status == InvoiceStatus.PAID, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Invoice.status == InvoiceStatus.OVERDUE, 1), else_=0)), 0),
            ).where(
                Invoice.tenant_id == tenant_id,
                Invoice.created_at >= period_start,
            )
        )
        total_invoices, total_amount, paid_count, overdue_count = result.one()

        report = WeeklyReport(
            tenant_id=tenant_id,
            period="week",
            period_start=period_start,
            period_end=now,
            total_invoices=total_invoices,
            total_amount=Decimal(str(total_amount or 0)).quantize(Decimal("0.01")),
            paid_count=int(paid_count or 0),
            overdue_count=int(overdue_count or 0),
            generated_at=now,
        )
        self.db.add(report)
        await self.db.commit()

        logger.info(
            f"Generated weekly report for tenant {tenant_id}: {total_invoices} invoices, "
            f"{report.paid_count} paid, {report.overdue_count} overdue"
        )
        return report
