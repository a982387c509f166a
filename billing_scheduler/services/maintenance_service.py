"""
Recurring Billing Scheduler - Maintenance Service

Bulk housekeeping run by the tenant job sequences:
- StatusReconciler: open invoices past their due date become overdue
- RetentionSweeper: old notifications are purged
- ArchivalSweeper: old paid invoices are flagged as archived

Every operation is a single set-based statement, scoped to one tenant and
safe to repeat.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from billing_scheduler.config import settings
from billing_scheduler.models.invoice import OPEN_INVOICE_STATUSES, Invoice, InvoiceStatus
from billing_scheduler.models.notification import Notification
from billing_scheduler.utils.clock import scheduler_today, utc_now

logger = logging.getLogger(__name__)


class StatusReconciler:
    """Moves unpaid invoices past their due date to overdue."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def mark_overdue(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> int:
        today = scheduler_today(now)

        result = await self.db.execute(
            update(Invoice)
            .where(
                Invoice.tenant_id == tenant_id,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
                Invoice.due_date < today,
            )
            .values(status=InvoiceStatus.OVERDUE)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount:
            logger.info(f"Tenant {tenant_id}: marked {result.rowcount} invoices as overdue")
        return result.rowcount


class RetentionSweeper:
    """Deletes notifications older than the retention window."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def purge_old_notifications(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> int:
        cutoff = (now or utc_now()) - timedelta(days=settings.notification_retention_days)

        result = await self.db.execute(
            delete(Notification)
            .where(
                Notification.tenant_id == tenant_id,
                Notification.created_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        logger.info(f"Tenant {tenant_id}: cleaned up {result.rowcount} old notifications")
        return result.rowcount


class ArchivalSweeper:
    """Flags paid invoices older than the archive window."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def archive_paid_invoices(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> int:
        cutoff = (now or utc_now()) - relativedelta(months=settings.archive_after_months)

        result = await self.db.execute(
            update(Invoice)
            .where(
                Invoice.tenant_id == tenant_id,
                Invoice.status == InvoiceStatus.PAID,
                Invoice.created_at < cutoff,
                Invoice.is_archived.is_(False),
            )
            .values(is_archived=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        logger.info(f"Tenant {tenant_id}: archived {result.rowcount} old paid invoices")
        return result.rowcount
