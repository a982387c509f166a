"""
Recurring Billing Scheduler - Notification Service

Customer-facing notifications sent by the scheduler:
- delivery of auto-sent recurring invoices (NotificationDispatcher)
- overdue and due-soon payment reminders (NotificationService)

Delivery is always best-effort: a failed email never undoes an invoice or
a reminder record.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from billing_scheduler.config import settings
from billing_scheduler.models.invoice import (
    OPEN_INVOICE_STATUSES,
    ActivityType,
    Invoice,
    InvoiceActivity,
)
from billing_scheduler.models.notification import Notification, NotificationType
from billing_scheduler.models.recurring_invoice import RecurringInvoiceTemplate
from billing_scheduler.services.email_service import EmailService
from billing_scheduler.utils.clock import scheduler_today
from billing_scheduler.utils.error_handling import NotificationDeliveryError

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """Delivers a freshly generated recurring invoice to its customer."""

    async def send_recurring_invoice(
        self,
        invoice: Invoice,
        template: RecurringInvoiceTemplate,
    ) -> None:
        """Raise NotificationDeliveryError when the invoice could not be delivered."""
        ...


class RecurringInvoiceEmailDispatcher:
    """NotificationDispatcher that emails the invoice to the template's customer."""

    def __init__(self, email_service: Optional[EmailService] = None):
        self.email_service = email_service or EmailService()

    async def send_recurring_invoice(
        self,
        invoice: Invoice,
        template: RecurringInvoiceTemplate,
    ) -> None:
        customer = template.customer
        company = template.company

        if customer is None or not customer.email:
            raise NotificationDeliveryError(
                f"Invoice {invoice.invoice_number}: customer has no email address"
            )

        sent = await self.email_service.send_invoice_email(
            to_email=customer.email,
            customer_name=customer.name,
            company_name=company.name,
            invoice_number=invoice.invoice_number,
            amount=f"{invoice.total_amount:.2f}",
            currency=invoice.currency,
            due_date=invoice.due_date.isoformat(),
            reply_to=company.email,
        )
        if not sent:
            raise NotificationDeliveryError(
                f"Invoice {invoice.invoice_number}: email to {customer.email} was not accepted"
            )


class NotificationService:
    """Service for tenant notifications backed by the notifications table."""

    def __init__(self, db: AsyncSession, email_service: Optional[EmailService] = None):
        self.db = db
        self.email_service = email_service or EmailService()

    async def create_notification(
        self,
        tenant_id: uuid.UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        invoice_id: Optional[uuid.UUID] = None,
        recipient_email: Optional[str] = None,
        email_sent: bool = False,
    ) -> Notification:
        """Add a notification to the session (caller commits)."""
        notification = Notification(
            tenant_id=tenant_id,
            invoice_id=invoice_id,
            notification_type=notification_type,
            title=title,
            message=message,
            recipient_email=recipient_email,
            email_sent=email_sent,
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def _open_invoices(self, tenant_id: uuid.UUID, *conditions) -> List[Invoice]:
        result = await self.db.execute(
            select(Invoice)
            .options(selectinload(Invoice.customer), selectinload(Invoice.company))
            .where(
                Invoice.tenant_id == tenant_id,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
                *conditions,
            )
            .order_by(Invoice.due_date, Invoice.invoice_number)
        )
        return list(result.scalars().all())

    async def send_payment_reminders(
        self,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Send overdue and due-soon reminders for a tenant's open invoices.

        Args:
            tenant_id: Tenant to process
            now: Reference instant (defaults to the current time)

        Returns:
            Number of reminders recorded
        """
        today = scheduler_today(now)
        due_soon_until = today + timedelta(days=settings.payment_reminder_due_soon_days)

        overdue = await self._open_invoices(tenant_id, Invoice.due_date < today)
        due_soon = await self._open_invoices(
            tenant_id,
            Invoice.due_date >= today,
            Invoice.due_date <= due_soon_until,
        )

        sent = 0
        for invoice in overdue:
            if await self._send_payment_reminder(invoice, overdue=True):
                sent += 1
        for invoice in due_soon:
            if await self._send_payment_reminder(invoice, overdue=False):
                sent += 1

        await self.db.commit()

        logger.info(
            f"Tenant {tenant_id}: payment reminders for {len(overdue)} overdue "
            f"and {len(due_soon)} due soon invoices ({sent} recorded)"
        )
        return sent

    async def _send_payment_reminder(self, invoice: Invoice, overdue: bool) -> bool:
        customer = invoice.customer
        if customer is None or not customer.email:
            logger.info(f"Skipping reminder for invoice {invoice.invoice_number} - no customer email")
            return False

        reminder = "overdue" if overdue else "due_soon"
        if overdue:
            notification_type = NotificationType.PAYMENT_OVERDUE
            title = f"Invoice {invoice.invoice_number} is overdue"
        else:
            notification_type = NotificationType.PAYMENT_DUE_SOON
            title = f"Invoice {invoice.invoice_number} is due soon"

        email_sent = await self.email_service.send_payment_reminder_email(
            to_email=customer.email,
            customer_name=customer.name,
            company_name=invoice.company.name,
            invoice_number=invoice.invoice_number,
            amount=f"{invoice.balance_due:.2f}",
            currency=invoice.currency,
            due_date=invoice.due_date.isoformat(),
            overdue=overdue,
            reply_to=invoice.company.email,
        )
        if not email_sent:
            logger.error(
                f"Payment reminder email for invoice {invoice.invoice_number} "
                f"(tenant {invoice.tenant_id}) was not delivered"
            )

        await self.create_notification(
            tenant_id=invoice.tenant_id,
            notification_type=notification_type,
            title=title,
            message=(
                f"Balance of {invoice.currency} {invoice.balance_due:.2f} "
                f"due on {invoice.due_date.isoformat()}"
            ),
            invoice_id=invoice.id,
            recipient_email=customer.email,
            email_sent=email_sent,
        )
        self.db.add(InvoiceActivity(
            tenant_id=invoice.tenant_id,
            invoice_id=invoice.id,
            activity_type=ActivityType.PAYMENT_REMINDER_SENT,
            description=f"Payment reminder sent ({reminder})",
            details={"type": reminder, "email_sent": email_sent},
        ))
        return True
