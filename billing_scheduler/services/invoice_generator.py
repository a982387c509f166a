"""
Recurring Billing Scheduler - Invoice Generator

Turns one due recurring template into one draft invoice.

The invoice, its line items, its activity entry and the template's schedule
advance are committed together or not at all. The schedule advance is a
conditional UPDATE on the next_run_date read at scan time, so two overlapping
runs can never both generate from the same due date.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_scheduler.models.invoice import (
    ActivityType,
    Invoice,
    InvoiceActivity,
    InvoiceLineItem,
    InvoiceStatus,
)
from billing_scheduler.models.recurring_invoice import RecurringInvoiceTemplate
from billing_scheduler.services.holiday_calendar import EMPTY_CALENDAR, HolidayCalendar
from billing_scheduler.services.notification_service import NotificationDispatcher
from billing_scheduler.services.recurrence_calculator import (
    RecurrenceOptions,
    calculate_due_date,
    compute_next_run_date,
)
from billing_scheduler.utils.clock import scheduler_today
from billing_scheduler.utils.error_handling import (
    ScheduleConflictError,
    TemplateGenerationError,
    describe_error,
)

logger = logging.getLogger(__name__)

# Template columns rewritten by the conditional schedule update
SCHEDULE_COLUMNS = ["next_run_date", "last_run_date", "invoices_generated", "is_active", "updated_at"]


class InvoiceGenerator:
    """Generates invoices from recurring templates."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.dispatcher = dispatcher

    async def next_invoice_number(self, tenant_id: uuid.UUID, today: date) -> str:
        """INV-{YYYY}{MM}-{seq}, seq being the tenant's invoice count plus one."""
        result = await self.db.execute(
            select(func.count(Invoice.id)).where(Invoice.tenant_id == tenant_id)
        )
        count = result.scalar() or 0
        return f"INV-{today.year}{today.month:02d}-{count + 1:04d}"

    async def _advance_schedule(
        self,
        template: RecurringInvoiceTemplate,
        expected_next_run: date,
        next_run: date,
        today: date,
    ) -> None:
        """Move the template forward, only if nobody else already did."""
        deactivate = template.end_date is not None and next_run > template.end_date

        result = await self.db.execute(
            update(RecurringInvoiceTemplate)
            .where(
                RecurringInvoiceTemplate.id == template.id,
                RecurringInvoiceTemplate.tenant_id == template.tenant_id,
                RecurringInvoiceTemplate.next_run_date == expected_next_run,
                RecurringInvoiceTemplate.is_active.is_(True),
            )
            .values(
                next_run_date=next_run,
                last_run_date=today,
                invoices_generated=RecurringInvoiceTemplate.invoices_generated + 1,
                is_active=not deactivate,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ScheduleConflictError(template.id, expected_next_run)

        if deactivate:
            logger.info(
                f"Recurring template {template.id} reached its end date "
                f"{template.end_date.isoformat()} and was deactivated"
            )

    def _build_invoice(
        self,
        template: RecurringInvoiceTemplate,
        invoice_number: str,
        today: date,
    ) -> Invoice:
        invoice = Invoice(
            id=uuid.uuid4(),
            tenant_id=template.tenant_id,
            company_id=template.company_id,
            customer_id=template.customer_id,
            recurring_template_id=template.id,
            invoice_number=invoice_number,
            issue_date=today,
            due_date=calculate_due_date(today, template.payment_terms),
            status=InvoiceStatus.DRAFT,
            subtotal=template.subtotal,
            tax_total=template.tax_total,
            total_amount=template.total_amount,
            amount_paid=Decimal("0.00"),
            balance_due=template.total_amount,
            currency=template.currency,
            notes=template.notes,
            terms=template.terms,
        )
        invoice.line_items = [
            InvoiceLineItem(
                tenant_id=template.tenant_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
                tax_rate=line.tax_rate,
                sort_order=line.sort_order,
            )
            for line in template.lines
        ]
        return invoice

    async def generate(
        self,
        template: RecurringInvoiceTemplate,
        now: Optional[datetime] = None,
        holidays: HolidayCalendar = EMPTY_CALENDAR,
    ) -> Invoice:
        """
        Generate the invoice for a due template and advance its schedule.

        The template must have its lines, customer and company loaded.

        Args:
            template: Due template, as read by the scan
            now: Reference instant (defaults to the current time)
            holidays: Tenant calendar used when the template skips holidays

        Returns:
            The committed invoice

        Raises:
            CalculationError: The schedule cannot produce a next run date
            ScheduleConflictError: Another run already advanced the template
            TemplateGenerationError: The invoice could not be written
        """
        today = scheduler_today(now)
        template_id = template.id
        expected_next_run = template.next_run_date

        next_run = compute_next_run_date(
            expected_next_run,
            template.frequency,
            template.interval,
            RecurrenceOptions.from_template(template, holidays),
        )

        try:
            await self._advance_schedule(template, expected_next_run, next_run, today)

            invoice_number = await self.next_invoice_number(template.tenant_id, today)
            invoice = self._build_invoice(template, invoice_number, today)
            self.db.add(invoice)

            self.db.add(InvoiceActivity(
                tenant_id=template.tenant_id,
                invoice_id=invoice.id,
                activity_type=ActivityType.RECURRING_INVOICE_GENERATED,
                description=f"Generated from recurring template: {template.name}",
                details={"recurring_template_id": str(template.id)},
            ))

            await self.db.commit()
        except ScheduleConflictError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise TemplateGenerationError(template_id, "could not persist the generated invoice", e) from e
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(template, attribute_names=SCHEDULE_COLUMNS)

        logger.info(
            f"Generated recurring invoice {invoice.invoice_number} from template "
            f"{template.name} ({template.id}); next run {template.next_run_date.isoformat()}"
        )

        if template.auto_send and self.dispatcher is not None:
            await self._dispatch(invoice, template)

        return invoice

    async def _dispatch(self, invoice: Invoice, template: RecurringInvoiceTemplate) -> None:
        """Deliver the invoice; delivery failures are logged and swallowed."""
        try:
            await self.dispatcher.send_recurring_invoice(invoice, template)
        except Exception as e:
            logger.error(
                f"Failed to send email for invoice {invoice.invoice_number} "
                f"(tenant {template.tenant_id}, template {template.id}): {describe_error(e)}"
            )
            return

        self.db.add(InvoiceActivity(
            tenant_id=invoice.tenant_id,
            invoice_id=invoice.id,
            activity_type=ActivityType.RECURRING_INVOICE_EMAILED,
            description="Recurring invoice emailed to customer",
            details={"recurring_template_id": str(template.id)},
        ))
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self.db.refresh(invoice)
            await self.db.refresh(template, attribute_names=SCHEDULE_COLUMNS)
            logger.error(f"Could not record email activity for invoice {invoice.invoice_number}: {e}")
            return
        logger.info(f"Email sent for generated invoice {invoice.invoice_number}")
