"""
Recurring Billing Scheduler - Recurring Invoice Scanner

Finds a tenant's due recurring templates and processes each one in
isolation: skip, generate, or record the failure and move on.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from billing_scheduler.models.recurring_invoice import RecurringInvoiceTemplate
from billing_scheduler.schemas.scheduler import ScanResult, TemplateOutcome, TemplateResult
from billing_scheduler.services.holiday_calendar import HolidayCalendar, load_tenant_holiday_calendar
from billing_scheduler.services.invoice_generator import InvoiceGenerator
from billing_scheduler.services.notification_service import NotificationDispatcher
from billing_scheduler.services.skip_evaluator import ConditionalSkipEvaluator, SkipEvaluator
from billing_scheduler.utils.clock import scheduler_today
from billing_scheduler.utils.error_handling import describe_error

logger = logging.getLogger(__name__)


class RecurringInvoiceScanner:
    """Scans one tenant's due recurring templates."""

    def __init__(
        self,
        db: AsyncSession,
        skip_evaluator: Optional[SkipEvaluator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.skip_evaluator = skip_evaluator or ConditionalSkipEvaluator()
        self.generator = InvoiceGenerator(db, dispatcher)

    async def due_template_ids(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> List[uuid.UUID]:
        """Ids of active templates whose next_run_date is today or earlier."""
        today = scheduler_today(now)
        result = await self.db.execute(
            select(RecurringInvoiceTemplate.id)
            .where(
                RecurringInvoiceTemplate.tenant_id == tenant_id,
                RecurringInvoiceTemplate.is_active.is_(True),
                RecurringInvoiceTemplate.next_run_date <= today,
            )
            .order_by(RecurringInvoiceTemplate.next_run_date, RecurringInvoiceTemplate.id)
        )
        return list(result.scalars().all())

    async def _load_template(
        self,
        tenant_id: uuid.UUID,
        template_id: uuid.UUID,
    ) -> Optional[RecurringInvoiceTemplate]:
        result = await self.db.execute(
            select(RecurringInvoiceTemplate)
            .options(
                selectinload(RecurringInvoiceTemplate.lines),
                selectinload(RecurringInvoiceTemplate.customer),
                selectinload(RecurringInvoiceTemplate.company),
            )
            .where(
                RecurringInvoiceTemplate.id == template_id,
                RecurringInvoiceTemplate.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def scan(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> ScanResult:
        """
        Process every due template of a tenant.

        Failures of one template never stop the others; each ends up as one
        TemplateResult in the returned ScanResult.
        """
        scan_result = ScanResult(tenant_id=tenant_id)

        template_ids = await self.due_template_ids(tenant_id, now)
        if not template_ids:
            logger.debug(f"Tenant {tenant_id}: no recurring templates due")
            return scan_result

        holidays = await load_tenant_holiday_calendar(self.db, tenant_id)

        logger.info(f"Tenant {tenant_id}: processing {len(template_ids)} due recurring templates")

        for template_id in template_ids:
            scan_result.results.append(
                await self._process_template(tenant_id, template_id, now, holidays)
            )

        logger.info(
            f"Tenant {tenant_id}: recurring scan finished - {scan_result.generated} generated, "
            f"{scan_result.skipped} skipped, {len(scan_result.failures)} failed"
        )
        return scan_result

    async def _process_template(
        self,
        tenant_id: uuid.UUID,
        template_id: uuid.UUID,
        now: Optional[datetime],
        holidays: HolidayCalendar,
    ) -> TemplateResult:
        try:
            template = await self._load_template(tenant_id, template_id)
            if template is None or not template.is_active:
                return TemplateResult(
                    template_id=template_id,
                    outcome=TemplateOutcome.SKIPPED,
                    reason="Template is no longer active",
                )

            decision = await self.skip_evaluator.evaluate(template, template.customer)
            if decision.should_skip:
                logger.info(f"Skipping recurring invoice {template.name} ({template_id}): {decision.reason}")
                return TemplateResult(
                    template_id=template_id,
                    outcome=TemplateOutcome.SKIPPED,
                    next_run_date=template.next_run_date.isoformat(),
                    reason=decision.reason,
                )

            invoice = await self.generator.generate(template, now=now, holidays=holidays)
            return TemplateResult(
                template_id=template_id,
                outcome=TemplateOutcome.GENERATED,
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                next_run_date=template.next_run_date.isoformat(),
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Failed to process recurring invoice template {template_id} "
                f"(tenant {tenant_id}): {describe_error(e)}",
                exc_info=True,
            )
            return TemplateResult(
                template_id=template_id,
                outcome=TemplateOutcome.FAILED,
                error=describe_error(e),
            )
