"""
Recurring Billing Scheduler - Scheduled Tasks

Per-tenant job steps and the orchestrator that runs them for every active
tenant. The same code path serves the Celery beat tasks and the admin
trigger endpoints.

Daily sequence (per tenant):
    payment reminders -> recurring invoice scan -> notification retention
    -> overdue reconciliation

Weekly sequence (per tenant):
    weekly report -> paid invoice archival

A failing step is recorded and the tenant's later steps still run, except
after a payment reminder failure, which ends that tenant's sequence. Other
tenants are unaffected.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_scheduler.config import settings
from billing_scheduler.models.report import WeeklyReport
from billing_scheduler.models.tenant import Tenant
from billing_scheduler.schemas.scheduler import (
    JobKind,
    RunReport,
    ScanResult,
    TenantJobResult,
    TenantJobStatus,
)
from billing_scheduler.services.email_service import EmailService
from billing_scheduler.services.maintenance_service import (
    ArchivalSweeper,
    RetentionSweeper,
    StatusReconciler,
)
from billing_scheduler.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    RecurringInvoiceEmailDispatcher,
)
from billing_scheduler.services.recurring_invoice_scanner import RecurringInvoiceScanner
from billing_scheduler.services.skip_evaluator import ConditionalSkipEvaluator, SkipEvaluator
from billing_scheduler.services.weekly_report_service import WeeklyReportAggregator
from billing_scheduler.utils.clock import utc_now
from billing_scheduler.utils.error_handling import TenantJobError, describe_error

logger = logging.getLogger(__name__)


# ===========================================
# DAILY STEPS
# ===========================================

async def send_payment_reminders(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    now: datetime,
    email_service: Optional[EmailService] = None,
) -> int:
    """Overdue and due-soon reminders for the tenant's open invoices."""
    return await NotificationService(db, email_service).send_payment_reminders(tenant_id, now)


async def process_recurring_invoices(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    now: datetime,
    skip_evaluator: Optional[SkipEvaluator] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> ScanResult:
    """Generate invoices for every due recurring template."""
    scanner = RecurringInvoiceScanner(db, skip_evaluator=skip_evaluator, dispatcher=dispatcher)
    return await scanner.scan(tenant_id, now)


async def cleanup_old_notifications(db: AsyncSession, tenant_id: uuid.UUID, now: datetime) -> int:
    return await RetentionSweeper(db).purge_old_notifications(tenant_id, now)


async def update_overdue_invoices(db: AsyncSession, tenant_id: uuid.UUID, now: datetime) -> int:
    return await StatusReconciler(db).mark_overdue(tenant_id, now)


# ===========================================
# WEEKLY STEPS
# ===========================================

async def generate_weekly_report(db: AsyncSession, tenant_id: uuid.UUID, now: datetime) -> WeeklyReport:
    return await WeeklyReportAggregator(db).generate(tenant_id, now)


async def archive_old_invoices(db: AsyncSession, tenant_id: uuid.UUID, now: datetime) -> int:
    return await ArchivalSweeper(db).archive_paid_invoices(tenant_id, now)


TenantSequence = Callable[[AsyncSession, uuid.UUID, datetime, TenantJobResult], Awaitable[None]]


class TenantBatchOrchestrator:
    """
    Runs the daily and weekly job sequences for every active tenant.

    Tenants are processed one after another, each with its own session.
    A run stops starting new tenants once its deadline has passed or its
    cancel event is set; the tenants not reached are reported as deferred.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        skip_evaluator: Optional[SkipEvaluator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        email_service: Optional[EmailService] = None,
        deadline_seconds: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.session_factory = session_factory
        self.email_service = email_service or EmailService()
        self.skip_evaluator = skip_evaluator or ConditionalSkipEvaluator()
        self.dispatcher = dispatcher or RecurringInvoiceEmailDispatcher(self.email_service)
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None else settings.scheduler_run_deadline_seconds
        )
        self.cancel_event = cancel_event

    async def active_tenant_ids(self) -> List[uuid.UUID]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Tenant.id).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at, Tenant.id)
            )
            return list(result.scalars().all())

    async def run_daily_jobs(self, now: Optional[datetime] = None) -> RunReport:
        """Daily maintenance for all active tenants."""
        return await self._run(JobKind.DAILY, self._daily_sequence, now)

    async def run_weekly_jobs(self, now: Optional[datetime] = None) -> RunReport:
        """Weekly reporting and archival for all active tenants."""
        return await self._run(JobKind.WEEKLY, self._weekly_sequence, now)

    def _should_stop(self, deadline: Optional[float]) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return deadline is not None and asyncio.get_running_loop().time() >= deadline

    async def _run(self, job: JobKind, sequence: TenantSequence, now: Optional[datetime]) -> RunReport:
        now = now or utc_now()
        report = RunReport(job=job, started_at=utc_now())

        deadline = None
        if self.deadline_seconds is not None:
            deadline = asyncio.get_running_loop().time() + self.deadline_seconds

        tenant_ids = await self.active_tenant_ids()
        logger.info(f"Starting {job.value} jobs for {len(tenant_ids)} tenants (run {report.run_id})")

        for tenant_id in tenant_ids:
            if self._should_stop(deadline):
                logger.warning(f"Run {report.run_id} stopped before tenant {tenant_id}; deferring")
                report.tenants.append(TenantJobResult(tenant_id=tenant_id, status=TenantJobStatus.DEFERRED))
                continue

            report.tenants.append(await self._run_tenant(tenant_id, sequence, now))

        report.finished_at = utc_now()
        logger.info(
            f"Completed {job.value} jobs (run {report.run_id}): {report.tenants_succeeded} succeeded, "
            f"{report.tenants_failed} failed, {report.tenants_deferred} deferred, "
            f"{report.invoices_generated} invoices generated"
        )
        return report

    async def _run_tenant(self, tenant_id: uuid.UUID, sequence: TenantSequence, now: datetime) -> TenantJobResult:
        result = TenantJobResult(tenant_id=tenant_id)
        try:
            async with self.session_factory() as db:
                try:
                    await sequence(db, tenant_id, now, result)
                except TenantJobError as e:
                    logger.error(f"{e.message}; remaining steps for tenant {tenant_id} skipped")
        except Exception as e:
            # Rollback or session close failed
            logger.error(f"Error processing tenant {tenant_id}: {describe_error(e)}", exc_info=True)
            result.status = TenantJobStatus.FAILED
            result.errors.setdefault("session", describe_error(e))
        return result

    async def _step(
        self,
        db: AsyncSession,
        result: TenantJobResult,
        step: str,
        coro: Awaitable,
        stop_on_failure: bool = False,
    ):
        """
        Run one step of a tenant's sequence.

        A failure is rolled back and recorded on the result. Later steps still
        run unless stop_on_failure is set, in which case TenantJobError is raised.
        """
        try:
            return await coro
        except Exception as e:
            await db.rollback()
            logger.error(
                f"Tenant {result.tenant_id} failed during {step}: {describe_error(e)}",
                exc_info=True,
            )
            result.status = TenantJobStatus.FAILED
            result.failed_steps.append(step)
            result.errors[step] = describe_error(e)
            if stop_on_failure:
                raise TenantJobError(result.tenant_id, step, e) from e
            return None

    async def _daily_sequence(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: datetime,
        result: TenantJobResult,
    ) -> None:
        result.reminders_sent = await self._step(
            db, result, "payment_reminders",
            send_payment_reminders(db, tenant_id, now, self.email_service),
            stop_on_failure=True,
        )
        result.scan = await self._step(
            db, result, "recurring_invoices",
            process_recurring_invoices(db, tenant_id, now, self.skip_evaluator, self.dispatcher),
        )
        result.notifications_deleted = await self._step(
            db, result, "notification_cleanup",
            cleanup_old_notifications(db, tenant_id, now),
        )
        result.invoices_marked_overdue = await self._step(
            db, result, "overdue_reconciliation",
            update_overdue_invoices(db, tenant_id, now),
        )

    async def _weekly_sequence(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: datetime,
        result: TenantJobResult,
    ) -> None:
        weekly_report = await self._step(
            db, result, "weekly_report",
            generate_weekly_report(db, tenant_id, now),
        )
        if weekly_report is not None:
            result.weekly_report_id = weekly_report.id
        result.invoices_archived = await self._step(
            db, result, "invoice_archival",
            archive_old_invoices(db, tenant_id, now),
        )
