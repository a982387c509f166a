"""
Recurring Billing Scheduler - Celery Tasks

Beat-triggered entry points for the tenant job sequences.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from billing_scheduler.database import async_session_factory
from billing_scheduler.tasks.scheduled_tasks import TenantBatchOrchestrator

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def build_orchestrator() -> TenantBatchOrchestrator:
    return TenantBatchOrchestrator(async_session_factory)


@shared_task(name='billing_scheduler.tasks.celery_tasks.run_daily_jobs_task')
def run_daily_jobs_task() -> Dict[str, Any]:
    """Daily billing jobs: reminders, recurring invoices, cleanup, overdue status."""
    return run_async(_run_daily_jobs())


async def _run_daily_jobs() -> Dict[str, Any]:
    report = await build_orchestrator().run_daily_jobs()
    logger.info(
        f"Daily jobs finished: {report.tenants_succeeded} tenants succeeded, "
        f"{report.tenants_failed} failed, {report.invoices_generated} invoices generated"
    )
    return report.model_dump(mode="json")


@shared_task(name='billing_scheduler.tasks.celery_tasks.run_weekly_jobs_task')
def run_weekly_jobs_task() -> Dict[str, Any]:
    """Weekly billing jobs: weekly report and paid invoice archival."""
    return run_async(_run_weekly_jobs())


async def _run_weekly_jobs() -> Dict[str, Any]:
    report = await build_orchestrator().run_weekly_jobs()
    logger.info(
        f"Weekly jobs finished: {report.tenants_succeeded} tenants succeeded, "
        f"{report.tenants_failed} failed"
    )
    return report.model_dump(mode="json")
