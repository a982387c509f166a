"""
Recurring Billing Scheduler - Admin Scheduler Router

Manual triggers for the daily and weekly billing jobs. Runs the same
orchestrator as the Celery beat tasks and returns its run report.
"""

import logging
import secrets
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from billing_scheduler.config import settings
from billing_scheduler.database import async_session_factory
from billing_scheduler.schemas.scheduler import RunReport
from billing_scheduler.tasks.scheduled_tasks import TenantBatchOrchestrator
from billing_scheduler.utils.error_handling import ForbiddenException

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/scheduler",
    tags=["Admin - Scheduler"],
)


def get_orchestrator() -> TenantBatchOrchestrator:
    return TenantBatchOrchestrator(async_session_factory)


async def require_admin_token(x_admin_token: Optional[str] = Header(None)) -> None:
    """Check X-Admin-Token when an admin trigger token is configured."""
    expected = settings.admin_trigger_token
    if not expected:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise ForbiddenException("Invalid or missing admin token")


@router.post("/daily-run", response_model=RunReport, dependencies=[Depends(require_admin_token)])
async def trigger_daily_run(
    as_of: Optional[datetime] = Query(None, description="Reference time for the run (defaults to now)"),
    orchestrator: TenantBatchOrchestrator = Depends(get_orchestrator),
):
    """
    Run the daily job sequence for every active tenant.

    Payment reminders, recurring invoice generation, notification cleanup
    and overdue reconciliation.
    """
    logger.info(f"Manual daily run requested (as_of={as_of})")
    return await orchestrator.run_daily_jobs(now=as_of)


@router.post("/weekly-run", response_model=RunReport, dependencies=[Depends(require_admin_token)])
async def trigger_weekly_run(
    as_of: Optional[datetime] = Query(None, description="Reference time for the run (defaults to now)"),
    orchestrator: TenantBatchOrchestrator = Depends(get_orchestrator),
):
    """Run the weekly report and archival sequence for every active tenant."""
    logger.info(f"Manual weekly run requested (as_of={as_of})")
    return await orchestrator.run_weekly_jobs(now=as_of)
