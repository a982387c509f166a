"""
Recurring Billing Scheduler - Scheduler Schemas

Pydantic models for per-item outcomes collected into a run report.
Failures are values here, not exceptions: every template and tenant ends up
with exactly one result entry.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field


class SkipDecision(BaseModel):
    """Answer of a skip evaluator for one template."""
    should_skip: bool = False
    reason: str = ""


class TemplateOutcome(str, Enum):
    """What happened to a due recurring template during a scan."""
    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"


class TemplateResult(BaseModel):
    """Result of processing one due template."""
    template_id: UUID
    outcome: TemplateOutcome
    invoice_id: Optional[UUID] = None
    invoice_number: Optional[str] = None
    next_run_date: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class ScanResult(BaseModel):
    """Result of one tenant's recurring invoice scan."""
    tenant_id: UUID
    results: List[TemplateResult] = Field(default_factory=list)

    @computed_field
    @property
    def processed(self) -> int:
        return len(self.results)

    @computed_field
    @property
    def generated(self) -> int:
        return sum(1 for r in self.results if r.outcome == TemplateOutcome.GENERATED)

    @computed_field
    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.outcome == TemplateOutcome.SKIPPED)

    @property
    def failures(self) -> List[TemplateResult]:
        return [r for r in self.results if r.outcome == TemplateOutcome.FAILED]


class TenantJobStatus(str, Enum):
    """Outcome of a tenant's job sequence."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DEFERRED = "deferred"  # Not reached before the run deadline / cancellation


class TenantJobResult(BaseModel):
    """
    Result of the daily or weekly job sequence for one tenant.

    A failed step is recorded in failed_steps and errors (keyed by step name);
    the tenant is FAILED when any step failed.
    """
    tenant_id: UUID
    status: TenantJobStatus = TenantJobStatus.SUCCEEDED
    failed_steps: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)

    # Daily steps
    reminders_sent: Optional[int] = None
    scan: Optional[ScanResult] = None
    notifications_deleted: Optional[int] = None
    invoices_marked_overdue: Optional[int] = None

    # Weekly steps
    weekly_report_id: Optional[UUID] = None
    invoices_archived: Optional[int] = None


class JobKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class RunReport(BaseModel):
    """Summary of one orchestrator run across all active tenants."""
    run_id: UUID = Field(default_factory=uuid4)
    job: JobKind
    started_at: datetime
    finished_at: Optional[datetime] = None
    tenants: List[TenantJobResult] = Field(default_factory=list)

    @computed_field
    @property
    def tenants_succeeded(self) -> int:
        return sum(1 for t in self.tenants if t.status == TenantJobStatus.SUCCEEDED)

    @computed_field
    @property
    def tenants_failed(self) -> int:
        return sum(1 for t in self.tenants if t.status == TenantJobStatus.FAILED)

    @computed_field
    @property
    def tenants_deferred(self) -> int:
        return sum(1 for t in self.tenants if t.status == TenantJobStatus.DEFERRED)

    @computed_field
    @property
    def invoices_generated(self) -> int:
        return sum(t.scan.generated for t in self.tenants if t.scan is not None)

    @computed_field
    @property
    def template_failures(self) -> int:
        return sum(len(t.scan.failures) for t in self.tenants if t.scan is not None)
