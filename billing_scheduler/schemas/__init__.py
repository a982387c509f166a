"""
Recurring Billing Scheduler - Pydantic Schemas Package
"""

from billing_scheduler.schemas.scheduler import (
    SkipDecision,
    TemplateOutcome,
    TemplateResult,
    ScanResult,
    TenantJobStatus,
    TenantJobResult,
    JobKind,
    RunReport,
)

__all__ = [
    "SkipDecision",
    "TemplateOutcome",
    "TemplateResult",
    "ScanResult",
    "TenantJobStatus",
    "TenantJobResult",
    "JobKind",
    "RunReport",
]
