"""
Recurring Billing Scheduler - Background Tasks Package

Tenant job sequences and their Celery entry points.
"""

from billing_scheduler.tasks.scheduled_tasks import (
    send_payment_reminders,
    process_recurring_invoices,
    cleanup_old_notifications,
    update_overdue_invoices,
    generate_weekly_report,
    archive_old_invoices,
    TenantBatchOrchestrator,
)

__all__ = [
    "send_payment_reminders",
    "process_recurring_invoices",
    "cleanup_old_notifications",
    "update_overdue_invoices",
    "generate_weekly_report",
    "archive_old_invoices",
    "TenantBatchOrchestrator",
]
