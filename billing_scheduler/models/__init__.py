"""
Recurring Billing Scheduler - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from billing_scheduler.models.base import BaseModel, TimestampMixin, TenantScopedMixin
from billing_scheduler.models.tenant import Tenant, Company, TenantHoliday
from billing_scheduler.models.customer import Customer, CustomerStatus
from billing_scheduler.models.recurring_invoice import (
    RecurringInvoiceTemplate,
    RecurringInvoiceLine,
    RecurrenceFrequency,
)
from billing_scheduler.models.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoiceActivity,
    InvoiceStatus,
    ActivityType,
    OPEN_INVOICE_STATUSES,
)
from billing_scheduler.models.notification import Notification, NotificationType
from billing_scheduler.models.report import WeeklyReport

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "TenantScopedMixin",
    "Tenant",
    "Company",
    "TenantHoliday",
    "Customer",
    "CustomerStatus",
    "RecurringInvoiceTemplate",
    "RecurringInvoiceLine",
    "RecurrenceFrequency",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceActivity",
    "InvoiceStatus",
    "ActivityType",
    "OPEN_INVOICE_STATUSES",
    "Notification",
    "NotificationType",
    "WeeklyReport",
]
