"""
Recurring Billing Scheduler - Services Package

Business logic services.
"""

from billing_scheduler.services.holiday_calendar import HolidayCalendar, load_tenant_holiday_calendar
from billing_scheduler.services.recurrence_calculator import RecurrenceOptions, compute_next_run_date
from billing_scheduler.services.skip_evaluator import SkipEvaluator, ConditionalSkipEvaluator
from billing_scheduler.services.email_service import EmailService, EmailMessage
from billing_scheduler.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    RecurringInvoiceEmailDispatcher,
)
from billing_scheduler.services.invoice_generator import InvoiceGenerator
from billing_scheduler.services.recurring_invoice_scanner import RecurringInvoiceScanner
from billing_scheduler.services.maintenance_service import (
    StatusReconciler,
    RetentionSweeper,
    ArchivalSweeper,
)
from billing_scheduler.services.weekly_report_service import WeeklyReportAggregator

__all__ = [
    "HolidayCalendar",
    "load_tenant_holiday_calendar",
    "RecurrenceOptions",
    "compute_next_run_date",
    "SkipEvaluator",
    "ConditionalSkipEvaluator",
    "EmailService",
    "EmailMessage",
    "NotificationDispatcher",
    "NotificationService",
    "RecurringInvoiceEmailDispatcher",
    "InvoiceGenerator",
    "RecurringInvoiceScanner",
    "StatusReconciler",
    "RetentionSweeper",
    "ArchivalSweeper",
    "WeeklyReportAggregator",
]
