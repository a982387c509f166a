"""
Recurring Billing Scheduler - Routers Package

FastAPI route handlers.

Routers:
- admin_scheduler: Manual triggers for the daily and weekly billing jobs
"""

from billing_scheduler.routers import admin_scheduler

__all__ = ["admin_scheduler"]
