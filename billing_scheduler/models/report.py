"""
Recurring Billing Scheduler - Weekly Report Model

Immutable snapshot of a tenant's invoicing over a trailing window.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_scheduler.models.base import BaseModel, TenantScopedMixin


class WeeklyReport(BaseModel, TenantScopedMixin):
    """
    Weekly invoice summary.

    One row per aggregation run; repeated runs in the same window each add a row.
    """

    __tablename__ = "weekly_reports"

    period: Mapped[str] = mapped_column(String(20), default="week", nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    total_invoices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    paid_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    overdue_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
