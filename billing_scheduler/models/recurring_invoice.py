"""
Recurring Billing Scheduler - Recurring Invoice Template Model

A recurring invoice template is a tenant-owned definition of an invoice that
is regenerated on a schedule.

Scheduling fields:
- frequency / interval: how far each run advances the schedule
- day_of_week: pin weekly cadences (0=Sunday .. 6=Saturday)
- day_of_month: pin monthly cadences (clamped to month end)
- business_days_only / skip_holidays: roll the next run forward
- next_run_date: the only authority for "is this template due"
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text, Uuid,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_scheduler.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from billing_scheduler.models.customer import Customer
    from billing_scheduler.models.tenant import Company


class RecurrenceFrequency(str, Enum):
    """Period unit of a recurring schedule."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class RecurringInvoiceTemplate(BaseModel, TenantScopedMixin):
    """
    Recurring invoice template.

    Mutated only by the recurring invoice scanner; next_run_date moves
    forward after each successful generation.
    """

    __tablename__ = "recurring_invoice_templates"
    __table_args__ = (
        CheckConstraint("interval_count >= 1", name="interval_positive"),
    )

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Schedule
    frequency: Mapped[RecurrenceFrequency] = mapped_column(
        SQLEnum(RecurrenceFrequency),
        nullable=False,
    )
    interval: Mapped[int] = mapped_column("interval_count", Integer, default=1, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_run_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    last_run_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    invoices_generated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    day_of_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    business_days_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    skip_holidays: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    auto_send: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Invoice defaults
    payment_terms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Conditional skip rules
    skip_if_customer_inactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    skip_if_outstanding_balance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    max_outstanding_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=True,
    )

    # Totals
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    tax_total: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Relationships
    customer: Mapped["Customer"] = relationship("Customer")
    company: Mapped["Company"] = relationship("Company")
    lines: Mapped[List["RecurringInvoiceLine"]] = relationship(
        "RecurringInvoiceLine",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="RecurringInvoiceLine.sort_order",
    )

    def __repr__(self) -> str:
        return (
            f"<RecurringInvoiceTemplate(id={self.id}, name={self.name}, "
            f"frequency={self.frequency}, next_run_date={self.next_run_date})>"
        )


class RecurringInvoiceLine(BaseModel, TenantScopedMixin):
    """Line definition copied onto every generated invoice."""

    __tablename__ = "recurring_invoice_lines"

    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("recurring_invoice_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("1.00"),
    )
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    line_total: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped["RecurringInvoiceTemplate"] = relationship(
        "RecurringInvoiceTemplate",
        back_populates="lines",
    )
