"""
Recurring Billing Scheduler - Invoice Model

Invoices produced by the recurring scheduler, their line items and the
append-only activity log attached to them.

Status workflow:
- draft -> sent / pending -> paid | overdue
- paid invoices are flagged is_archived once they age out
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    JSON, Boolean, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_scheduler.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from billing_scheduler.models.customer import Customer
    from billing_scheduler.models.tenant import Company


class InvoiceStatus(str, Enum):
    """Invoice status workflow."""
    DRAFT = "draft"           # Created, not yet delivered
    SENT = "sent"             # Delivered to the customer
    PENDING = "pending"       # Awaiting payment
    PAID = "paid"             # Payment received
    OVERDUE = "overdue"       # Past due date without payment
    CANCELLED = "cancelled"


# Statuses that turn overdue once the due date has passed
OPEN_INVOICE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PENDING)


class ActivityType(str, Enum):
    """Invoice lifecycle events recorded in the activity log."""
    RECURRING_INVOICE_GENERATED = "recurring_invoice_generated"
    RECURRING_INVOICE_EMAILED = "recurring_invoice_emailed"
    PAYMENT_REMINDER_SENT = "payment_reminder_sent"


class Invoice(BaseModel, TenantScopedMixin):
    """
    Invoice model.

    Created once per successful recurring generation event.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_invoice_number"),
    )

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    recurring_template_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("recurring_invoice_templates.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Dates
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Status
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus),
        default=InvoiceStatus.DRAFT,
        nullable=False,
        index=True,
    )
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Amounts
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
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    balance_due: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    # Notes
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    customer: Mapped[Optional["Customer"]] = relationship("Customer")
    company: Mapped["Company"] = relationship("Company")
    line_items: Mapped[List["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.sort_order",
    )
    activities: Mapped[List["InvoiceActivity"]] = relationship(
        "InvoiceActivity",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )

    @property
    def is_fully_paid(self) -> bool:
        """Check if invoice is fully paid."""
        return self.balance_due <= Decimal("0")

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status})>"


class InvoiceLineItem(BaseModel, TenantScopedMixin):
    """
    Invoice line item model.
    """

    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
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
    )
    line_total: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
    )
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # Ordering
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="line_items",
    )

    def __repr__(self) -> str:
        return f"<InvoiceLineItem(id={self.id}, description={self.description[:30]}...)>"


class InvoiceActivity(BaseModel, TenantScopedMixin):
    """
    Immutable audit record attached to an invoice.

    Rows are only ever inserted.
    """

    __tablename__ = "invoice_activities"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    activity_type: Mapped[ActivityType] = mapped_column(
        SQLEnum(ActivityType),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="activities",
    )
