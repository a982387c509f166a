"""
Recurring Billing Scheduler - Notification Model

Model for storing tenant notifications.

Notification Types:
- Payment reminders (overdue / due soon)
- Recurring invoice generated
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from billing_scheduler.models.base import BaseModel, TenantScopedMixin


class NotificationType(str, Enum):
    """Types of notifications."""
    PAYMENT_OVERDUE = "payment_overdue"
    PAYMENT_DUE_SOON = "payment_due_soon"
    RECURRING_INVOICE_GENERATED = "recurring_invoice_generated"


class Notification(BaseModel, TenantScopedMixin):
    """
    Notification record.

    Pruned by the retention sweep once older than the retention window.
    """

    __tablename__ = "notifications"

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    notification_type: Mapped[NotificationType] = mapped_column(
        SQLEnum(NotificationType),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Email delivery
    recipient_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def mark_email_sent(self) -> None:
        """Mark that email notification was sent."""
        self.email_sent = True

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.notification_type}, title={self.title[:30]})>"
