"""
Recurring Billing Scheduler - Customer Model

Customer model for the billed side of an invoice.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Numeric, String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from billing_scheduler.models.base import BaseModel, TenantScopedMixin


class CustomerStatus(str, Enum):
    """Customer account status."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Customer(BaseModel, TenantScopedMixin):
    """
    Customer model.

    outstanding_balance is maintained by the payments side and only read by
    the skip rules.
    """

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[CustomerStatus] = mapped_column(
        SQLEnum(CustomerStatus),
        default=CustomerStatus.ACTIVE,
        nullable=False,
    )
    outstanding_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == CustomerStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name}, status={self.status})>"
