"""
Recurring Billing Scheduler - Tenant Models

Tenants own every other record. Companies are the issuing side of an
invoice; holidays make up the tenant's business calendar.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import Boolean, Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_scheduler.models.base import BaseModel, TenantScopedMixin


class Tenant(BaseModel):
    """
    Tenant (workspace) of the billing platform.

    Created and deactivated outside the scheduler; read-only here.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    holidays: Mapped[List["TenantHoliday"]] = relationship(
        "TenantHoliday",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name}, active={self.is_active})>"


class Company(BaseModel, TenantScopedMixin):
    """Issuing company of an invoice."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class TenantHoliday(BaseModel, TenantScopedMixin):
    """
    A non-working day in a tenant's calendar.

    When recurs_annually is set only month and day of holiday_date are used.
    """

    __tablename__ = "tenant_holidays"
    __table_args__ = (
        UniqueConstraint("tenant_id", "holiday_date", name="uq_tenant_holidays_tenant_date"),
    )

    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    recurs_annually: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="holidays")
