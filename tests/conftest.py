"""
Recurring Billing Scheduler - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import selectinload

from billing_scheduler.database import Base
from billing_scheduler.models import (
    Company,
    Customer,
    CustomerStatus,
    Invoice,
    InvoiceStatus,
    RecurrenceFrequency,
    RecurringInvoiceLine,
    RecurringInvoiceTemplate,
    Tenant,
)
from billing_scheduler.routers.admin_scheduler import get_orchestrator
from billing_scheduler.services.email_service import EmailService
from billing_scheduler.tasks.scheduled_tasks import TenantBatchOrchestrator
from main import app


# Reference clock for every test: Friday 2024-03-15, noon UTC
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = date(2024, 3, 15)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite database, created fresh for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'billing_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def email_service() -> MagicMock:
    """EmailService double whose sends always succeed."""
    service = MagicMock(spec=EmailService)
    service.send_email = AsyncMock(return_value=True)
    service.send_invoice_email = AsyncMock(return_value=True)
    service.send_payment_reminder_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def dispatcher() -> MagicMock:
    """NotificationDispatcher double."""
    mock = MagicMock()
    mock.send_recurring_invoice = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def orchestrator(session_factory, email_service, dispatcher) -> TenantBatchOrchestrator:
    return TenantBatchOrchestrator(
        session_factory,
        dispatcher=dispatcher,
        email_service=email_service,
    )


@pytest_asyncio.fixture(scope="function")
async def client(orchestrator) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose admin endpoints run against the test database."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def load_template(db: AsyncSession, template_id: UUID) -> RecurringInvoiceTemplate:
    """Reload a template with everything the generator needs."""
    result = await db.execute(
        select(RecurringInvoiceTemplate)
        .options(
            selectinload(RecurringInvoiceTemplate.lines),
            selectinload(RecurringInvoiceTemplate.customer),
            selectinload(RecurringInvoiceTemplate.company),
        )
        .where(RecurringInvoiceTemplate.id == template_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def create_tenant(db: AsyncSession, name: str = "Acme Holdings", is_active: bool = True) -> Tenant:
    tenant = Tenant(id=uuid4(), name=name, is_active=is_active)
    db.add(tenant)
    await db.commit()
    return tenant


async def create_company(db: AsyncSession, tenant: Tenant, name: str = "Acme Billing LLC") -> Company:
    company = Company(id=uuid4(), tenant_id=tenant.id, name=name, email="billing@acme.test")
    db.add(company)
    await db.commit()
    return company


async def create_customer(
    db: AsyncSession,
    tenant: Tenant,
    name: str = "Globex Corp",
    email: Optional[str] = "ap@globex.test",
    status: CustomerStatus = CustomerStatus.ACTIVE,
    outstanding_balance: Decimal = Decimal("0.00"),
) -> Customer:
    customer = Customer(
        id=uuid4(),
        tenant_id=tenant.id,
        name=name,
        email=email,
        status=status,
        outstanding_balance=outstanding_balance,
    )
    db.add(customer)
    await db.commit()
    return customer


async def create_template(
    db: AsyncSession,
    tenant: Tenant,
    company: Company,
    customer: Customer,
    **overrides,
) -> RecurringInvoiceTemplate:
    """Monthly retainer template, due today unless overridden."""
    values = dict(
        id=uuid4(),
        tenant_id=tenant.id,
        company_id=company.id,
        customer_id=customer.id,
        name="Monthly retainer",
        frequency=RecurrenceFrequency.MONTHLY,
        interval=1,
        start_date=TODAY,
        next_run_date=TODAY,
        invoices_generated=0,
        is_active=True,
        auto_send=False,
        currency="USD",
        subtotal=Decimal("100.00"),
        tax_total=Decimal("7.50"),
        total_amount=Decimal("107.50"),
    )
    values.update(overrides)
    template = RecurringInvoiceTemplate(**values)
    template.lines = [
        RecurringInvoiceLine(
            tenant_id=tenant.id,
            description="Consulting hours",
            quantity=Decimal("2.00"),
            unit_price=Decimal("50.00"),
            line_total=Decimal("100.00"),
            tax_rate=Decimal("7.50"),
            sort_order=0,
        )
    ]
    db.add(template)
    await db.commit()
    return await load_template(db, template.id)


async def create_invoice(
    db: AsyncSession,
    tenant: Tenant,
    company: Company,
    customer: Optional[Customer],
    invoice_number: str,
    status: InvoiceStatus = InvoiceStatus.SENT,
    due_date: date = TODAY,
    total_amount: Decimal = Decimal("100.00"),
    created_at: Optional[datetime] = None,
) -> Invoice:
    invoice = Invoice(
        id=uuid4(),
        tenant_id=tenant.id,
        company_id=company.id,
        customer_id=customer.id if customer else None,
        invoice_number=invoice_number,
        issue_date=due_date - timedelta(days=30),
        due_date=due_date,
        status=status,
        subtotal=total_amount,
        tax_total=Decimal("0.00"),
        total_amount=total_amount,
        amount_paid=Decimal("0.00"),
        balance_due=total_amount,
        currency="USD",
    )
    if created_at is not None:
        invoice.created_at = created_at
    db.add(invoice)
    await db.commit()
    return invoice


@pytest_asyncio.fixture
async def test_tenant(db_session: AsyncSession) -> Tenant:
    return await create_tenant(db_session)


@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession, test_tenant: Tenant) -> Company:
    return await create_company(db_session, test_tenant)


@pytest_asyncio.fixture
async def test_customer(db_session: AsyncSession, test_tenant: Tenant) -> Customer:
    return await create_customer(db_session, test_tenant)


@pytest_asyncio.fixture
async def test_template(
    db_session: AsyncSession,
    test_tenant: Tenant,
    test_company: Company,
    test_customer: Customer,
) -> RecurringInvoiceTemplate:
    """Daily template due today."""
    return await create_template(
        db_session, test_tenant, test_company, test_customer,
        frequency=RecurrenceFrequency.DAILY,
    )
