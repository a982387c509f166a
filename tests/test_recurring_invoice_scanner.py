"""
Recurring Billing Scheduler - Recurring Invoice Scanner Tests
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from billing_scheduler.models import (
    CustomerStatus,
    Invoice,
    InvoiceActivity,
    RecurrenceFrequency,
    RecurringInvoiceTemplate,
)
from billing_scheduler.schemas.scheduler import SkipDecision, TemplateOutcome
from billing_scheduler.services.recurring_invoice_scanner import RecurringInvoiceScanner

from conftest import NOW, TODAY, create_company, create_customer, create_template, create_tenant


async def invoice_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Invoice))).scalar()


class TestDueSelection:
    """Which templates a scan picks up."""

    @pytest.mark.asyncio
    async def test_only_active_templates_due_by_today(
        self, db_session, test_tenant, test_company, test_customer,
    ):
        due_today = await create_template(db_session, test_tenant, test_company, test_customer)
        overdue = await create_template(
            db_session, test_tenant, test_company, test_customer,
            next_run_date=TODAY - timedelta(days=3),
        )
        await create_template(
            db_session, test_tenant, test_company, test_customer,
            next_run_date=TODAY + timedelta(days=1),
        )
        await create_template(
            db_session, test_tenant, test_company, test_customer, is_active=False,
        )

        ids = await RecurringInvoiceScanner(db_session).due_template_ids(test_tenant.id, NOW)

        assert ids == [overdue.id, due_today.id]

    @pytest.mark.asyncio
    async def test_other_tenants_templates_ignored(
        self, db_session, test_tenant, test_company, test_customer,
    ):
        other = await create_tenant(db_session, name="Other Tenant")
        other_company = await create_company(db_session, other)
        other_customer = await create_customer(db_session, other)
        await create_template(db_session, other, other_company, other_customer)

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.processed == 0
        assert await invoice_count(db_session) == 0


class TestScan:
    """Per-template processing."""

    @pytest.mark.asyncio
    async def test_generates_for_each_due_template(
        self, db_session, test_tenant, test_company, test_customer,
    ):
        first = await create_template(db_session, test_tenant, test_company, test_customer)
        second = await create_template(
            db_session, test_tenant, test_company, test_customer,
            frequency=RecurrenceFrequency.WEEKLY,
        )

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.processed == 2
        assert result.generated == 2
        assert result.failures == []
        numbers = {r.invoice_number for r in result.results}
        assert numbers == {"INV-202403-0001", "INV-202403-0002"}
        by_id = {r.template_id: r for r in result.results}
        assert by_id[first.id].next_run_date == "2024-04-15"
        assert by_id[second.id].next_run_date == "2024-03-22"

    @pytest.mark.asyncio
    async def test_catch_up_generates_one_invoice_per_run(
        self, db_session, test_tenant, test_company, test_customer,
    ):
        template = await create_template(
            db_session, test_tenant, test_company, test_customer,
            frequency=RecurrenceFrequency.DAILY,
            next_run_date=TODAY - timedelta(days=3),
        )

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.generated == 1
        refreshed = await db_session.get(RecurringInvoiceTemplate, template.id, populate_existing=True)
        assert refreshed.next_run_date == TODAY - timedelta(days=2)

    @pytest.mark.asyncio
    async def test_inactive_customer_is_skipped_without_side_effects(
        self, db_session, test_tenant, test_company,
    ):
        customer = await create_customer(db_session, test_tenant, status=CustomerStatus.INACTIVE)
        template = await create_template(
            db_session, test_tenant, test_company, customer,
            skip_if_customer_inactive=True,
        )

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.processed == 1
        assert result.skipped == 1
        assert result.results[0].outcome == TemplateOutcome.SKIPPED
        assert result.results[0].reason == "Customer is inactive"
        assert await invoice_count(db_session) == 0
        activities = (await db_session.execute(select(func.count()).select_from(InvoiceActivity))).scalar()
        assert activities == 0

        refreshed = await db_session.get(RecurringInvoiceTemplate, template.id, populate_existing=True)
        assert refreshed.next_run_date == TODAY
        assert refreshed.invoices_generated == 0

    @pytest.mark.asyncio
    async def test_outstanding_balance_skip(self, db_session, test_tenant, test_company):
        customer = await create_customer(
            db_session, test_tenant, outstanding_balance=Decimal("500.00"),
        )
        await create_template(
            db_session, test_tenant, test_company, customer,
            skip_if_outstanding_balance=True,
            max_outstanding_amount=Decimal("250.00"),
        )

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.skipped == 1
        assert "outstanding balance" in result.results[0].reason

    @pytest.mark.asyncio
    async def test_custom_skip_evaluator(self, db_session, test_tenant, test_template):
        evaluator = MagicMock()
        evaluator.evaluate = AsyncMock(return_value=SkipDecision(should_skip=True, reason="Paused"))

        result = await RecurringInvoiceScanner(db_session, skip_evaluator=evaluator).scan(test_tenant.id, NOW)

        evaluator.evaluate.assert_awaited_once()
        assert result.results[0].reason == "Paused"
        assert await invoice_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_failing_template_does_not_stop_others(
        self, db_session, test_tenant, test_company, test_customer,
    ):
        broken = await create_template(
            db_session, test_tenant, test_company, test_customer,
            next_run_date=TODAY - timedelta(days=1),
            day_of_month=40,
        )
        healthy = await create_template(db_session, test_tenant, test_company, test_customer)
        broken_id, healthy_id = broken.id, healthy.id

        result = await RecurringInvoiceScanner(db_session).scan(test_tenant.id, NOW)

        assert result.processed == 2
        assert result.generated == 1
        assert [f.template_id for f in result.failures] == [broken_id]
        assert "INVALID_SCHEDULE" in result.failures[0].error
        assert await invoice_count(db_session) == 1

        refreshed = await db_session.get(RecurringInvoiceTemplate, broken_id, populate_existing=True)
        assert refreshed.next_run_date == TODAY - timedelta(days=1)
        assert any(r.template_id == healthy_id and r.outcome == TemplateOutcome.GENERATED for r in result.results)

    @pytest.mark.asyncio
    async def test_second_scan_same_day_generates_nothing(self, db_session, test_tenant, test_template):
        scanner = RecurringInvoiceScanner(db_session)

        first = await scanner.scan(test_tenant.id, NOW)
        second = await scanner.scan(test_tenant.id, NOW)

        assert first.generated == 1
        assert second.processed == 0
        assert await invoice_count(db_session) == 1
