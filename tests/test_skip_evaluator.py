"""
Recurring Billing Scheduler - Skip Evaluator Tests
"""

from decimal import Decimal

import pytest

from billing_scheduler.models import Customer, CustomerStatus, RecurringInvoiceTemplate
from billing_scheduler.services.skip_evaluator import ConditionalSkipEvaluator


def make_template(**overrides) -> RecurringInvoiceTemplate:
    values = dict(
        skip_if_customer_inactive=False,
        skip_if_outstanding_balance=False,
        max_outstanding_amount=None,
    )
    values.update(overrides)
    return RecurringInvoiceTemplate(**values)


def make_customer(
    status: CustomerStatus = CustomerStatus.ACTIVE,
    outstanding_balance: Decimal = Decimal("0.00"),
) -> Customer:
    return Customer(name="Globex Corp", status=status, outstanding_balance=outstanding_balance)


class TestConditionalSkipEvaluator:
    """Test cases for the template-configured skip rules."""

    @pytest.mark.asyncio
    async def test_no_rules_never_skips(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(),
            make_customer(status=CustomerStatus.INACTIVE, outstanding_balance=Decimal("900.00")),
        )
        assert decision.should_skip is False

    @pytest.mark.asyncio
    async def test_inactive_customer(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_customer_inactive=True),
            make_customer(status=CustomerStatus.INACTIVE),
        )
        assert decision.should_skip is True
        assert decision.reason == "Customer is inactive"

    @pytest.mark.asyncio
    async def test_active_customer_is_not_skipped(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_customer_inactive=True),
            make_customer(),
        )
        assert decision.should_skip is False

    @pytest.mark.asyncio
    async def test_balance_over_limit(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_outstanding_balance=True, max_outstanding_amount=Decimal("100.00")),
            make_customer(outstanding_balance=Decimal("100.01")),
        )
        assert decision.should_skip is True
        assert decision.reason == "Customer has outstanding balance of 100.01 (limit 100.00)"

    @pytest.mark.asyncio
    async def test_balance_at_limit_is_allowed(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_outstanding_balance=True, max_outstanding_amount=Decimal("100.00")),
            make_customer(outstanding_balance=Decimal("100.00")),
        )
        assert decision.should_skip is False

    @pytest.mark.asyncio
    async def test_missing_limit_means_any_balance(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_outstanding_balance=True),
            make_customer(outstanding_balance=Decimal("0.01")),
        )
        assert decision.should_skip is True

    @pytest.mark.asyncio
    async def test_inactive_rule_checked_first(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_customer_inactive=True, skip_if_outstanding_balance=True),
            make_customer(status=CustomerStatus.INACTIVE, outstanding_balance=Decimal("50.00")),
        )
        assert decision.reason == "Customer is inactive"

    @pytest.mark.asyncio
    async def test_missing_customer_is_not_skipped(self):
        decision = await ConditionalSkipEvaluator().evaluate(
            make_template(skip_if_customer_inactive=True), None,
        )
        assert decision.should_skip is False
