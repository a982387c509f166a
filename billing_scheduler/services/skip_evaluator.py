"""
Recurring Billing Scheduler - Skip Evaluator

Decides whether a due recurring template should be skipped this run.
A skipped template keeps its next_run_date and is re-evaluated next run.
"""

from decimal import Decimal
from typing import Optional, Protocol

from billing_scheduler.models.customer import Customer
from billing_scheduler.models.recurring_invoice import RecurringInvoiceTemplate
from billing_scheduler.schemas.scheduler import SkipDecision


class SkipEvaluator(Protocol):
    async def evaluate(
        self,
        template: RecurringInvoiceTemplate,
        customer: Optional[Customer],
    ) -> SkipDecision:
        ...


class ConditionalSkipEvaluator:
    """Applies the skip rules configured on the template itself."""

    async def evaluate(
        self,
        template: RecurringInvoiceTemplate,
        customer: Optional[Customer],
    ) -> SkipDecision:
        if customer is None:
            return SkipDecision()

        if template.skip_if_customer_inactive and not customer.is_active:
            return SkipDecision(should_skip=True, reason="Customer is inactive")

        if template.skip_if_outstanding_balance:
            limit = template.max_outstanding_amount or Decimal("0")
            balance = customer.outstanding_balance or Decimal("0")
            if balance > limit:
                return SkipDecision(
                    should_skip=True,
                    reason=f"Customer has outstanding balance of {balance:.2f} (limit {limit:.2f})",
                )

        return SkipDecision()
