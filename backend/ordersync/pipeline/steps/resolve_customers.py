"""ResolveCustomersStep — find-or-create one customer per account code."""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.step import PipelineStep
from ordersync.submission.customer_resolver import CustomerResolver

logger = get_logger(__name__)


class ResolveCustomersStep(PipelineStep):
    """Attach a commerce customer id to every pending order."""

    name = "resolve_customers"
    description = "Find or create the customer for each order"

    def __init__(self, resolver: CustomerResolver) -> None:
        self._resolver = resolver

    async def should_skip(self, ctx: OrderFileContext) -> bool:
        return not ctx.pending_orders

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()
        resolved: dict[str, str] = {}

        for order in ctx.pending_orders:
            account = order.group.header.customer_account
            if account not in resolved:
                resolved[account] = await self._resolver.resolve(order.group.header)
            order.customer_id = resolved[account]

        logger.info("Customers resolved", file_name=ctx.file_name, customers=len(resolved))

        return self._success(started_at, metadata={"customers": resolved})
