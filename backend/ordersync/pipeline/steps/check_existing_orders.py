"""
CheckExistingOrdersStep — idempotency pre-check on customerReference.

An order whose customer reference is already present server-side is
marked ``already_exists``; later steps leave it alone and it counts as
success.  Orders without a reference cannot be checked and go ahead.
"""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.step import PipelineStep
from ordersync.submission.commerce_client import CommerceClient

logger = get_logger(__name__)


class CheckExistingOrdersStep(PipelineStep):
    """Skip orders the commerce API already has."""

    name = "check_existing_orders"
    description = "Check commerce API for orders already submitted"

    def __init__(self, client: CommerceClient) -> None:
        self._client = client

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()
        existing: list[str] = []
        unchecked = 0

        for order in ctx.orders:
            reference = order.customer_reference.strip()
            if not reference:
                unchecked += 1
                continue
            if await self._client.order_exists(reference):
                order.already_exists = True
                existing.append(order.order_id)
                logger.info(
                    "Order already exists, skipping",
                    order_id=order.order_id,
                    customer_reference=reference,
                )

        return self._success(started_at, metadata={
            "existing_orders": existing,
            "unchecked_orders": unchecked,
            "pending_orders": len(ctx.pending_orders),
        })
