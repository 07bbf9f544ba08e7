"""SubmitOrdersStep — send built payloads to the commerce API, in file order."""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.step import PipelineStep
from ordersync.submission.commerce_client import CommerceClient
from ordersync.submission.payload_builder import submission_body

logger = get_logger(__name__)


class SubmitOrdersStep(PipelineStep):
    """Create each pending order server-side."""

    name = "submit_orders"
    description = "Submit orders to the commerce API"

    def __init__(self, client: CommerceClient) -> None:
        self._client = client

    async def should_skip(self, ctx: OrderFileContext) -> bool:
        return not ctx.pending_orders

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()
        submitted: list[str] = []

        for order in ctx.pending_orders:
            if order.payload is None:
                continue
            order.response = await self._client.create_order(submission_body(order.payload))
            order.submitted = True
            submitted.append(order.order_id)
            logger.info(
                "Order submitted",
                order_id=order.order_id,
                items=len(order.payload["items"]),
            )

        return self._success(started_at, metadata={"submitted": submitted})
