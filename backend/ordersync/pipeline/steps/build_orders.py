"""
BuildOrdersStep — assemble the commerce payload for every pending order.

All payloads are built before anything is submitted, so an order with no
resolvable items fails the file before any order of it goes out.
"""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.step import PipelineStep
from ordersync.submission.payload_builder import build_order

logger = get_logger(__name__)


class BuildOrdersStep(PipelineStep):
    """Transform order groups into commerce order payloads."""

    name = "build_orders"
    description = "Build commerce order payloads"

    def __init__(self, source_id: str, currency: str = "GBP") -> None:
        self._source_id = source_id
        self._currency = currency

    async def should_skip(self, ctx: OrderFileContext) -> bool:
        return not ctx.pending_orders

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()
        missing: dict[str, list[str]] = {}

        for order in ctx.pending_orders:
            order.payload = build_order(
                order.group,
                ctx.sku_map,
                order.customer_id or "",
                source_id=self._source_id,
                currency=self._currency,
            )
            skus = order.payload["_metadata"]["missingSkus"]
            if skus:
                missing[order.order_id] = skus
                logger.warning(
                    "Order has unresolved SKUs, items skipped",
                    order_id=order.order_id,
                    missing_skus=skus,
                )

        return self._success(started_at, metadata={
            "orders_built": len(ctx.pending_orders),
            "missing_skus": missing,
        })
