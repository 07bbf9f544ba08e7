"""
ReconcileSkusStep — map product codes to catalog ids.

Catalog lookups are pure reads, so API failures are retried.  An order
with no resolvable item fails the file here, before customers are
resolved or anything is built.
"""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.errors import APIRequestError, NoResolvableItemsError, StepExecutionError
from ordersync.pipeline.step import PipelineStep
from ordersync.submission.catalog import DEFAULT_BATCH_SIZE, distinct_skus, lookup_sku, resolve_skus
from ordersync.submission.commerce_client import CommerceClient

logger = get_logger(__name__)


class ReconcileSkusStep(PipelineStep):
    """Resolve every distinct product code of the pending orders."""

    name = "reconcile_skus"
    description = "Look up product codes in the catalog"
    retryable = True
    max_retries = 3

    def __init__(self, client: CommerceClient, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._client = client
        self._batch_size = batch_size

    async def should_skip(self, ctx: OrderFileContext) -> bool:
        return not ctx.pending_orders

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()

        codes = [
            item.product_code
            for order in ctx.pending_orders
            for item in order.group.items
        ]
        wanted = distinct_skus(codes)

        try:
            ctx.sku_map = await resolve_skus(self._client, wanted, batch_size=self._batch_size)
        except APIRequestError as exc:
            raise StepExecutionError(
                f"Catalog lookup failed: {exc}",
                execution_id=ctx.execution_id,
                step_name=self.name,
            ) from exc

        unresolved = len(wanted) - len(ctx.sku_map)
        logger.info(
            "SKUs reconciled",
            file_name=ctx.file_name,
            requested=len(wanted),
            resolved=len(ctx.sku_map),
            unresolved=unresolved,
        )

        for order in ctx.pending_orders:
            items = order.group.items
            if any(lookup_sku(ctx.sku_map, item.product_code) is not None for item in items):
                continue
            missing = distinct_skus(item.product_code for item in items)
            raise NoResolvableItemsError(
                f"Order {order.order_id}: none of {len(items)} item(s) resolved to a catalog product",
                missing_skus=missing,
                execution_id=ctx.execution_id,
                step_name=self.name,
                details={"order_id": order.order_id, "missing_skus": missing},
            )

        return self._success(started_at, metadata={
            "requested": len(wanted),
            "resolved": len(ctx.sku_map),
            "unresolved": unresolved,
        })
