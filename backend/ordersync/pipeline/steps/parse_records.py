"""
ParseRecordsStep — split the file into order groups.

A file that parses to zero groups fails with NoOrdersFound so it is
left in place rather than retired.
"""

from __future__ import annotations

from ordersync.core.logging import get_logger
from ordersync.parsing.parser import parse_order_file
from ordersync.pipeline.context import OrderFileContext, OrderWorkItem, StepResult
from ordersync.pipeline.errors import NoOrdersFoundError
from ordersync.pipeline.step import PipelineStep

logger = get_logger(__name__)


class ParseRecordsStep(PipelineStep):
    """Parse tilde-delimited records into order work items."""

    name = "parse_records"
    description = "Parse header/detail records into order groups"

    async def execute(self, ctx: OrderFileContext) -> StepResult:
        started_at = self._now()

        groups = parse_order_file(ctx.content)
        if not groups:
            raise NoOrdersFoundError(
                f"No complete order groups in {ctx.file_name}",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        ctx.orders = [OrderWorkItem(group=group) for group in groups]
        item_count = sum(len(group.items) for group in groups)

        logger.info(
            "Order file parsed",
            file_name=ctx.file_name,
            orders=len(groups),
            items=item_count,
        )

        return self._success(started_at, metadata={
            "orders": len(groups),
            "items": item_count,
            "order_ids": [group.order_id for group in groups],
        })
