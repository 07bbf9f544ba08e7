"""
Order-file flow — the ordered step sequence for one file.

    parse_records → check_existing_orders → reconcile_skus
        → resolve_customers → build_orders → submit_orders

SKUs are reconciled first so a file with an unresolvable order fails
before any customer is created for it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from ordersync.core.config import Settings
from ordersync.pipeline.engine import PipelineEngine
from ordersync.pipeline.step import PipelineStep
from ordersync.pipeline.steps import (
    BuildOrdersStep,
    CheckExistingOrdersStep,
    ParseRecordsStep,
    ReconcileSkusStep,
    ResolveCustomersStep,
    SubmitOrdersStep,
)
from ordersync.submission.commerce_client import CommerceClient
from ordersync.submission.customer_resolver import CustomerResolver


def order_file_flow(
    client: CommerceClient,
    settings: Settings,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> list[PipelineStep]:
    resolver = CustomerResolver(
        client,
        settle_delay_s=settings.CUSTOMER_SETTLE_DELAY_S,
        sleep=sleep,
    )
    return [
        ParseRecordsStep(),
        CheckExistingOrdersStep(client),
        ReconcileSkusStep(client, batch_size=settings.SKU_BATCH_SIZE),
        ResolveCustomersStep(resolver),
        BuildOrdersStep(source_id=settings.ORDER_SOURCE_ID, currency=settings.ORDER_CURRENCY),
        SubmitOrdersStep(client),
    ]


def build_order_engine(
    client: CommerceClient,
    settings: Settings,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    retry_backoff_base: float = 2.0,
) -> PipelineEngine:
    return PipelineEngine(
        order_file_flow(client, settings, sleep=sleep),
        retry_backoff_base=retry_backoff_base,
    )
