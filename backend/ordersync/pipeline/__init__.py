"""
Pipeline Engine — per-file order processing.

This package provides the step-based pipeline engine that takes one
order file through parse → idempotency check → customer resolution →
SKU reconciliation → payload build → submission, with per-step logging,
error codes and retries.
"""

from ordersync.pipeline.context import OrderFileContext, OrderWorkItem, StepResult
from ordersync.pipeline.engine import PipelineEngine, PipelineResult
from ordersync.pipeline.step import PipelineStep

__all__ = [
    "OrderFileContext",
    "OrderWorkItem",
    "PipelineEngine",
    "PipelineResult",
    "PipelineStep",
    "StepResult",
]
