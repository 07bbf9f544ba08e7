"""
PipelineStep — abstract base class for all pipeline steps.

Every step in the order-file pipeline inherits from this class.
The engine calls execute() and records timing, logging, and errors
automatically.  Steps only need to implement the business logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from ordersync.core.constants import StepStatus
from ordersync.pipeline.context import OrderFileContext, StepResult


class PipelineStep(ABC):
    """
    Base class for every pipeline step.

    Subclasses MUST implement:
        - name (str)          — unique identifier, e.g. "parse_records"
        - description (str)   — human-readable label for logs
        - execute(ctx)        — the actual business logic

    Subclasses MAY implement:
        - should_skip(ctx)    — return True to skip this step conditionally

    Raise a PipelineError subclass to fail the file with that error code.
    Raise StepExecutionError from a ``retryable`` step to have it retried.
    """

    name: str = "unnamed_step"
    description: str = "No description"
    retryable: bool = False
    max_retries: int = 3

    @abstractmethod
    async def execute(self, ctx: OrderFileContext) -> StepResult:
        ...

    async def should_skip(self, ctx: OrderFileContext) -> bool:
        """Return True to skip this step.  Default: never skip."""
        return False

    # ─── Helpers available to all steps ────────────────

    def _success(
        self,
        started_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a successful StepResult with timing."""
        now = datetime.now(timezone.utc)
        duration_ms = int((now - started_at).total_seconds() * 1000)
        return StepResult(
            step_name=self.name,
            status=StepStatus.COMPLETED,
            started_at=started_at,
            completed_at=now,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)
