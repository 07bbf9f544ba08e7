"""
PipelineEngine — runs the order-file steps sequentially.

Responsibilities:
    - Build the OrderFileContext for one file
    - Execute each step with timing, logging, and error handling
    - Retry retryable steps with exponential backoff
    - Stop at the first failed step
    - Return a complete PipelineResult (the file's verdict)
"""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from ordersync.core.constants import PipelineStatus, StepStatus
from ordersync.pipeline.context import OrderFileContext, StepResult
from ordersync.pipeline.errors import (
    PipelineError,
    StepExecutionError,
    StepRetryExhaustedError,
)
from ordersync.pipeline.step import PipelineStep

UNEXPECTED_ERROR_CODE = "Unexpected"


@dataclass
class PipelineResult:
    """Final outcome of a pipeline execution."""

    execution_id: str
    file_name: str
    status: str                     # PipelineStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)
    context_summary: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.status == PipelineStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "file_name": self.file_name,
            "status": self.status,
            "success": self.success,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_duration_ms": self.total_duration_ms,
            "steps_completed": self.steps_completed,
            "total_steps": self.total_steps,
            "step_results": self.step_results,
            "context_summary": self.context_summary,
            "error": self.error,
            "error_code": self.error_code,
        }


class PipelineEngine:
    """
    Runs a sequence of PipelineStep objects against an OrderFileContext.

    Usage::

        engine = PipelineEngine(order_file_flow(client, settings))
        result = await engine.run("orders_0001.txt", content)
        if result.success:
            ...
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        *,
        retry_backoff_base: float = 2.0,
    ) -> None:
        self.steps = steps
        self.retry_backoff_base = retry_backoff_base
        self.logger = structlog.get_logger("pipeline.engine")

    async def run(self, file_name: str, content: str) -> PipelineResult:
        """Full pipeline execution for one file."""
        started_at = datetime.now(timezone.utc)
        ctx = OrderFileContext(file_name=file_name, content=content)

        log = self.logger.bind(execution_id=ctx.execution_id, file_name=file_name)
        log.info("Pipeline started", content_length=len(content) if isinstance(content, str) else None)

        result = await self.run_steps(ctx, self.steps)
        result.started_at = started_at

        log.info(
            "Pipeline finished",
            status=result.status,
            error_code=result.error_code,
            steps_completed=result.steps_completed,
            total_steps=result.total_steps,
            duration_ms=result.total_duration_ms,
        )
        return result

    async def run_steps(
        self,
        ctx: OrderFileContext,
        steps: list[PipelineStep],
    ) -> PipelineResult:
        """
        Execute an ordered list of steps against a context.

        Can be called directly with a pre-built context for testing.
        """
        started_at = datetime.now(timezone.utc)
        ctx.total_steps = len(steps)

        log = self.logger.bind(
            execution_id=ctx.execution_id,
            file_name=ctx.file_name,
            total_steps=len(steps),
        )

        pipeline_status = PipelineStatus.RUNNING
        steps_completed = 0
        error: str | None = None
        error_code: str | None = None

        for index, step in enumerate(steps):
            ctx.current_step_index = index
            step_number = index + 1

            step_log = log.bind(
                stage=step.name,
                step_index=step_number,
            )

            # ── Check skip condition ──────────────────
            try:
                if await step.should_skip(ctx):
                    step_log.info("Step skipped")
                    now = datetime.now(timezone.utc)
                    ctx.step_results.append(StepResult(
                        step_name=step.name,
                        status=StepStatus.SKIPPED,
                        started_at=now,
                        completed_at=now,
                    ))
                    steps_completed += 1
                    continue
            except Exception as exc:
                step_log.warning("should_skip raised, running step anyway", error=str(exc))

            # ── Execute step (with retry) ─────────────
            step_log.info(f"Step {step_number}/{len(steps)}: {step.description}")

            result = await self._execute_with_retry(step, ctx, step_log)
            ctx.step_results.append(result)

            if result.status == StepStatus.COMPLETED:
                steps_completed += 1
                step_log.info(
                    "Step completed",
                    duration_ms=result.duration_ms,
                    metadata=result.metadata,
                )
            else:
                step_log.error(
                    "Step failed, pipeline stopping",
                    error=result.error,
                    error_code=result.error_code,
                )
                ctx.add_error(f"Step '{step.name}' failed: {result.error}")
                pipeline_status = PipelineStatus.FAILED
                error = result.error
                error_code = result.error_code
                break

        # ── Finalise ──────────────────────────────────
        completed_at = datetime.now(timezone.utc)
        total_duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        if pipeline_status != PipelineStatus.FAILED:
            pipeline_status = PipelineStatus.COMPLETED

        return PipelineResult(
            execution_id=ctx.execution_id,
            file_name=ctx.file_name,
            status=pipeline_status,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=total_duration_ms,
            steps_completed=steps_completed,
            total_steps=len(steps),
            step_results=[sr.to_dict() for sr in ctx.step_results],
            context_summary=ctx.to_summary_dict(),
            error=error,
            error_code=error_code,
        )

    async def _execute_with_retry(
        self,
        step: PipelineStep,
        ctx: OrderFileContext,
        log: structlog.BoundLogger,
    ) -> StepResult:
        """
        Execute a step.  Only StepExecutionError from a retryable step is
        retried; other PipelineErrors fail immediately with their code.
        """
        max_attempts = step.max_retries if step.retryable else 1

        for attempt in range(1, max_attempts + 1):
            started_at = datetime.now(timezone.utc)
            try:
                return await step.execute(ctx)

            except StepExecutionError as exc:
                if step.retryable and attempt < max_attempts:
                    wait_seconds = self.retry_backoff_base ** attempt
                    log.warning(
                        f"Step failed (attempt {attempt}/{max_attempts}), retrying in {wait_seconds}s",
                        error=str(exc),
                    )
                    await asyncio.sleep(wait_seconds)
                    continue

                code = StepRetryExhaustedError.code if step.retryable else exc.code
                return self._failed(step, started_at, str(exc), code, {"attempts": attempt})

            except PipelineError as exc:
                return self._failed(
                    step, started_at, str(exc), exc.code,
                    {"attempts": attempt, **exc.details},
                )

            except Exception as exc:
                # Unexpected error, never retried
                log.exception("Unexpected error in step", error=str(exc))
                return self._failed(
                    step, started_at, f"Unexpected: {exc}", UNEXPECTED_ERROR_CODE,
                    {"traceback": traceback.format_exc()},
                )

        # Unreachable with max_retries >= 1
        return self._failed(
            step, datetime.now(timezone.utc), "Retry loop exited unexpectedly",
            UNEXPECTED_ERROR_CODE, {},
        )

    @staticmethod
    def _failed(
        step: PipelineStep,
        started_at: datetime,
        error: str,
        error_code: str,
        metadata: dict[str, Any],
    ) -> StepResult:
        now = datetime.now(timezone.utc)
        return StepResult(
            step_name=step.name,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=now,
            duration_ms=int((now - started_at).total_seconds() * 1000),
            error=error,
            error_code=error_code,
            metadata=metadata,
        )
