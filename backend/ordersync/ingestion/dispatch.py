"""
Cross-process dispatch — hand one file to the order pipeline and wait
for its verdict.

``InlineDispatcher`` runs the pipeline in this event loop;
``CeleryDispatcher`` sends ``(file_name, content)`` to the worker and
waits on the result backend.  Either raises DispatchTimeoutError when no
verdict arrives in time.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError

from ordersync.core.logging import get_logger
from ordersync.pipeline.engine import PipelineEngine, PipelineResult
from ordersync.pipeline.errors import DispatchTimeoutError

logger = get_logger(__name__)

PROCESS_ORDER_FILE_TASK = "ordersync.tasks.processing_tasks.process_order_file"
WORKER_ERROR_CODE = "WorkerError"


@dataclass
class Verdict:
    """``(fileName, {success, error?})`` — the outcome of one dispatched file."""

    file_name: str
    success: bool
    error: str | None = None
    error_code: str | None = None
    result: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_pipeline(cls, result: PipelineResult) -> Verdict:
        return cls(
            file_name=result.file_name,
            success=result.success,
            error=result.error,
            error_code=result.error_code,
            result=result.to_dict(),
        )

    @classmethod
    def failure(cls, file_name: str, error: str, error_code: str | None = None) -> Verdict:
        return cls(file_name=file_name, success=False, error=error, error_code=error_code)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Verdict:
        return cls(
            file_name=data.get("file_name", ""),
            success=bool(data.get("success")),
            error=data.get("error"),
            error_code=data.get("error_code"),
            result=data.get("result") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "success": self.success,
            "error": self.error,
            "error_code": self.error_code,
            "result": self.result,
        }


class Dispatcher(ABC):
    @abstractmethod
    async def dispatch(self, file_name: str, content: str, timeout: float) -> Verdict:
        ...

    async def aclose(self) -> None:
        """Release resources held by the dispatcher."""


class InlineDispatcher(Dispatcher):
    """Runs the pipeline engine in-process under a timeout."""

    def __init__(self, engine: PipelineEngine) -> None:
        self.engine = engine

    async def dispatch(self, file_name: str, content: str, timeout: float) -> Verdict:
        try:
            result = await asyncio.wait_for(self.engine.run(file_name, content), timeout)
        except asyncio.TimeoutError as exc:
            raise DispatchTimeoutError(
                f"No verdict for {file_name} within {timeout}s",
                details={"file_name": file_name, "timeout_s": timeout},
            ) from exc
        return Verdict.from_pipeline(result)


class CeleryDispatcher(Dispatcher):
    """Sends the file to the Celery worker and blocks (in a thread) on the result."""

    def __init__(self, celery_app: Celery, task_name: str = PROCESS_ORDER_FILE_TASK) -> None:
        self.celery_app = celery_app
        self.task_name = task_name

    async def dispatch(self, file_name: str, content: str, timeout: float) -> Verdict:
        async_result = self.celery_app.send_task(self.task_name, args=[file_name, content])
        logger.info("File dispatched to worker", file_name=file_name, task_id=async_result.id)

        try:
            payload = await asyncio.to_thread(async_result.get, timeout=timeout, propagate=False)
        except CeleryTimeoutError as exc:
            # a late pickup must not run alongside the next cycle's dispatch
            await self._revoke(async_result, file_name)
            raise DispatchTimeoutError(
                f"No verdict for {file_name} within {timeout}s",
                details={"file_name": file_name, "task_id": async_result.id, "timeout_s": timeout},
            ) from exc

        if isinstance(payload, BaseException):
            return Verdict.failure(file_name, f"Worker task failed: {payload}", WORKER_ERROR_CODE)
        if not isinstance(payload, dict):
            return Verdict.failure(file_name, f"Unexpected worker result: {payload!r}", WORKER_ERROR_CODE)
        return Verdict.from_dict(payload)

    async def _revoke(self, async_result: Any, file_name: str) -> None:
        try:
            await asyncio.to_thread(async_result.revoke)
        except Exception as exc:
            logger.warning(
                "Could not revoke timed-out task",
                file_name=file_name,
                task_id=async_result.id,
                error=str(exc),
            )
        else:
            logger.warning("Timed-out task revoked", file_name=file_name, task_id=async_result.id)
