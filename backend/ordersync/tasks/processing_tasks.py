"""
Celery tasks — order-file processing.

Wires the PipelineEngine into the Celery task system.  The sync
orchestrator sends ``(file_name, content)`` and waits on the returned
verdict dict.
"""

import asyncio

import structlog

from ordersync.core.config import settings
from ordersync.core.credentials import CommerceCredentials
from ordersync.ingestion.dispatch import PROCESS_ORDER_FILE_TASK, Verdict
from ordersync.pipeline.engine import PipelineResult
from ordersync.pipeline.flow import build_order_engine
from ordersync.submission.commerce_client import CommerceClient
from ordersync.tasks import celery_app

logger = structlog.get_logger("tasks.processing")


async def _run_pipeline(file_name: str, content: str) -> PipelineResult:
    client = CommerceClient.from_credentials(
        CommerceCredentials.from_settings(settings),
        timeout=settings.COMMERCE_API_TIMEOUT_S,
    )
    async with client:
        engine = build_order_engine(client, settings)
        return await engine.run(file_name, content)


@celery_app.task(bind=True, name=PROCESS_ORDER_FILE_TASK)
def process_order_file(self, file_name: str, content: str) -> dict:
    """
    Parse, reconcile and submit one order file.

    Returns the verdict as a dict: ``{file_name, success, error, error_code, result}``.
    Pipeline failures are part of the verdict, not task failures.
    """
    task_log = logger.bind(task_id=self.request.id, file_name=file_name)
    task_log.info("Processing task started", content_length=len(content))

    try:
        # Run the async pipeline engine in sync Celery context
        result = asyncio.run(_run_pipeline(file_name, content))
    except Exception as exc:
        task_log.exception("Processing task crashed", error=str(exc))
        raise

    task_log.info(
        "Processing task finished",
        pipeline_status=result.status,
        error_code=result.error_code,
        steps_completed=result.steps_completed,
        total_steps=result.total_steps,
        duration_ms=result.total_duration_ms,
    )
    return Verdict.from_pipeline(result).to_dict()
