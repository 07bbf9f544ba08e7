"""
Service container — builds the long-lived collaborators once per process.

The API lifespan and the CLI both call :func:`build_service`; tests pass
their own store, channel factory and dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import httpx

from ordersync.core.config import Settings
from ordersync.core.constants import SYNC_INTERVAL_KEY, DispatchMode
from ordersync.core.credentials import CommerceCredentials, SftpCredentials
from ordersync.core.logging import get_logger
from ordersync.ingestion.admission import AdmissionPolicy
from ordersync.ingestion.channel import FileChannel
from ordersync.ingestion.dispatch import CeleryDispatcher, Dispatcher, InlineDispatcher
from ordersync.ingestion.kv_store import SqlKeyValueStore
from ordersync.ingestion.ledger import ProcessedFileLedger
from ordersync.ingestion.local_channel import LocalDirectoryChannel
from ordersync.ingestion.orchestrator import SyncOrchestrator
from ordersync.ingestion.results import ProcessingResults
from ordersync.ingestion.scheduler import SyncScheduler
from ordersync.ingestion.sftp_channel import SftpChannel
from ordersync.pipeline.flow import build_order_engine
from ordersync.submission.commerce_client import CommerceClient

logger = get_logger(__name__)


@dataclass
class SyncService:
    settings: Settings
    store: SqlKeyValueStore
    ledger: ProcessedFileLedger
    results: ProcessingResults
    client: CommerceClient
    dispatcher: Dispatcher
    orchestrator: SyncOrchestrator
    scheduler: SyncScheduler

    async def aclose(self) -> None:
        await self.scheduler.stop()
        await self.dispatcher.aclose()
        await self.client.aclose()
        self.store.close()


def build_channel_factory(settings: Settings) -> Callable[[], FileChannel]:
    if settings.USE_LOCAL_DIRECTORY:
        path = settings.LOCAL_DIRECTORY_PATH
        logger.warning("Using local directory instead of SFTP", path=path)
        return lambda: LocalDirectoryChannel(path)

    credentials = SftpCredentials.from_settings(settings)
    return lambda: SftpChannel(credentials, connect_timeout_s=settings.SFTP_CONNECT_TIMEOUT_S)


def build_dispatcher(settings: Settings, client: CommerceClient) -> Dispatcher:
    if settings.DISPATCH_MODE == DispatchMode.CELERY:
        from ordersync.tasks import celery_app

        return CeleryDispatcher(celery_app)
    return InlineDispatcher(build_order_engine(client, settings))


def restored_interval(store: SqlKeyValueStore, default: float) -> float:
    """Interval persisted by an earlier run, if it is usable."""
    value = store.get(SYNC_INTERVAL_KEY, default)
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    logger.warning("Ignoring invalid stored sync interval", value=value)
    return default


def build_service(
    settings: Settings,
    *,
    store: SqlKeyValueStore | None = None,
    channel_factory: Callable[[], FileChannel] | None = None,
    dispatcher: Dispatcher | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncService:
    store = store or SqlKeyValueStore(settings.LEDGER_DATABASE_URL)
    ledger = ProcessedFileLedger(store)
    results = ProcessingResults()

    client = CommerceClient.from_credentials(
        CommerceCredentials.from_settings(settings),
        timeout=settings.COMMERCE_API_TIMEOUT_S,
        transport=transport,
    )
    dispatcher = dispatcher or build_dispatcher(settings, client)

    orchestrator = SyncOrchestrator(
        channel_factory or build_channel_factory(settings),
        dispatcher,
        ledger,
        policy=AdmissionPolicy.from_settings(settings),
        delete_after_success=settings.FILE_DELETION,
        dispatch_timeout_s=settings.DISPATCH_TIMEOUT_S,
        results=results,
    )
    scheduler = SyncScheduler(
        orchestrator,
        restored_interval(store, settings.SYNC_INTERVAL_MINUTES),
        store=store,
    )

    logger.info(
        "Sync service built",
        dispatch_mode=settings.DISPATCH_MODE,
        file_deletion=settings.FILE_DELETION,
        skip_processed=settings.SKIP_PROCESSED_FILES,
        interval_minutes=scheduler.interval_minutes,
    )

    return SyncService(
        settings=settings,
        store=store,
        ledger=ledger,
        results=results,
        client=client,
        dispatcher=dispatcher,
        orchestrator=orchestrator,
        scheduler=scheduler,
    )
