"""
SyncOrchestrator — one sync cycle over the remote order-file directory.

Per file:

    Candidate → Admitted → Downloaded → Dispatched → Verified
        Verified(success) → Retired    (ledger add, then delete if enabled)
        Verified(failure) → Untouched  (no ledger change, no delete)

The ledger add never happens before the verdict is known.  Files are
handled strictly one at a time.  The channel is opened fresh per cycle
and always closed, whatever happened.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from ordersync.core.constants import AdmissionReason, FileState, SkipReason, SyncStatus
from ordersync.core.logging import get_logger
from ordersync.ingestion.admission import AdmissionPolicy, RemoteFileCandidate, admit
from ordersync.ingestion.channel import FileChannel
from ordersync.ingestion.dispatch import Dispatcher, Verdict
from ordersync.ingestion.ledger import ProcessedFileLedger
from ordersync.ingestion.results import ProcessingResults
from ordersync.pipeline.errors import ChannelError, PipelineError

logger = get_logger(__name__)

ALREADY_RUNNING_MESSAGE = "Sync already in progress"
PREVIEW_LENGTH = 100
UNEXPECTED_ERROR_CODE = "Unexpected"


@dataclass
class FileOutcome:
    file_name: str
    state: FileState
    reason: str | None = None
    error: str | None = None
    error_code: str | None = None
    deleted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "state": self.state,
            "reason": self.reason,
            "error": self.error,
            "error_code": self.error_code,
            "deleted": self.deleted,
        }


@dataclass
class SyncReport:
    """Counts and per-file outcomes of one cycle."""

    cycle_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: SyncStatus = SyncStatus.COMPLETED
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    listed: int = 0
    admitted: int = 0
    rejected: Counter = field(default_factory=Counter)
    skipped: Counter = field(default_factory=Counter)
    retired: int = 0
    untouched: int = 0
    deleted: int = 0
    deletion_errors: int = 0
    files: list[FileOutcome] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.COMPLETED

    @property
    def zero_byte_protected(self) -> int:
        return (
            self.rejected[AdmissionReason.ZERO_BYTE_PROTECTED]
            + self.skipped[SkipReason.ZERO_BYTE_AFTER_DOWNLOAD]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "status": self.status,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "listed": self.listed,
            "admitted": self.admitted,
            "rejected": dict(self.rejected),
            "skipped": dict(self.skipped),
            "retired": self.retired,
            "untouched": self.untouched,
            "deleted": self.deleted,
            "deletion_errors": self.deletion_errors,
            "zero_byte_protected": self.zero_byte_protected,
            "files": [f.to_dict() for f in self.files],
            "error": self.error,
            "error_code": self.error_code,
        }


class SyncOrchestrator:
    """
    Runs sync cycles; at most one at a time.

    Args:
        channel_factory: Builds a fresh, unconnected FileChannel per cycle.
        dispatcher: Hands file content to the order pipeline.
        ledger: Processed-file ledger (dedup source of truth).
        policy: Admission rules.
        delete_after_success: Remove retired files from the remote store.
        dispatch_timeout_s: Verdict wait per file.
        results: Optional per-file outcome history.
    """

    def __init__(
        self,
        channel_factory: Callable[[], FileChannel],
        dispatcher: Dispatcher,
        ledger: ProcessedFileLedger,
        *,
        policy: AdmissionPolicy,
        delete_after_success: bool = False,
        dispatch_timeout_s: float = 30.0,
        results: ProcessingResults | None = None,
    ) -> None:
        self.channel_factory = channel_factory
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.policy = policy
        self.delete_after_success = delete_after_success
        self.dispatch_timeout_s = dispatch_timeout_s
        self.results = results if results is not None else ProcessingResults()
        self._running = False
        self.last_report: SyncReport | None = None

    @property
    def in_progress(self) -> bool:
        return self._running

    async def run_cycle(self) -> SyncReport:
        """Run one cycle, or report ALREADY_RUNNING if one is in flight."""
        if self._running:
            logger.warning(ALREADY_RUNNING_MESSAGE)
            report = SyncReport(status=SyncStatus.ALREADY_RUNNING, error=ALREADY_RUNNING_MESSAGE)
            report.completed_at = report.started_at
            return report

        self._running = True
        try:
            report = await self._run_cycle()
        finally:
            self._running = False

        self.last_report = report
        return report

    async def _run_cycle(self) -> SyncReport:
        report = SyncReport()
        log = logger.bind(cycle_id=report.cycle_id)
        channel = self.channel_factory()
        log.info("Sync cycle started", **channel.describe())

        try:
            await asyncio.to_thread(channel.connect)
            candidates = await asyncio.to_thread(channel.list)
            report.listed = len(candidates)
            log.info("Remote files listed", count=len(candidates))

            for candidate in candidates:
                decision = admit(candidate, self.policy, self.ledger)
                if not decision.accepted:
                    report.rejected[decision.reason] += 1
                    report.files.append(FileOutcome(
                        file_name=candidate.name,
                        state=FileState.REJECTED,
                        reason=decision.reason,
                    ))
                    log.debug(
                        "File not admitted",
                        file_name=candidate.name,
                        reason=decision.reason,
                        size=candidate.size,
                    )
                    continue

                report.admitted += 1
                await self._process_file(channel, candidate, report)

            report.status = SyncStatus.COMPLETED

        except Exception as exc:
            report.status = SyncStatus.FAILED
            report.error = str(exc)
            report.error_code = exc.code if isinstance(exc, PipelineError) else UNEXPECTED_ERROR_CODE
            if isinstance(exc, ChannelError):
                log.error("Sync cycle aborted", error=str(exc), error_code=report.error_code)
            else:
                log.exception("Sync cycle aborted by unexpected error", error=str(exc))

        finally:
            try:
                await asyncio.to_thread(channel.disconnect)
            except Exception as exc:
                log.warning("Channel disconnect failed", error=str(exc))
            report.completed_at = datetime.now(timezone.utc)

        log.info(
            "Sync cycle finished",
            status=report.status,
            listed=report.listed,
            admitted=report.admitted,
            retired=report.retired,
            untouched=report.untouched,
            deleted=report.deleted,
            deletion_errors=report.deletion_errors,
            zero_byte_protected=report.zero_byte_protected,
        )
        return report

    async def _process_file(
        self,
        channel: FileChannel,
        candidate: RemoteFileCandidate,
        report: SyncReport,
    ) -> None:
        name = candidate.name
        log = logger.bind(cycle_id=report.cycle_id, file_name=name)

        # ── Admitted → Downloaded ─────────────────────
        raw = await asyncio.to_thread(channel.fetch, candidate.remote_path)
        content = raw.decode("utf-8", errors="replace")

        skip = self._content_skip_reason(content)
        if skip is not None:
            report.skipped[skip] += 1
            report.files.append(FileOutcome(file_name=name, state=FileState.UNTOUCHED, reason=skip))
            log.info("Downloaded file skipped", stage="download", reason=skip)
            return

        log.info(
            "File downloaded",
            stage="download",
            length=len(content),
            preview=content[:PREVIEW_LENGTH],
        )

        # ── Downloaded → Dispatched → Verified ────────
        verdict = await self._dispatch(name, content, log)
        self.results.add(
            name,
            verdict.success,
            data=verdict.result.get("context_summary", {}),
            error=verdict.error,
            error_code=verdict.error_code,
        )

        if not verdict.success:
            report.untouched += 1
            report.files.append(FileOutcome(
                file_name=name,
                state=FileState.UNTOUCHED,
                error=verdict.error,
                error_code=verdict.error_code,
            ))
            log.error(
                "File processing failed, leaving file in place",
                stage="verdict",
                error=verdict.error,
                error_code=verdict.error_code,
            )
            return

        # ── Verified(success) → Retired ───────────────
        self.ledger.add(name)
        report.retired += 1
        outcome = FileOutcome(file_name=name, state=FileState.RETIRED)
        report.files.append(outcome)
        log.info("File retired", stage="retire")

        if self.delete_after_success:
            try:
                await asyncio.to_thread(channel.delete, candidate.remote_path)
            except ChannelError as exc:
                report.deletion_errors += 1
                outcome.error = str(exc)
                log.warning(
                    "Remote delete failed; file stays processed",
                    stage="delete",
                    error=str(exc),
                )
            else:
                report.deleted += 1
                outcome.deleted = True
                log.info("Remote file deleted", stage="delete")

    def _content_skip_reason(self, content: str) -> SkipReason | None:
        if len(content) == 0:
            return SkipReason.ZERO_BYTE_AFTER_DOWNLOAD
        if len(content) < self.policy.min_size_bytes:
            return SkipReason.TOO_SMALL_AFTER_DOWNLOAD
        return None

    async def _dispatch(self, name: str, content: str, log: Any) -> Verdict:
        try:
            return await self.dispatcher.dispatch(name, content, self.dispatch_timeout_s)
        except PipelineError as exc:
            log.error("Dispatch failed", stage="dispatch", error=str(exc), error_code=exc.code)
            return Verdict.failure(name, str(exc), exc.code)
        except Exception as exc:
            log.exception("Unexpected dispatch error", stage="dispatch", error=str(exc))
            return Verdict.failure(name, f"Unexpected: {exc}", UNEXPECTED_ERROR_CODE)

    def status(self) -> dict[str, Any]:
        channel = self.channel_factory()
        return {
            "in_progress": self._running,
            "channel": channel.describe(),
            "processed_files": self.ledger.count(),
            "delete_after_success": self.delete_after_success,
            "skip_processed": self.policy.skip_processed,
            "cutoff": self.policy.cutoff.isoformat(),
            "statistics": self.results.statistics(),
            "last_report": self.last_report.to_dict() if self.last_report else None,
        }
