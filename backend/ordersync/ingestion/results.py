"""In-memory history of per-file processing outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ordersync.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 500


@dataclass
class ProcessingRecord:
    file_name: str
    success: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "error": self.error,
            "error_code": self.error_code,
        }


class ProcessingResults:
    """Newest-last history, capped at ``max_entries``."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self._records: list[ProcessingRecord] = []

    def add(
        self,
        file_name: str,
        success: bool,
        *,
        data: dict[str, Any] | None = None,
        error: str | None = None,
        error_code: str | None = None,
    ) -> ProcessingRecord:
        record = ProcessingRecord(
            file_name=file_name,
            success=success,
            data=data or {},
            error=error,
            error_code=error_code,
        )
        self._records.append(record)
        if len(self._records) > self.max_entries:
            del self._records[: len(self._records) - self.max_entries]
        return record

    def all(self) -> list[ProcessingRecord]:
        return list(self._records)

    def for_file(self, file_name: str) -> list[ProcessingRecord]:
        return [r for r in self._records if r.file_name == file_name]

    def statistics(self) -> dict[str, Any]:
        total = len(self._records)
        successful = sum(1 for r in self._records if r.success)
        return {
            "total": total,
            "successful": successful,
            "failed": total - successful,
            "success_rate": round(successful / total * 100, 2) if total else 0.0,
        }

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        logger.info("Processing results cleared", removed=count)
        return count
