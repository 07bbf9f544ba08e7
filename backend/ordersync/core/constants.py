"""Shared constants and enums used across the application."""

from enum import StrEnum


class RecordType(StrEnum):
    """Record-type discriminant in the first field of each line."""

    HEADER = "soheader"
    DETAIL = "sodetail"


FIELD_DELIMITER = "~"


class PipelineStatus(StrEnum):
    """Overall status of a per-file pipeline execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    RETRYING = "RETRYING"


class FileState(StrEnum):
    """Lifecycle of one remote file within a sync cycle."""

    CANDIDATE = "CANDIDATE"
    ADMITTED = "ADMITTED"
    DOWNLOADED = "DOWNLOADED"
    DISPATCHED = "DISPATCHED"
    VERIFIED_SUCCESS = "VERIFIED_SUCCESS"
    VERIFIED_FAILURE = "VERIFIED_FAILURE"
    RETIRED = "RETIRED"
    UNTOUCHED = "UNTOUCHED"
    REJECTED = "REJECTED"


class AdmissionReason(StrEnum):
    """Why the admission filter accepted or rejected a remote file."""

    ACCEPTED = "accepted"
    NOT_REGULAR_FILE = "not-regular-file"
    ZERO_BYTE_PROTECTED = "zero-byte-protected"
    TOO_SMALL = "too-small"
    BEFORE_CUTOFF = "before-cutoff"
    UNDATED_REJECT = "undated-reject"
    ALREADY_PROCESSED = "already-processed"


class SkipReason(StrEnum):
    """Silent post-download skips (content re-check)."""

    ZERO_BYTE_AFTER_DOWNLOAD = "zero-byte-after-download"
    TOO_SMALL_AFTER_DOWNLOAD = "too-small-after-download"


class SyncStatus(StrEnum):
    """Outcome of one orchestrator cycle."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    ALREADY_RUNNING = "ALREADY_RUNNING"


class DispatchMode(StrEnum):
    """Where the per-file pipeline runs."""

    INLINE = "inline"
    CELERY = "celery"


class APIRequestMethod(StrEnum):
    """HTTP methods used against the commerce API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


# ── Commerce payload constants ─────────────────────
ORDER_STAGE = "order"
ORDER_SOURCE_TYPE = "other"
SHIPPING_OPTION = "historicOrder"
FULFILMENT_TYPE_DELIVERY = "delivery"
DEFAULT_COUNTRY = "GB"
UNITED_KINGDOM_LINE = "UNITED KINGDOM"

# ── Key-value store keys ───────────────────────────
PROCESSED_FILES_KEY = "processedFiles"
SYNC_INTERVAL_KEY = "syncIntervalMinutes"
