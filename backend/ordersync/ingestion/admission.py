"""
File admission filter — is a listed remote file eligible for download?

Rules are applied in order and the first match decides:

    1. not a regular file            → not-regular-file
    2. size == 0                     → zero-byte-protected
    3. size < min size               → too-small
    4. no modification time          → undated-reject
       modified at or before cutoff  → before-cutoff
    5. skip-processed and in ledger  → already-processed

Rejections are not errors; the file is simply left alone this cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Container

from ordersync.core.config import Settings
from ordersync.core.constants import AdmissionReason


@dataclass(frozen=True)
class RemoteFileCandidate:
    """One entry of a remote directory listing.  Never persisted."""

    name: str
    size: int
    modified_at: datetime | None
    is_regular_file: bool = True
    path: str = ""

    @property
    def remote_path(self) -> str:
        return self.path or self.name


@dataclass(frozen=True)
class AdmissionPolicy:
    cutoff: datetime
    min_size_bytes: int = 10
    skip_processed: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> AdmissionPolicy:
        return cls(
            cutoff=settings.CUTOFF_DATETIME,
            min_size_bytes=settings.MIN_FILE_SIZE_BYTES,
            skip_processed=settings.SKIP_PROCESSED_FILES,
        )


@dataclass(frozen=True)
class AdmissionDecision:
    candidate: RemoteFileCandidate
    reason: AdmissionReason

    @property
    def accepted(self) -> bool:
        return self.reason == AdmissionReason.ACCEPTED


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def admit(
    candidate: RemoteFileCandidate,
    policy: AdmissionPolicy,
    processed: Container[str] = (),
) -> AdmissionDecision:
    """Decide whether ``candidate`` may be downloaded this cycle."""

    def decide(reason: AdmissionReason) -> AdmissionDecision:
        return AdmissionDecision(candidate=candidate, reason=reason)

    if not candidate.is_regular_file:
        return decide(AdmissionReason.NOT_REGULAR_FILE)

    if candidate.size == 0:
        return decide(AdmissionReason.ZERO_BYTE_PROTECTED)

    if candidate.size < policy.min_size_bytes:
        return decide(AdmissionReason.TOO_SMALL)

    if candidate.modified_at is None:
        return decide(AdmissionReason.UNDATED_REJECT)

    if _as_utc(candidate.modified_at) <= _as_utc(policy.cutoff):
        return decide(AdmissionReason.BEFORE_CUTOFF)

    if policy.skip_processed and candidate.name in processed:
        return decide(AdmissionReason.ALREADY_PROCESSED)

    return decide(AdmissionReason.ACCEPTED)
