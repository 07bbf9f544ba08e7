"""
ProcessedFileLedger — durable set of filenames already fully ingested.

The single source of truth for dedup.  Kept in memory as an ordered set
and written through to the key-value store on every mutation.
"""

from __future__ import annotations

from typing import Any, Protocol

from ordersync.core.constants import PROCESSED_FILES_KEY
from ordersync.core.logging import get_logger

logger = get_logger(__name__)

MAX_FILE_NAME_LENGTH = 255


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def delete(self, key: str) -> None: ...


def validate_file_name(name: Any) -> str:
    """Trimmed filename; ValueError when empty or longer than 255 characters."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError("File name must be a non-empty string")
    name = name.strip()
    if len(name) > MAX_FILE_NAME_LENGTH:
        raise ValueError(f"File name longer than {MAX_FILE_NAME_LENGTH} characters")
    return name


class ProcessedFileLedger:
    """
    Filenames whose processing finished with a success verdict.

    Only the sync orchestrator adds names, and only after the verdict.
    """

    def __init__(self, store: KeyValueStore, key: str = PROCESSED_FILES_KEY) -> None:
        self._store = store
        self._key = key
        stored = store.get(key, [])
        if not isinstance(stored, list):
            logger.warning("Ledger value is not a list, starting empty", key=key)
            stored = []
        self._names: dict[str, None] = dict.fromkeys(
            name for name in stored if isinstance(name, str) and name.strip()
        )
        logger.info("Ledger loaded", processed_files=len(self._names))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._names

    def __len__(self) -> int:
        return len(self._names)

    def has(self, name: str) -> bool:
        return name in self

    def add(self, name: str) -> bool:
        """Record a processed file.  Returns False when it was already present."""
        name = validate_file_name(name)
        if name in self._names:
            return False
        self._save([*self._names, name])
        self._names[name] = None
        return True

    def remove(self, name: str) -> bool:
        name = validate_file_name(name)
        if name not in self._names:
            return False
        self._save([existing for existing in self._names if existing != name])
        del self._names[name]
        return True

    def clear(self) -> int:
        """Forget every processed file.  Returns how many were removed."""
        count = len(self._names)
        self._save([])
        self._names.clear()
        logger.warning("Ledger cleared", removed=count)
        return count

    def names(self) -> list[str]:
        return list(self._names)

    def count(self) -> int:
        return len(self._names)

    def _save(self, names: list[str]) -> None:
        # store first: memory never runs ahead of disk
        self._store.set(self._key, names)
