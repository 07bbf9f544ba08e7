"""
FileChannel — the remote file store seen by the sync orchestrator.

Implementations are synchronous; the orchestrator runs them in a worker
thread.  Every failure surfaces as ChannelError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ordersync.ingestion.admission import RemoteFileCandidate


class FileChannel(ABC):
    """connect → list/fetch/delete → disconnect, one connection per cycle."""

    name: str = "channel"

    @abstractmethod
    def connect(self) -> None:
        ...

    @abstractmethod
    def list(self, path: str | None = None) -> list[RemoteFileCandidate]:
        ...

    @abstractmethod
    def fetch(self, path: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection.  Safe to call when not connected."""
        ...

    @property
    @abstractmethod
    def directory(self) -> str:
        ...

    def describe(self) -> dict[str, object]:
        return {"channel": self.name, "directory": self.directory}
