"""Local directory channel: the SFTP interface over a folder on disk."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from ordersync.core.logging import get_logger
from ordersync.ingestion.admission import RemoteFileCandidate
from ordersync.ingestion.channel import FileChannel
from ordersync.pipeline.errors import ChannelError

logger = get_logger(__name__)


class LocalDirectoryChannel(FileChannel):
    """Reads order files from a local inbox, for debugging without a server."""

    name = "local"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._connected = False

    @property
    def directory(self) -> str:
        return str(self.root)

    def connect(self) -> None:
        if not self.root.is_dir():
            raise ChannelError(f"Local directory not found: {self.root}")
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def _resolve(self, path: str) -> Path:
        if not self._connected:
            raise ChannelError("Local channel is not connected")
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    def list(self, path: str | None = None) -> list[RemoteFileCandidate]:
        directory = self._resolve(path) if path else self._resolve(str(self.root.resolve()))
        candidates = []
        try:
            for entry in sorted(directory.iterdir()):
                info = entry.stat()
                candidates.append(RemoteFileCandidate(
                    name=entry.name,
                    size=info.st_size,
                    modified_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
                    is_regular_file=entry.is_file(),
                    path=str(entry),
                ))
        except OSError as exc:
            raise ChannelError(f"Listing {directory} failed: {exc}") from exc
        return candidates

    def fetch(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise ChannelError(f"Read of {path} failed: {exc}") from exc

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink()
        except OSError as exc:
            raise ChannelError(f"Delete of {path} failed: {exc}") from exc
        logger.info("Local file deleted", path=path)
