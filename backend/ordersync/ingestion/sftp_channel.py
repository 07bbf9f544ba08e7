"""
SFTP file channel on paramiko.

One connection attempt per cycle, no retries.  Algorithm negotiation is
pinned to what the order-file server speaks (it only offers ssh-rsa host
keys and group14 key exchange).
"""

from __future__ import annotations

import io
import posixpath
import socket
import stat
from datetime import datetime, timezone
from typing import Any

import paramiko

from ordersync.core.credentials import SftpCredentials
from ordersync.core.logging import get_logger
from ordersync.ingestion.admission import RemoteFileCandidate
from ordersync.ingestion.channel import FileChannel
from ordersync.pipeline.errors import ChannelError

logger = get_logger(__name__)

HOST_KEY_TYPES = ("ssh-rsa",)
KEX_ALGORITHMS = ("diffie-hellman-group14-sha256",)
CIPHERS = ("aes128-ctr",)
MACS = ("hmac-sha2-256",)


def friendly_error(exc: BaseException, host: str, port: int) -> str:
    """Operator-facing message for a failed connection attempt."""
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return f"Connection to {host}:{port} timed out"
    if isinstance(exc, paramiko.AuthenticationException):
        return f"Authentication failed for {host}: check username and password"
    if isinstance(exc, ConnectionRefusedError):
        return f"Connection refused by {host}:{port}: is the SFTP service running?"
    if isinstance(exc, socket.gaierror):
        return f"Host not found: {host}"
    return f"SFTP connection to {host}:{port} failed: {exc}"


class SftpChannel(FileChannel):
    """
    Remote order-file directory over SFTP.

    Args:
        credentials: Host, port, user, password and target directory.
        connect_timeout_s: Applied to the TCP connect, banner and auth.
    """

    name = "sftp"

    def __init__(self, credentials: SftpCredentials, *, connect_timeout_s: float = 30.0) -> None:
        self.credentials = credentials
        self.connect_timeout_s = connect_timeout_s
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    @property
    def directory(self) -> str:
        return self.credentials.directory or "/"

    @property
    def connected(self) -> bool:
        return self._client is not None

    def describe(self) -> dict[str, object]:
        return {"channel": self.name, **self.credentials.describe()}

    # ─── Connection ────────────────────────────────────

    def connect(self) -> None:
        if self._client is not None:
            return

        creds = self.credentials
        if not creds.is_loaded():
            raise ChannelError(
                f"SFTP credentials incomplete: missing {', '.join(creds.missing_fields())}",
            )

        logger.info("Connecting to SFTP", **creds.describe())

        transport: paramiko.Transport | None = None
        try:
            sock = socket.create_connection((creds.host, creds.port), timeout=self.connect_timeout_s)
            transport = paramiko.Transport(sock)
            transport.banner_timeout = self.connect_timeout_s
            transport.auth_timeout = self.connect_timeout_s
            self._restrict_algorithms(transport)
            transport.connect(username=creds.username, password=creds.password)
            client = paramiko.SFTPClient.from_transport(transport)
            if client is None:
                raise paramiko.SSHException("SFTP subsystem unavailable")
        except (OSError, paramiko.SSHException) as exc:
            if transport is not None:
                transport.close()
            message = friendly_error(exc, creds.host, creds.port)
            logger.error("SFTP connection failed", error=message)
            raise ChannelError(message, details={"host": creds.host, "port": creds.port}) from exc

        self._transport = transport
        self._client = client
        self._validate()
        logger.info("SFTP connected", host=creds.host)

    @staticmethod
    def _restrict_algorithms(transport: paramiko.Transport) -> None:
        options = transport.get_security_options()
        options.key_types = HOST_KEY_TYPES
        options.kex = KEX_ALGORITHMS
        options.ciphers = CIPHERS
        options.digests = MACS

    def _validate(self) -> None:
        """List the root, falling back to the target directory."""
        client = self._require_client()
        try:
            client.listdir("/")
            return
        except (OSError, paramiko.SSHException) as exc:
            logger.debug("Root listing refused, trying target directory", error=str(exc))
        try:
            client.listdir(self.directory)
        except (OSError, paramiko.SSHException) as exc:
            self.disconnect()
            raise ChannelError(f"SFTP connection validation failed: {exc}") from exc

    def disconnect(self) -> None:
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def _require_client(self) -> paramiko.SFTPClient:
        if self._client is None:
            raise ChannelError("SFTP channel is not connected")
        return self._client

    # ─── File operations ───────────────────────────────

    def list(self, path: str | None = None) -> list[RemoteFileCandidate]:
        directory = path or self.directory
        client = self._require_client()
        try:
            entries = client.listdir_attr(directory)
        except (OSError, paramiko.SSHException) as exc:
            raise ChannelError(f"Listing {directory} failed: {exc}") from exc
        # listdir_attr order is server-defined
        entries = sorted(entries, key=lambda attr: attr.filename)
        return [self._candidate(directory, attr) for attr in entries]

    @staticmethod
    def _candidate(directory: str, attr: Any) -> RemoteFileCandidate:
        mode = getattr(attr, "st_mode", None)
        mtime = getattr(attr, "st_mtime", None)
        return RemoteFileCandidate(
            name=attr.filename,
            size=int(getattr(attr, "st_size", 0) or 0),
            modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc) if mtime is not None else None,
            is_regular_file=mode is not None and stat.S_ISREG(mode),
            path=posixpath.join(directory, attr.filename),
        )

    def fetch(self, path: str) -> bytes:
        client = self._require_client()
        buffer = io.BytesIO()
        try:
            client.getfo(path, buffer)
        except (OSError, paramiko.SSHException) as exc:
            raise ChannelError(f"Download of {path} failed: {exc}") from exc
        return buffer.getvalue()

    def delete(self, path: str) -> None:
        client = self._require_client()
        try:
            client.remove(path)
        except (OSError, paramiko.SSHException) as exc:
            raise ChannelError(f"Delete of {path} failed: {exc}") from exc
