"""
Typed credential records for the two remote systems.

Credentials are plain frozen values built from settings and passed
explicitly; callers check ``is_loaded()`` before use.
"""

from __future__ import annotations

from dataclasses import dataclass

from ordersync.core.config import Settings


@dataclass(frozen=True)
class SftpCredentials:
    host: str
    username: str
    password: str
    port: int = 22
    directory: str = "/"

    def missing_fields(self) -> list[str]:
        """Names (never values) of required fields that are empty."""
        return [
            name
            for name, value in (
                ("host", self.host),
                ("username", self.username),
                ("password", self.password),
            )
            if not value
        ]

    def is_loaded(self) -> bool:
        return not self.missing_fields()

    def describe(self) -> dict[str, object]:
        """Loggable view without the password."""
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "directory": self.directory,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> SftpCredentials:
        return cls(
            host=settings.SFTP_HOST,
            port=settings.SFTP_PORT,
            username=settings.SFTP_USERNAME,
            password=settings.SFTP_PASSWORD,
            directory=settings.SFTP_DIRECTORY or "/",
        )


@dataclass(frozen=True)
class CommerceCredentials:
    base_url: str
    api_key: str

    def is_loaded(self) -> bool:
        return bool(self.base_url and self.api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> CommerceCredentials:
        return cls(
            base_url=settings.COMMERCE_API_BASE_URL,
            api_key=settings.COMMERCE_API_KEY,
        )
