"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for Telegram, storage and bookmarking
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from core.models import Asset, Bookmark, DownloadedFile, UserSettings


class AckTransportPort(Protocol):
    """Chat operations used for the acknowledgment message."""

    async def send(self, chat_id: int, text: str) -> int:
        """Send a message and return its id; raises TransportError."""
        ...

    async def edit(self, chat_id: int, message_id: int, text: str) -> bool:
        """Edit a message in place; failures are logged, never raised."""
        ...


class DownloaderPort(Protocol):
    async def download(self, file_id: str, max_bytes: int, handle: Any = None) -> DownloadedFile:
        """Fetch file bytes; raises DownloadError or FileTooLargeError."""
        ...


class BookmarkAPIPort(Protocol):
    """Remote bookmarking operations; failures raise RemoteError."""

    async def create_bookmark(self, url: str = "", title: str = "", text: str = "") -> Bookmark:
        ...

    async def get_bookmark(self, bookmark_id: str) -> Bookmark:
        ...

    async def summarize(self, bookmark_id: str) -> Bookmark:
        ...

    async def upload_asset(self, data: bytes, filename: str, mime: str) -> Asset:
        ...

    async def attach_asset(self, bookmark_id: str, asset_id: str) -> None:
        ...


# Builds a client for one user's (base_url, api_key); raises ValueError.
BookmarkAPIFactory = Callable[[str, str], BookmarkAPIPort]


class UserStorePort(Protocol):
    """Per-user settings; failures raise StorageError."""

    def upsert_user(self, user_id: int) -> None:
        ...

    def get_user(self, user_id: int) -> UserSettings:
        """Return settings with a decrypted key; raises CredentialError."""
        ...

    def set_server_base_url(self, user_id: int, server_base_url: str) -> None:
        ...

    def set_api_key(self, user_id: int, api_key: str) -> None:
        ...

    def record_success(self, user_id: int, bookmark_id: str) -> None:
        ...
