"""Error types shared between the core and its adapters."""

from __future__ import annotations

from typing import Optional

BODY_PREVIEW_CHARS = 600


class RemoteError(Exception):
    """Any failure talking to the bookmarking service."""

    status: int = 0


class RemoteAPIError(RemoteError):
    """Non-2xx response from the bookmarking service."""

    def __init__(self, status: int, body_preview: str = "") -> None:
        preview = body_preview.strip()
        if len(preview) > BODY_PREVIEW_CHARS:
            preview = preview[:BODY_PREVIEW_CHARS] + "…"
        self.status = status
        self.body_preview = preview
        if preview:
            message = f"karakeep api error: status={status} body_preview={preview!r}"
        else:
            message = f"karakeep api error: status={status}"
        super().__init__(message)


class RemoteTransportError(RemoteError):
    """The request never produced an HTTP response."""


class DownloadError(Exception):
    """Fetching a file from Telegram failed."""


class FileTooLargeError(DownloadError):
    def __init__(self, size: int, limit: int, filename: Optional[str] = None) -> None:
        self.size = size
        self.limit = limit
        self.filename = filename
        super().__init__(f"file too large: {size} bytes (limit {limit})")


class CredentialError(Exception):
    """A stored API key could not be decrypted."""


class InvalidServerURL(ValueError):
    """A server address was rejected by validation."""


class TransportError(Exception):
    """Sending or editing a Telegram message failed."""


class StorageError(Exception):
    """The user settings store could not be read or written."""
