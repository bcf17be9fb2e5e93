"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Telethon message objects or the remote service's JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

KIND_BOOKMARK = "bookmark"
KIND_NOTE = "note"
KIND_FILE = "file"

ENTITY_URL = "url"
ENTITY_TEXT_LINK = "text_link"

MEDIA_PHOTO = "photo"
MEDIA_DOCUMENT = "document"
MEDIA_VIDEO = "video"
MEDIA_AUDIO = "audio"
MEDIA_VOICE = "voice"
MEDIA_ANIMATION = "animation"
MEDIA_VIDEO_NOTE = "video_note"
MEDIA_STICKER = "sticker"

# Order in which attachments are pulled out of a single message.
MEDIA_KINDS = (
    MEDIA_PHOTO,
    MEDIA_DOCUMENT,
    MEDIA_VIDEO,
    MEDIA_AUDIO,
    MEDIA_VOICE,
    MEDIA_ANIMATION,
    MEDIA_VIDEO_NOTE,
    MEDIA_STICKER,
)


@dataclass(frozen=True)
class Entity:
    """Rich-text annotation; offset and length count UTF-16 code units."""

    kind: str
    offset: int
    length: int
    url: Optional[str] = None


@dataclass(frozen=True)
class MediaRef:
    """One downloadable media object as described by Telegram.

    `sizes` is only used for photos and lists the declared byte size of each
    variant in ascending order. `handle` is the platform object the
    downloader can fetch directly; it never takes part in comparisons.
    """

    kind: str
    file_id: str
    size: int = 0
    mime: str = ""
    filename: str = ""
    animated: bool = False
    sizes: tuple[int, ...] = ()
    handle: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class MessageUnit:
    """Minimal message context used by the core processing pipeline."""

    message_id: int
    chat_id: int
    sender_id: int
    date: datetime
    text: str = ""
    entities: tuple[Entity, ...] = ()
    media: tuple[MediaRef, ...] = ()
    group_id: Optional[str] = None
    is_private: bool = True
    command: Optional[str] = None
    command_args: str = ""

    @property
    def has_media(self) -> bool:
        return bool(self.media)


@dataclass(frozen=True)
class Attachment:
    """Reference to a file that should be uploaded to the bookmark."""

    file_id: str
    filename: str
    mime: str
    size: int
    handle: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Classification:
    """How one batch should be saved remotely."""

    kind: str
    url: str = ""
    notes: str = ""
    text: str = ""
    urls: tuple[str, ...] = ()
    has_media: bool = False


@dataclass(frozen=True)
class DownloadedFile:
    data: bytes
    source_path: str


@dataclass(frozen=True)
class Asset:
    id: str
    filename: str = ""
    mime: str = ""


@dataclass
class Bookmark:
    """Best-effort view of a remote bookmark.

    The decoded payload is kept in `raw` so readiness checks stay resilient
    to schema changes.
    """

    id: str = ""
    url: str = ""
    title: str = ""
    notes: str = ""
    summary: Any = None
    tags: list[str] = field(default_factory=list)
    raw: Any = None

    def summary_text(self) -> str:
        """Decode the summary, which may be a string or an object."""

        if isinstance(self.summary, str):
            return self.summary.strip()
        if isinstance(self.summary, dict):
            for key in ("text", "summary"):
                value = self.summary.get(key)
                if isinstance(value, str):
                    return value.strip()
        return ""


@dataclass(frozen=True)
class UserSettings:
    """Per-user endpoint and credential as seen by the pipeline."""

    user_id: int
    server_base_url: str = ""
    api_key: Optional[str] = None
    last_success_at: Optional[datetime] = None
    last_success_id: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.server_base_url.strip()) and bool(self.api_key)
