"""Attachment extraction for message batches (core domain)."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from core.models import (
    MEDIA_ANIMATION,
    MEDIA_AUDIO,
    MEDIA_DOCUMENT,
    MEDIA_KINDS,
    MEDIA_PHOTO,
    MEDIA_STICKER,
    MEDIA_VIDEO,
    MEDIA_VIDEO_NOTE,
    MEDIA_VOICE,
    Attachment,
    MediaRef,
    MessageUnit,
)

FALLBACK_FILENAME = "upload.bin"


def safe_filename(name: str) -> str:
    """Keep only the final path component of a user-supplied filename."""

    name = name.strip().replace("\\", "/")
    if not name:
        return FALLBACK_FILENAME
    base = PurePosixPath(name).name
    if base in {"", ".", ".."}:
        return FALLBACK_FILENAME
    return base


def _first_of_kind(unit: MessageUnit, kind: str) -> Optional[MediaRef]:
    for media in unit.media:
        if media.kind == kind:
            return media
    return None


def _attachment_for(media: MediaRef) -> Attachment:
    kind = media.kind
    mime = media.mime
    size = media.size

    if kind == MEDIA_PHOTO:
        # Variants are listed smallest first.
        if media.sizes:
            size = media.sizes[-1]
        filename, mime = "photo.jpg", "image/jpeg"
    elif kind == MEDIA_DOCUMENT:
        filename = safe_filename(media.filename or "document")
    elif kind == MEDIA_VIDEO:
        filename = "video.mp4"
    elif kind == MEDIA_AUDIO:
        filename = safe_filename(media.filename or "audio.mp3")
    elif kind == MEDIA_VOICE:
        filename = "voice.ogg"
    elif kind == MEDIA_ANIMATION:
        filename = safe_filename(media.filename or "animation.mp4")
    elif kind == MEDIA_VIDEO_NOTE:
        filename, mime = "video_note.mp4", "video/mp4"
    elif kind == MEDIA_STICKER:
        filename = "sticker.tgs" if media.animated else "sticker.webp"
        mime = ""
    else:
        filename = safe_filename(media.filename)

    return Attachment(
        file_id=media.file_id,
        filename=filename or FALLBACK_FILENAME,
        mime=mime,
        size=max(size, 0),
        handle=media.handle,
    )


def extract_attachments(batch: Iterable[MessageUnit]) -> List[Attachment]:
    """Collect one attachment per media kind per unit, unique by file id.

    Output follows batch order, then the kind order in MEDIA_KINDS. A file id
    seen earlier in the batch (a forwarded duplicate sticker, say) is skipped.
    """

    attachments: List[Attachment] = []
    seen: set[str] = set()

    for unit in batch:
        for kind in MEDIA_KINDS:
            media = _first_of_kind(unit, kind)
            if media is None:
                continue
            file_id = media.file_id.strip()
            if not file_id or file_id in seen:
                continue
            seen.add(file_id)
            attachments.append(_attachment_for(media))

    return attachments
