"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon import utils
from telethon.tl.custom import Message
from telethon.tl.types import (
    DocumentAttributeAnimated,
    DocumentAttributeAudio,
    DocumentAttributeFilename,
    DocumentAttributeSticker,
    DocumentAttributeVideo,
    MessageEntityBotCommand,
    MessageEntityTextUrl,
    MessageEntityUrl,
    MessageMediaDocument,
    MessageMediaPhoto,
    PhotoCachedSize,
    PhotoSize,
    PhotoSizeProgressive,
)

from core.models import (
    ENTITY_TEXT_LINK,
    ENTITY_URL,
    MEDIA_ANIMATION,
    MEDIA_AUDIO,
    MEDIA_DOCUMENT,
    MEDIA_PHOTO,
    MEDIA_STICKER,
    MEDIA_VIDEO,
    MEDIA_VIDEO_NOTE,
    MEDIA_VOICE,
    Entity,
    MediaRef,
    MessageUnit,
)
from core.utf16 import slice_by_utf16

ANIMATED_STICKER_MIME = "application/x-tgsticker"


def _map_entities(raw_entities) -> tuple[Entity, ...]:
    entities = []
    for raw in raw_entities or []:
        if isinstance(raw, MessageEntityTextUrl):
            entities.append(Entity(ENTITY_TEXT_LINK, raw.offset, raw.length, raw.url))
        elif isinstance(raw, MessageEntityUrl):
            entities.append(Entity(ENTITY_URL, raw.offset, raw.length))
    return tuple(entities)


def _parse_command(text: str, raw_entities) -> tuple[Optional[str], str]:
    """Return (command, args) when the message starts with a bot command."""

    if not raw_entities:
        return None, ""
    first = raw_entities[0]
    if not isinstance(first, MessageEntityBotCommand) or first.offset != 0:
        return None, ""
    token = slice_by_utf16(text, 0, first.length)
    # "/server@my_bot" addresses a specific bot in groups.
    name = token.lstrip("/").split("@", 1)[0]
    return name, text[len(token):].strip()


def _photo_size_bytes(size: Any) -> int:
    if isinstance(size, PhotoSize):
        return size.size
    if isinstance(size, PhotoSizeProgressive):
        return max(size.sizes) if size.sizes else 0
    if isinstance(size, PhotoCachedSize):
        return len(size.bytes)
    return 0


def _file_id(media: Any, fallback_prefix: str) -> str:
    packed = utils.pack_bot_file_id(media)
    if packed:
        return packed
    return f"{fallback_prefix}:{media.id}"


def _document_kind(document: Any) -> str:
    attributes = document.attributes or []
    if any(isinstance(attr, DocumentAttributeSticker) for attr in attributes):
        return MEDIA_STICKER
    for attr in attributes:
        if isinstance(attr, DocumentAttributeVideo) and attr.round_message:
            return MEDIA_VIDEO_NOTE
    if any(isinstance(attr, DocumentAttributeAnimated) for attr in attributes):
        return MEDIA_ANIMATION
    for attr in attributes:
        if isinstance(attr, DocumentAttributeAudio):
            return MEDIA_VOICE if attr.voice else MEDIA_AUDIO
    if any(isinstance(attr, DocumentAttributeVideo) for attr in attributes):
        return MEDIA_VIDEO
    return MEDIA_DOCUMENT


def _document_filename(document: Any) -> str:
    for attr in document.attributes or []:
        if isinstance(attr, DocumentAttributeFilename):
            return attr.file_name or ""
    return ""


def _map_media(message: Message) -> tuple[MediaRef, ...]:
    # message.photo also returns link-preview photos, so look at the media
    # container directly.
    media = message.media
    if isinstance(media, MessageMediaPhoto) and media.photo is not None and hasattr(media.photo, "sizes"):
        photo = media.photo
        sizes = tuple(size for size in (_photo_size_bytes(s) for s in photo.sizes) if size > 0)
        return (
            MediaRef(
                kind=MEDIA_PHOTO,
                file_id=_file_id(photo, "photo"),
                size=sizes[-1] if sizes else 0,
                mime="image/jpeg",
                sizes=sizes,
                handle=photo,
            ),
        )

    if isinstance(media, MessageMediaDocument) and media.document is not None and hasattr(media.document, "attributes"):
        document = media.document
        mime = document.mime_type or ""
        kind = _document_kind(document)
        return (
            MediaRef(
                kind=kind,
                file_id=_file_id(document, "document"),
                size=document.size or 0,
                mime=mime,
                filename=_document_filename(document),
                animated=kind == MEDIA_STICKER and mime == ANIMATED_STICKER_MIME,
                handle=document,
            ),
        )

    return ()


def build_unit(message: Message) -> MessageUnit:
    """Build a core MessageUnit from a Telethon Message."""

    text = message.raw_text or ""
    raw_entities = message.entities or []
    command, command_args = _parse_command(text, raw_entities)
    grouped_id = getattr(message, "grouped_id", None)

    return MessageUnit(
        message_id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id or message.chat_id,
        date=message.date,
        text=text,
        entities=_map_entities(raw_entities),
        media=_map_media(message),
        group_id=str(grouped_id) if grouped_id else None,
        is_private=bool(message.is_private),
        command=command,
        command_args=command_args,
    )
