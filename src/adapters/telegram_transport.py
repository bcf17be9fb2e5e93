"""Telethon adapters for the acknowledgment message and file downloads."""

from __future__ import annotations

import logging
from typing import Any

from telethon import utils
from telethon.errors import MessageNotModifiedError, RPCError

from core.errors import DownloadError, FileTooLargeError, TransportError
from core.formatting import clip
from core.models import DownloadedFile

LOGGER = logging.getLogger(__name__)

# Telegram rejects messages above 4096 characters.
MESSAGE_LIMIT = 4000


class TelethonAckTransport:
    """Sends and edits bot messages through a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, chat_id: int, text: str) -> int:
        try:
            message = await self._client.send_message(chat_id, clip(text, MESSAGE_LIMIT), link_preview=False)
        except (RPCError, OSError, ValueError) as e:
            raise TransportError(f"send_message failed: {e}") from e
        return message.id

    async def edit(self, chat_id: int, message_id: int, text: str) -> bool:
        try:
            await self._client.edit_message(chat_id, message_id, clip(text, MESSAGE_LIMIT), link_preview=False)
        except MessageNotModifiedError:
            return True
        except (RPCError, OSError, ValueError) as e:
            LOGGER.warning("Failed to edit ack chat_id=%s message_id=%s: %s", chat_id, message_id, e)
            return False
        return True


class TelethonDownloader:
    """Downloads message media into memory with a size ceiling."""

    def __init__(self, client) -> None:
        self._client = client

    async def download(self, file_id: str, max_bytes: int, handle: Any = None) -> DownloadedFile:
        file_id = file_id.strip()
        if not file_id:
            raise DownloadError("file id is empty")

        media = handle if handle is not None else utils.resolve_bot_file_id(file_id)
        if media is None:
            raise DownloadError(f"cannot resolve file id {file_id!r}")

        try:
            data = await self._client.download_media(media, file=bytes)
        except (RPCError, OSError, ValueError, TypeError) as e:
            raise DownloadError(f"download failed: {e}") from e
        if not data:
            raise DownloadError("telegram returned an empty file")
        if max_bytes > 0 and len(data) > max_bytes:
            raise FileTooLargeError(len(data), max_bytes)

        source_path = f"{file_id}{utils.get_extension(media)}"
        return DownloadedFile(data=data, source_path=source_path)
