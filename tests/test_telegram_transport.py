from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from telethon.errors import MessageNotModifiedError, RPCError
from telethon.tl.types import Photo, PhotoSize

from adapters.telegram_transport import MESSAGE_LIMIT, TelethonAckTransport, TelethonDownloader
from core.errors import DownloadError, FileTooLargeError, TransportError


class DummySent:
    def __init__(self, message_id: int) -> None:
        self.id = message_id


class FakeClient:
    def __init__(self, *, send_error=None, edit_error=None, payload: bytes = b"data") -> None:
        self.send_error = send_error
        self.edit_error = edit_error
        self.payload = payload
        self.sent: list[tuple[int, str, bool]] = []
        self.edited: list[tuple[int, int, str]] = []
        self.downloaded: list[object] = []

    async def send_message(self, chat_id, text, link_preview=True):
        if self.send_error:
            raise self.send_error
        self.sent.append((chat_id, text, link_preview))
        return DummySent(99)

    async def edit_message(self, chat_id, message_id, text, link_preview=True):
        if self.edit_error:
            raise self.edit_error
        self.edited.append((chat_id, message_id, text))

    async def download_media(self, media, file=None):
        self.downloaded.append(media)
        return self.payload


def _photo() -> Photo:
    return Photo(
        id=1,
        access_hash=2,
        file_reference=b"ref",
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        sizes=[PhotoSize(type="y", w=10, h=10, size=4)],
        dc_id=2,
    )


def test_send_returns_message_id_without_preview() -> None:
    client = FakeClient()

    message_id = asyncio.run(TelethonAckTransport(client).send(42, "x" * (MESSAGE_LIMIT + 10)))

    assert message_id == 99
    chat_id, text, link_preview = client.sent[0]
    assert chat_id == 42
    assert link_preview is False
    assert len(text) == MESSAGE_LIMIT + 1


def test_send_failure_raises_transport_error() -> None:
    client = FakeClient(send_error=RPCError(None, "CHAT_WRITE_FORBIDDEN", 403))

    with pytest.raises(TransportError):
        asyncio.run(TelethonAckTransport(client).send(42, "hi"))


def test_edit_never_raises() -> None:
    transport = TelethonAckTransport(FakeClient(edit_error=MessageNotModifiedError(request=None)))
    assert asyncio.run(transport.edit(42, 1, "same")) is True

    transport = TelethonAckTransport(FakeClient(edit_error=RPCError(None, "MESSAGE_ID_INVALID", 400)))
    assert asyncio.run(transport.edit(42, 1, "gone")) is False


def test_download_prefers_handle() -> None:
    client = FakeClient(payload=b"jpeg")
    photo = _photo()

    downloaded = asyncio.run(TelethonDownloader(client).download("fid", 100, photo))

    assert client.downloaded == [photo]
    assert downloaded.data == b"jpeg"
    assert downloaded.source_path == "fid.jpg"


def test_download_limits() -> None:
    with pytest.raises(FileTooLargeError) as excinfo:
        asyncio.run(TelethonDownloader(FakeClient(payload=b"12345")).download("fid", 4, _photo()))
    assert excinfo.value.size == 5

    with pytest.raises(DownloadError):
        asyncio.run(TelethonDownloader(FakeClient(payload=b"")).download("fid", 4, _photo()))

    with pytest.raises(DownloadError):
        asyncio.run(TelethonDownloader(FakeClient()).download("  ", 4))
