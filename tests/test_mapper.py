from __future__ import annotations

from datetime import datetime, timezone

from telethon.tl.types import (
    Document,
    DocumentAttributeAnimated,
    DocumentAttributeAudio,
    DocumentAttributeFilename,
    DocumentAttributeSticker,
    DocumentAttributeVideo,
    InputStickerSetEmpty,
    MessageEntityBold,
    MessageEntityBotCommand,
    MessageEntityTextUrl,
    MessageEntityUrl,
    MessageMediaDocument,
    MessageMediaPhoto,
    MessageMediaWebPage,
    Photo,
    PhotoSize,
    PhotoStrippedSize,
    WebPageEmpty,
)

from adapters.telegram_mapper import build_unit
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
)

DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


class DummyMessage:
    def __init__(
        self,
        *,
        text: str = "",
        entities=None,
        media=None,
        grouped_id=None,
        is_private: bool = True,
        sender_id: "int | None" = 7,
    ) -> None:
        self.id = 10
        self.chat_id = 42
        self.sender_id = sender_id
        self.date = DATE
        self.raw_text = text
        self.entities = entities
        self.media = media
        self.grouped_id = grouped_id
        self.is_private = is_private


def _document(mime: str, *attributes, size: int = 1234) -> Document:
    return Document(
        id=555,
        access_hash=777,
        file_reference=b"ref",
        date=DATE,
        mime_type=mime,
        size=size,
        dc_id=2,
        attributes=list(attributes),
    )


def test_text_and_entities_are_mapped() -> None:
    text = "see https://a.example and docs"
    message = DummyMessage(
        text=text,
        entities=[
            MessageEntityUrl(offset=4, length=17),
            MessageEntityBold(offset=0, length=3),
            MessageEntityTextUrl(offset=26, length=4, url="https://docs.example"),
        ],
    )

    unit = build_unit(message)

    assert unit.message_id == 10
    assert unit.chat_id == 42
    assert unit.sender_id == 7
    assert unit.text == text
    assert unit.entities == (
        Entity(ENTITY_URL, 4, 17),
        Entity(ENTITY_TEXT_LINK, 26, 4, "https://docs.example"),
    )
    assert unit.media == ()
    assert unit.command is None
    assert unit.group_id is None


def test_sender_falls_back_to_chat() -> None:
    assert build_unit(DummyMessage(text="hi", sender_id=None)).sender_id == 42


def test_bot_command_with_mention_and_args() -> None:
    message = DummyMessage(
        text="/server@keep_bot https://keep.example.com",
        entities=[MessageEntityBotCommand(offset=0, length=16)],
    )

    unit = build_unit(message)

    assert unit.command == "server"
    assert unit.command_args == "https://keep.example.com"


def test_command_not_at_start_is_plain_text() -> None:
    message = DummyMessage(text="try /help", entities=[MessageEntityBotCommand(offset=4, length=5)])

    assert build_unit(message).command is None


def test_photo_keeps_size_variants_and_group() -> None:
    photo = Photo(
        id=111,
        access_hash=222,
        file_reference=b"ref",
        date=DATE,
        sizes=[
            PhotoStrippedSize(type="i", bytes=b"\x01\x02"),
            PhotoSize(type="m", w=320, h=240, size=1000),
            PhotoSize(type="y", w=1280, h=960, size=9000),
        ],
        dc_id=2,
    )
    message = DummyMessage(media=MessageMediaPhoto(photo=photo), grouped_id=98765, is_private=False)

    unit = build_unit(message)

    assert len(unit.media) == 1
    media = unit.media[0]
    assert media.kind == MEDIA_PHOTO
    assert media.sizes == (1000, 9000)
    assert media.size == 9000
    assert media.file_id
    assert media.handle is photo
    assert unit.group_id == "98765"
    assert unit.is_private is False


def test_document_kinds() -> None:
    cases = [
        (_document("application/pdf", DocumentAttributeFilename(file_name="a.pdf")), MEDIA_DOCUMENT),
        (_document("video/mp4", DocumentAttributeVideo(duration=3, w=640, h=480)), MEDIA_VIDEO),
        (
            _document("video/mp4", DocumentAttributeVideo(duration=3, w=240, h=240, round_message=True)),
            MEDIA_VIDEO_NOTE,
        ),
        (
            _document("video/mp4", DocumentAttributeVideo(duration=3, w=240, h=240), DocumentAttributeAnimated()),
            MEDIA_ANIMATION,
        ),
        (_document("audio/ogg", DocumentAttributeAudio(duration=5, voice=True)), MEDIA_VOICE),
        (_document("audio/mpeg", DocumentAttributeAudio(duration=5)), MEDIA_AUDIO),
        (
            _document("image/webp", DocumentAttributeSticker(alt=":)", stickerset=InputStickerSetEmpty())),
            MEDIA_STICKER,
        ),
    ]

    for document, expected in cases:
        unit = build_unit(DummyMessage(media=MessageMediaDocument(document=document)))
        assert unit.media[0].kind == expected, document.mime_type


def test_document_metadata() -> None:
    document = _document("application/pdf", DocumentAttributeFilename(file_name="report.pdf"), size=4096)

    media = build_unit(DummyMessage(media=MessageMediaDocument(document=document))).media[0]

    assert media.filename == "report.pdf"
    assert media.mime == "application/pdf"
    assert media.size == 4096
    assert media.animated is False
    assert media.handle is document


def test_animated_sticker_flag() -> None:
    document = _document(
        "application/x-tgsticker",
        DocumentAttributeSticker(alt=":)", stickerset=InputStickerSetEmpty()),
    )

    media = build_unit(DummyMessage(media=MessageMediaDocument(document=document))).media[0]

    assert media.kind == MEDIA_STICKER
    assert media.animated is True


def test_link_preview_is_not_media() -> None:
    message = DummyMessage(text="https://a.example", media=MessageMediaWebPage(webpage=WebPageEmpty(id=1)))

    assert build_unit(message).media == ()
