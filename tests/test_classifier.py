from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.classifier import classify_unit, representative_unit
from core.models import (
    ENTITY_URL,
    KIND_BOOKMARK,
    KIND_FILE,
    KIND_NOTE,
    MEDIA_PHOTO,
    Entity,
    MediaRef,
    MessageUnit,
)

URL_A = "https://example.com"
URL_B = "https://example.org/page"


def _unit(text: str = "", *, urls: tuple[str, ...] = (), media: bool = False, message_id: int = 1) -> MessageUnit:
    entities = []
    for url in urls:
        offset = text.find(url)
        assert offset >= 0
        entities.append(Entity(ENTITY_URL, offset, len(url)))
    return MessageUnit(
        message_id=message_id,
        chat_id=10,
        sender_id=20,
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        text=text,
        entities=tuple(entities),
        media=(MediaRef(kind=MEDIA_PHOTO, file_id="p1"),) if media else (),
    )


def test_single_url_only_is_bookmark_without_notes() -> None:
    result = classify_unit(_unit(URL_A, urls=(URL_A,)))

    assert result.kind == KIND_BOOKMARK
    assert result.url == URL_A
    assert result.notes == ""


def test_single_url_with_text_is_bookmark_with_notes() -> None:
    text = f"{URL_A} interesting read"
    result = classify_unit(_unit(text, urls=(URL_A,)))

    assert result.kind == KIND_BOOKMARK
    assert result.url == URL_A
    assert result.notes == text
    assert result.urls == (URL_A,)


def test_media_without_text_is_file() -> None:
    result = classify_unit(_unit(media=True))

    assert result.kind == KIND_FILE
    assert result.has_media


def test_media_with_url_is_note() -> None:
    result = classify_unit(_unit(URL_A, urls=(URL_A,), media=True))

    assert result.kind == KIND_NOTE
    assert result.text == URL_A
    assert result.urls == (URL_A,)


def test_two_urls_is_note_with_all_urls() -> None:
    text = f"{URL_A} and {URL_B}"
    result = classify_unit(_unit(text, urls=(URL_A, URL_B)))

    assert result.kind == KIND_NOTE
    assert result.urls == (URL_A, URL_B)
    assert result.text == text


@pytest.mark.parametrize("media", [False, True])
@pytest.mark.parametrize("url_count", [0, 1, 2])
@pytest.mark.parametrize("extra_text", [False, True])
def test_classification_is_total(media: bool, url_count: int, extra_text: bool) -> None:
    urls = (URL_A, URL_B)[:url_count]
    parts = list(urls)
    if extra_text:
        parts.append("some words")
    result = classify_unit(_unit(" ".join(parts), urls=urls, media=media))

    if media and url_count == 0 and not extra_text:
        expected = KIND_FILE
    elif media:
        expected = KIND_NOTE
    elif url_count == 1:
        expected = KIND_BOOKMARK
    else:
        expected = KIND_NOTE
    assert result.kind == expected

    if result.kind == KIND_BOOKMARK:
        assert result.url == URL_A
        assert bool(result.notes) == extra_text
    if result.kind == KIND_NOTE:
        assert result.urls == urls
        assert result.text.strip() != "" or not parts


def test_representative_prefers_first_unit_with_text() -> None:
    batch = [
        _unit(media=True, message_id=1),
        _unit("first caption", media=True, message_id=2),
        _unit("second caption", media=True, message_id=3),
    ]

    assert representative_unit(batch).message_id == 2


def test_representative_falls_back_to_first_unit() -> None:
    batch = [_unit(media=True, message_id=5), _unit(media=True, message_id=6)]

    assert representative_unit(batch).message_id == 5
