from __future__ import annotations

from core.models import ENTITY_TEXT_LINK, ENTITY_URL, Entity
from core.urls import clean_url, extract_urls


def test_text_link_uses_entity_url() -> None:
    entities = [Entity(ENTITY_TEXT_LINK, 0, 5, "https://example.com")]

    assert extract_urls("click here", entities) == ["https://example.com"]


def test_url_entity_with_utf16_offsets_and_trailing_punctuation() -> None:
    # "a😊 " is four UTF-16 code units.
    text = "a😊 https://example.com."
    entities = [Entity(ENTITY_URL, 4, len("https://example.com."))]

    assert extract_urls(text, entities) == ["https://example.com"]


def test_dedup_keeps_first_position() -> None:
    text = "https://b.example, https://a.example and https://b.example!"
    entities = [
        Entity(ENTITY_URL, 0, 18),
        Entity(ENTITY_URL, 19, 17),
        Entity(ENTITY_URL, 41, 18),
    ]

    assert extract_urls(text, entities) == ["https://b.example", "https://a.example"]


def test_ignores_other_entities_and_empty_results() -> None:
    entities = [
        Entity("bold", 0, 4),
        Entity(ENTITY_URL, 0, 2),
        Entity(ENTITY_TEXT_LINK, 0, 4, "  "),
    ]

    assert extract_urls("... text", entities) == []


def test_clean_url_strips_brackets_and_colons() -> None:
    assert clean_url(" (https://example.com/path): ") == "(https://example.com/path"
    assert clean_url("https://example.com/a];") == "https://example.com/a"
