"""Message classification (core domain).

Decision table, first match wins:
- media, no text, no URLs -> file
- media with anything else -> note (text + all URLs)
- no media, no URLs -> note
- no media, one URL -> bookmark; any other text becomes the bookmark notes
- no media, several URLs -> note
"""

from __future__ import annotations

from typing import Sequence

from core.models import (
    KIND_BOOKMARK,
    KIND_FILE,
    KIND_NOTE,
    Classification,
    MessageUnit,
)
from core.urls import extract_urls


def classify_unit(unit: MessageUnit) -> Classification:
    text = unit.text.strip()
    urls = tuple(extract_urls(unit.text, unit.entities))
    has_media = unit.has_media

    if has_media and not text and not urls:
        return Classification(kind=KIND_FILE, has_media=True)

    if has_media:
        return Classification(kind=KIND_NOTE, text=text, urls=urls, has_media=True)

    if len(urls) == 1:
        url = urls[0]
        notes = "" if text == url else text
        return Classification(kind=KIND_BOOKMARK, url=url, notes=notes, urls=urls)

    return Classification(kind=KIND_NOTE, text=text, urls=urls)


def representative_unit(batch: Sequence[MessageUnit]) -> MessageUnit:
    """Pick the unit whose text speaks for the whole batch.

    Albums carry their caption on one arbitrary member, so the first member
    with text wins and the first member is the fallback.
    """

    if not batch:
        raise ValueError("batch is empty")
    for unit in batch:
        if unit.text.strip():
            return unit
    return batch[0]
