"""URL extraction from message entities (core domain)."""

from __future__ import annotations

import re
from typing import Iterable, List

from core.models import ENTITY_TEXT_LINK, ENTITY_URL, Entity
from core.utf16 import slice_by_utf16

_TRAILING_PUNCT_RE = re.compile(r"[)\].,!?:;]+$")


def clean_url(raw: str) -> str:
    """Strip whitespace and trailing sentence punctuation from a URL."""

    return _TRAILING_PUNCT_RE.sub("", raw.strip()).strip()


def extract_urls(text: str, entities: Iterable[Entity]) -> List[str]:
    """Return URLs from link entities, deduplicated in first-seen order.

    Text links contribute their target URL; plain URL entities contribute the
    text they cover. Telegram already did the URL detection, so no regex scan
    of the text happens here.
    """

    urls: List[str] = []
    seen: set[str] = set()

    for entity in entities:
        if entity.kind == ENTITY_TEXT_LINK:
            candidate = entity.url or ""
        elif entity.kind == ENTITY_URL:
            candidate = slice_by_utf16(text, entity.offset, entity.length)
        else:
            continue

        url = clean_url(candidate)
        if not url or url in seen:
            continue
        seen.add(url)
        urls.append(url)

    return urls
