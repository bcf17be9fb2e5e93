"""Polling helpers for waiting on remote enrichment.

The bookmarking service crawls and summarizes in the background, so the only
way to observe progress is to re-read the bookmark until it looks ready.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from core.errors import RemoteError
from core.models import Bookmark

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INTERVAL = 3.0
DEFAULT_TIMEOUT = 180.0

MAX_SCAN_DEPTH = 6
CONTENT_MIN_CHARS = 200
LARGE_STRING_MIN_CHARS = 400

CONTENT_KEYS = frozenset(
    {
        "content",
        "html",
        "text",
        "textcontent",
        "readablecontent",
        "excerpt",
        "description",
        "markdown",
        "article",
    }
)
# User-authored fields say nothing about whether the page was crawled.
IGNORED_KEYS = frozenset({"notes", "note", "summary"})
STATUS_KEYS = frozenset({"crawlStatus", "taggingStatus"})

EMPTY_SUMMARY_MARKERS = ("content is empty", "no information to summarize")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    ready: bool
    value: Optional[T] = None
    attempts: int = 0


async def _sleep_or_cancel(interval: float, cancel: Optional[asyncio.Event]) -> bool:
    """Sleep for `interval`; return True if `cancel` fired first."""

    if cancel is None:
        await asyncio.sleep(interval)
        return False
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return False
    return True


async def poll_until(
    read: Callable[[], Awaitable[T]],
    is_ready: Callable[[T], bool],
    *,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
    cancel: Optional[asyncio.Event] = None,
    before_read: Optional[Callable[[], Awaitable[Any]]] = None,
    label: str = "poll",
) -> PollResult[T]:
    """Re-run `read` every `interval` seconds until `is_ready` or `timeout`.

    `before_read` runs ahead of every read and its failures are ignored.
    Remote errors during a read are logged and retried on the next tick.
    Setting `cancel` ends the wait at once with a not-ready result.
    """

    if interval <= 0:
        interval = DEFAULT_INTERVAL
    if timeout <= 0:
        timeout = DEFAULT_TIMEOUT

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            LOGGER.info("%s cancelled after %s attempt(s)", label, attempts)
            return PollResult(ready=False, attempts=attempts)

        if before_read is not None:
            try:
                await before_read()
            except RemoteError as exc:
                LOGGER.debug("%s pre-read step failed: %s", label, exc)

        try:
            value = await read()
        except RemoteError as exc:
            LOGGER.warning("%s read failed: %s", label, exc)
        else:
            attempts += 1
            ready = is_ready(value)
            if attempts == 1 or attempts % 5 == 0 or ready:
                LOGGER.info("%s attempt=%s ready=%s", label, attempts, ready)
            if ready:
                return PollResult(ready=True, value=value, attempts=attempts)

        if loop.time() >= deadline:
            LOGGER.info("%s timed out after %s attempt(s)", label, attempts)
            return PollResult(ready=False, attempts=attempts)

        if await _sleep_or_cancel(interval, cancel):
            LOGGER.info("%s cancelled after %s attempt(s)", label, attempts)
            return PollResult(ready=False, attempts=attempts)


def _has_success_status(node: Any, depth: int = 0) -> bool:
    if depth > MAX_SCAN_DEPTH:
        return False
    if isinstance(node, dict):
        for key, value in node.items():
            if key in STATUS_KEYS and value == "success":
                return True
            if _has_success_status(value, depth + 1):
                return True
    elif isinstance(node, list):
        return any(_has_success_status(item, depth + 1) for item in node)
    return False


def _find_page_content(node: Any, depth: int, signals: dict[str, Any]) -> bool:
    if depth > MAX_SCAN_DEPTH or node is None:
        return False

    if isinstance(node, dict):
        for key, value in node.items():
            lowered = str(key).lower()
            if lowered in IGNORED_KEYS:
                continue
            if lowered in CONTENT_KEYS:
                if isinstance(value, str):
                    length = len(value.strip())
                    signals[key] = length
                    if length >= CONTENT_MIN_CHARS:
                        return True
                elif value is not None:
                    signals[key] = f"<{type(value).__name__}>"
            if _find_page_content(value, depth + 1, signals):
                return True
        return False

    if isinstance(node, list):
        return any(_find_page_content(item, depth + 1, signals) for item in node)

    if isinstance(node, str):
        length = len(node.strip())
        if length >= LARGE_STRING_MIN_CHARS:
            signals["large_string"] = length
            return True
    return False


def extraction_signals(raw: Any) -> tuple[bool, dict[str, Any]]:
    """Decide whether the service has extracted page content.

    Returns (ready, signals); signals describe what was seen for logging.
    Schemas differ between server versions, so besides the explicit crawl
    status this scans the payload for any sizeable page-content string.
    """

    if not raw:
        return False, {"raw": "empty"}
    if _has_success_status(raw):
        return True, {"status": "success"}
    signals: dict[str, Any] = {}
    return _find_page_content(raw, 0, signals), signals


def has_extracted_content(bookmark: Bookmark) -> bool:
    ready, signals = extraction_signals(bookmark.raw)
    LOGGER.debug("Extraction signals for %s: %s", bookmark.id, signals)
    return ready


def looks_empty_summary(summary: str) -> bool:
    lowered = summary.lower()
    return any(marker in lowered for marker in EMPTY_SUMMARY_MARKERS)


def has_summary(bookmark: Bookmark) -> bool:
    summary = bookmark.summary_text()
    return bool(summary) and not looks_empty_summary(summary)
