"""Karakeep REST API adapter.

Implements the core BookmarkAPIPort over `urllib`. Requests are blocking, so
each one runs in a worker thread to keep the event loop free for other
batches while a slow server answers.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.error
import urllib.request
import uuid
from typing import Any, Optional
from urllib.parse import quote, urlsplit

from core.errors import RemoteAPIError, RemoteTransportError
from core.models import Asset, Bookmark

LOGGER = logging.getLogger(__name__)

DEFAULT_PREFIX = "/api/v1"
ALTERNATE_PREFIX = "/api"
# Error bodies can be whole HTML pages; only this much is kept for the preview.
# Successful bodies are read in full since crawled bookmarks carry whole articles.
MAX_ERROR_BODY_BYTES = 32 * 1024


def _pick_prefix(prefix: str) -> str:
    prefix = prefix.strip()
    if not prefix:
        return DEFAULT_PREFIX
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix.rstrip("/")


def _decode_json(raw: bytes) -> Any:
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw.decode("utf-8", errors="replace"))
    except json.JSONDecodeError:
        LOGGER.debug("Karakeep returned a non-JSON body (%s bytes)", len(raw))
        return {}
    # Some deployments wrap responses as {"data": {...}}.
    if isinstance(payload, dict) and "id" not in payload and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


def _error_preview(error: urllib.error.HTTPError) -> str:
    try:
        raw = error.read(MAX_ERROR_BODY_BYTES)
    except (http.client.HTTPException, OSError):
        return ""
    return raw.decode("utf-8", errors="replace")


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def bookmark_from_payload(payload: Any) -> Bookmark:
    """Build a Bookmark from whatever shape the server returned."""

    if not isinstance(payload, dict):
        return Bookmark(raw=payload)

    content = payload.get("content") if isinstance(payload.get("content"), dict) else {}
    tags = []
    for tag in payload.get("tags") or []:
        if isinstance(tag, dict):
            name = _text(tag.get("name"))
        else:
            name = _text(tag)
        if name:
            tags.append(name)

    return Bookmark(
        id=_text(payload.get("id")),
        url=_text(payload.get("url")) or _text(content.get("url")),
        title=_text(payload.get("title")) or _text(content.get("title")),
        notes=_text(payload.get("note")) or _text(payload.get("notes")),
        summary=payload.get("summary"),
        tags=tags,
        raw=payload,
    )


def asset_from_payload(payload: Any) -> Asset:
    if not isinstance(payload, dict):
        return Asset(id="")
    return Asset(
        id=_text(payload.get("id")) or _text(payload.get("assetId")),
        filename=_text(payload.get("filename")) or _text(payload.get("fileName")),
        mime=_text(payload.get("mime")) or _text(payload.get("contentType")),
    )


def encode_multipart(fields: dict[str, str], file_field: str, filename: str, mime: str, data: bytes) -> tuple[bytes, str]:
    """Return (body, content_type) for a single-file multipart upload."""

    boundary = f"telekeep-{uuid.uuid4().hex}"
    safe_name = filename.replace('"', "_").replace("\r", "").replace("\n", "")
    chunks: list[bytes] = []
    for name, value in fields.items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                f"{value}\r\n"
            ).encode("utf-8")
        )
    chunks.append(
        (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{file_field}"; filename="{safe_name}"\r\n'
            f"Content-Type: {mime}\r\n\r\n"
        ).encode("utf-8")
    )
    chunks.append(data)
    chunks.append(f"\r\n--{boundary}--\r\n".encode("utf-8"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


class KarakeepClient:
    """Per-user Karakeep client; one instance per batch."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 60.0, api_prefix: str = "") -> None:
        base_url = base_url.strip()
        if not base_url:
            raise ValueError("base url is empty")
        parts = urlsplit(base_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"invalid base url: {base_url!r}")
        if parts.scheme != "https":
            raise ValueError(f"base url must be https: {base_url!r}")
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("api key is empty")

        # Only scheme and host are kept; API paths are joined below.
        self._base = f"https://{parts.netloc}"
        self._api_key = api_key
        self._timeout = timeout if timeout > 0 else 30.0
        self._prefix = _pick_prefix(api_prefix)
        self._auto_prefix = not api_prefix.strip()

    def _url(self, prefix: str, path: str) -> str:
        return f"{self._base}{prefix}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, body: Optional[bytes], content_type: Optional[str]) -> tuple[int, bytes]:
        request = urllib.request.Request(url, data=body, method=method)
        request.add_header("Authorization", f"Bearer {self._api_key}")
        request.add_header("Accept", "application/json")
        if content_type:
            request.add_header("Content-Type", content_type)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as e:
            raise RemoteAPIError(e.code, _error_preview(e)) from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise RemoteTransportError(f"karakeep request failed: {e}") from e

    def _request(self, method: str, path: str, body: Optional[bytes], content_type: Optional[str]) -> tuple[int, bytes]:
        try:
            return self._send(method, self._url(self._prefix, path), body, content_type)
        except RemoteAPIError as exc:
            if exc.status != 404 or not self._auto_prefix:
                raise
        # Servers differ between /api/v1 and /api; retry once with the other.
        alternate = ALTERNATE_PREFIX if self._prefix == DEFAULT_PREFIX else DEFAULT_PREFIX
        result = self._send(method, self._url(alternate, path), body, content_type)
        LOGGER.info("Karakeep API prefix switched from %s to %s", self._prefix, alternate)
        self._prefix = alternate
        return result

    async def _request_json(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        content_type = "application/json" if body is not None else None
        _, raw = await asyncio.to_thread(self._request, method, path, body, content_type)
        return _decode_json(raw)

    @staticmethod
    def _bookmark_path(bookmark_id: str, suffix: str = "") -> str:
        return f"/bookmarks/{quote(bookmark_id, safe='')}{suffix}"

    async def create_bookmark(self, url: str = "", title: str = "", text: str = "") -> Bookmark:
        """Create a link bookmark when `url` is set, otherwise a text bookmark.

        For links, `text` is stored as notes with a follow-up PATCH, which is
        best-effort: the bookmark already exists if it fails.
        """

        url, title, text = url.strip(), title.strip(), text.strip()

        if url:
            body: dict[str, Any] = {"type": "link", "url": url}
            if title:
                body["title"] = title
            bookmark = bookmark_from_payload(await self._request_json("POST", "/bookmarks", body))
            if bookmark.id and text:
                try:
                    await self.update_bookmark(bookmark.id, {"note": text})
                except (RemoteAPIError, RemoteTransportError) as exc:
                    LOGGER.warning("Failed to set notes on bookmark_id=%s: %s", bookmark.id, exc)
                else:
                    bookmark.notes = text
            return bookmark

        body = {"type": "text", "text": text}
        if title:
            body["title"] = title
        return bookmark_from_payload(await self._request_json("POST", "/bookmarks", body))

    async def get_bookmark(self, bookmark_id: str) -> Bookmark:
        return bookmark_from_payload(await self._request_json("GET", self._bookmark_path(bookmark_id)))

    async def update_bookmark(self, bookmark_id: str, patch: dict[str, Any]) -> Bookmark:
        return bookmark_from_payload(await self._request_json("PATCH", self._bookmark_path(bookmark_id), patch))

    async def summarize(self, bookmark_id: str) -> Bookmark:
        payload = await self._request_json("POST", self._bookmark_path(bookmark_id, "/summarize"), {})
        return bookmark_from_payload(payload)

    async def upload_asset(self, data: bytes, filename: str, mime: str) -> Asset:
        filename = filename.strip() or "upload.bin"
        mime = mime.strip() or "application/octet-stream"
        body, content_type = encode_multipart({"mime": mime}, "file", filename, mime, data)
        _, raw = await asyncio.to_thread(self._request, "POST", "/assets", body, content_type)
        return asset_from_payload(_decode_json(raw))

    async def attach_asset(self, bookmark_id: str, asset_id: str) -> None:
        await self._request_json("POST", self._bookmark_path(bookmark_id, "/assets"), {"assetId": asset_id})
