"""User-facing message texts.

Keeping every string the user can see in one place prevents drift between the
processor and the command handlers, and keeps raw errors out of chats.
"""

from __future__ import annotations

from core.errors import RemoteError
from core.models import KIND_BOOKMARK, KIND_FILE, KIND_NOTE, Bookmark
from core.polling import looks_empty_summary

ERROR_TEXT_LIMIT = 800

NOT_CONFIGURED = "❌ Not configured yet. First run: /server https://<host> and /key <API_KEY>"
SAVED_NO_ID = "✅ Saved."
EXTRACTION_TIMEOUT = "⚠️ Content was not fetched within 3 minutes. Check the summary in the app."
SUMMARY_NOT_READY = "⚠️ The summary is not ready yet. Check the summary in the app."
EMPTY_ASSET_ID = "❌ Karakeep returned an asset without an id (check the asset upload API)."

_ACK_TEXTS = {
    KIND_BOOKMARK: "⏳ Saving as a bookmark…",
    KIND_NOTE: "⏳ Saving as a note…",
    KIND_FILE: "⏳ Uploading file…",
}

_SUCCESS_HEADERS = {
    KIND_BOOKMARK: "✅ Saved as a bookmark",
    KIND_NOTE: "✅ Saved as a note",
    KIND_FILE: "✅ Saved as a file",
}


def clip(text: str, limit: int = ERROR_TEXT_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


def ack_text(kind: str) -> str:
    return _ACK_TEXTS.get(kind, "⏳ Saving…")


def saved_pending_text(bookmark_id: str) -> str:
    return f"✅ Saved (id={bookmark_id}). Waiting for the content to load…"


def file_label(timestamp: str) -> str:
    return f"Telegram media received at {timestamp}"


def too_large_text(filename: str, size: int, limit: int) -> str:
    return f"❌ File too large: {filename} ({size} bytes), limit {limit} bytes"


def download_failed_text(error: Exception) -> str:
    return clip(f"❌ Failed to download the file from Telegram: {str(error).strip()}")


def upload_failed_text(error: RemoteError) -> str:
    return clip(f"❌ Upload to Karakeep failed ({error.status}): {str(error).strip()}")


def attach_failed_text(error: RemoteError) -> str:
    return clip(f"❌ Attaching the asset failed ({error.status}): {str(error).strip()}")


def client_config_error_text(error: Exception) -> str:
    return clip(f"❌ Karakeep configuration error: {str(error).strip()}")


def remote_error_text(error: RemoteError) -> str:
    """Translate a failed create call into a short hint for the user.

    Bodies can be whole HTML pages, so the result is clipped to stay well
    under Telegram's message limit.
    """

    status = error.status
    message = f"❌ Karakeep error ({status})."

    if status == 404:
        return message + " The server address looks wrong. Use the Karakeep domain without /api: /server https://<host>"
    if status in (401, 403):
        return message + " Check the API key (/key) and its permissions."
    if status == 400:
        message += " Karakeep rejected the request payload (url/title/notes)."

    detail = str(error).strip()
    if detail:
        message += " " + detail
    return clip(message)


def format_final_message(kind: str, bookmark: Bookmark) -> str:
    """Render the enriched bookmark: header, title, summary, tags."""

    lines = [_SUCCESS_HEADERS.get(kind, "✅ Saved")]

    title = bookmark.title.strip()
    if title:
        lines.extend(["", f"Title: {title}"])

    summary = bookmark.summary_text()
    if summary and not looks_empty_summary(summary):
        lines.extend(["", "Summary:", summary])

    tags = [tag.strip() for tag in bookmark.tags if tag.strip()]
    if tags:
        lines.extend(["", f"Tags: {', '.join(tags)}"])

    return "\n".join(lines).strip()
