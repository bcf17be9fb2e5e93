"""Core batch processing pipeline.

This module is integration-agnostic. It only relies on ports for Telegram,
storage and the bookmarking service. Each batch walks a strict order:
1) Check the sender has a server and an API key
2) Classify the representative unit, collect attachments from all units
3) Send the acknowledgment (no ack, no remote call)
4) Create the bookmark according to its kind
5) Upload and attach every attachment, one at a time
6) Remember the last success for /status
7) Wait for content extraction (links only), then for the summary
8) Edit the acknowledgment with the final result
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timezone
from pathlib import PurePosixPath
from typing import List, Optional, Sequence

from core import formatting
from core.attachments import extract_attachments
from core.classifier import classify_unit, representative_unit
from core.config import PipelineConfig
from core.errors import (
    CredentialError,
    DownloadError,
    FileTooLargeError,
    RemoteError,
    StorageError,
    TransportError,
)
from core.models import (
    KIND_BOOKMARK,
    KIND_FILE,
    Attachment,
    Bookmark,
    Classification,
    MessageUnit,
    UserSettings,
)
from core.polling import has_extracted_content, has_summary, poll_until
from core.ports import AckTransportPort, BookmarkAPIFactory, BookmarkAPIPort, DownloaderPort, UserStorePort

LOGGER = logging.getLogger(__name__)


class BatchProcessor:
    """Orchestrates classification, submission, uploads and enrichment."""

    def __init__(
        self,
        store: UserStorePort,
        transport: AckTransportPort,
        downloader: DownloaderPort,
        api_factory: BookmarkAPIFactory,
        config: Optional[PipelineConfig] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._downloader = downloader
        self._api_factory = api_factory
        self._config = config or PipelineConfig()
        self._cancel = cancel

    async def handle_batch(self, batch: Sequence[MessageUnit]) -> None:
        """Process one standalone message or one flushed album."""

        unit = representative_unit(batch)
        user = await self._load_user(unit)
        if user is None:
            return

        classification = classify_unit(unit)
        attachments = extract_attachments(batch)
        LOGGER.info(
            "Processing message user_id=%s chat_id=%s message_id=%s kind=%s urls=%s media=%s attachments=%s",
            unit.sender_id,
            unit.chat_id,
            unit.message_id,
            classification.kind,
            len(classification.urls),
            classification.has_media,
            len(attachments),
        )

        try:
            ack_id = await self._transport.send(unit.chat_id, formatting.ack_text(classification.kind))
        except TransportError as exc:
            LOGGER.warning("Failed to send ack for message_id=%s: %s", unit.message_id, exc)
            return

        async def edit(text: str) -> None:
            await self._transport.edit(unit.chat_id, ack_id, text)

        try:
            api = self._api_factory(user.server_base_url, user.api_key or "")
        except ValueError as exc:
            await edit(formatting.client_config_error_text(exc))
            return

        try:
            bookmark = await self._submit(api, classification, unit)
        except RemoteError as exc:
            LOGGER.warning("Karakeep create failed status=%s: %s", exc.status, exc)
            await edit(formatting.remote_error_text(exc))
            return
        LOGGER.info("Karakeep created bookmark_id=%s kind=%s", bookmark.id, classification.kind)

        if bookmark.id and attachments:
            if not await self._upload_attachments(api, bookmark.id, attachments, edit):
                return

        self._record_success(unit.sender_id, bookmark.id)

        if not bookmark.id:
            await edit(formatting.SAVED_NO_ID)
            return
        await edit(formatting.saved_pending_text(bookmark.id))

        # Text notes and files already carry their content; only links need
        # the crawler to finish before a summary means anything.
        if classification.kind == KIND_BOOKMARK:
            extracted = await poll_until(
                lambda: api.get_bookmark(bookmark.id),
                has_extracted_content,
                interval=self._config.extract_poll_interval,
                timeout=self._config.extract_poll_timeout,
                cancel=self._cancel,
                label=f"extract poll bookmark_id={bookmark.id}",
            )
            if not extracted.ready:
                await edit(formatting.EXTRACTION_TIMEOUT)
                return

        summarized = await poll_until(
            lambda: api.get_bookmark(bookmark.id),
            has_summary,
            interval=self._config.summary_poll_interval,
            timeout=self._config.summary_poll_timeout,
            cancel=self._cancel,
            before_read=lambda: api.summarize(bookmark.id),
            label=f"summary poll bookmark_id={bookmark.id}",
        )
        if summarized.ready and summarized.value is not None:
            await edit(formatting.format_final_message(classification.kind, summarized.value))
            return
        await edit(formatting.SUMMARY_NOT_READY)

    async def _load_user(self, unit: MessageUnit) -> Optional[UserSettings]:
        try:
            user = self._store.get_user(unit.sender_id)
        except CredentialError as exc:
            LOGGER.warning("Decrypt api key failed for user_id=%s: %s", unit.sender_id, exc)
            user = UserSettings(user_id=unit.sender_id)

        if user.is_configured:
            return user

        try:
            await self._transport.send(unit.chat_id, formatting.NOT_CONFIGURED)
        except TransportError as exc:
            LOGGER.warning("Failed to send setup hint to chat_id=%s: %s", unit.chat_id, exc)
        return None

    async def _submit(
        self,
        api: BookmarkAPIPort,
        classification: Classification,
        unit: MessageUnit,
    ) -> Bookmark:
        if classification.kind == KIND_BOOKMARK:
            return await api.create_bookmark(url=classification.url, text=classification.notes)

        if classification.kind == KIND_FILE:
            timestamp = unit.date.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            return await api.create_bookmark(text=formatting.file_label(timestamp))

        try:
            return await api.create_bookmark(text=classification.text)
        except RemoteError as exc:
            if not classification.urls:
                raise
            # Some servers reject text bookmarks; retry once as a link.
            # TODO: only fall back on validation errors (400), not on transport failures.
            LOGGER.warning("Text bookmark rejected (status=%s), retrying with first URL", exc.status)
            return await api.create_bookmark(url=classification.urls[0], text=classification.text)

    async def _upload_attachments(
        self,
        api: BookmarkAPIPort,
        bookmark_id: str,
        attachments: List[Attachment],
        edit,
    ) -> bool:
        """Upload attachments sequentially; stop at the first failure.

        Assets attached before a failure stay attached.
        """

        max_bytes = self._config.max_upload_bytes
        for attachment in attachments:
            if attachment.size > max_bytes:
                await edit(formatting.too_large_text(attachment.filename, attachment.size, max_bytes))
                return False

            try:
                downloaded = await self._downloader.download(attachment.file_id, max_bytes, attachment.handle)
            except FileTooLargeError as exc:
                await edit(formatting.too_large_text(attachment.filename, exc.size, max_bytes))
                return False
            except DownloadError as exc:
                LOGGER.warning("Telegram download failed: %s", exc)
                await edit(formatting.download_failed_text(exc))
                return False

            filename = attachment.filename.strip() or PurePosixPath(downloaded.source_path).name
            try:
                asset = await api.upload_asset(downloaded.data, filename, attachment.mime)
            except RemoteError as exc:
                LOGGER.warning("Karakeep upload asset failed status=%s: %s", exc.status, exc)
                await edit(formatting.upload_failed_text(exc))
                return False

            if not asset.id.strip():
                LOGGER.warning("Karakeep upload asset returned empty id")
                await edit(formatting.EMPTY_ASSET_ID)
                return False

            try:
                await api.attach_asset(bookmark_id, asset.id)
            except RemoteError as exc:
                LOGGER.warning("Karakeep attach asset failed status=%s: %s", exc.status, exc)
                await edit(formatting.attach_failed_text(exc))
                return False

            LOGGER.info("Attached asset_id=%s to bookmark_id=%s (%s bytes)", asset.id, bookmark_id, len(downloaded.data))
        return True

    def _record_success(self, user_id: int, bookmark_id: str) -> None:
        try:
            self._store.record_success(user_id, bookmark_id)
        except StorageError as exc:
            LOGGER.warning("Failed to record last success for user_id=%s: %s", user_id, exc)
