"""Routing of decoded messages to commands, album buffering or processing.

Every batch runs as its own task so a slow three-minute enrichment never
holds up other chats, and a crash inside one batch only ends that batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from core.commands import CommandHandler
from core.errors import StorageError
from core.media_group import DEFAULT_DELAY, MediaGroupCollector
from core.models import MessageUnit
from core.ports import UserStorePort
from core.processor import BatchProcessor

LOGGER = logging.getLogger(__name__)


class UpdateDispatcher:
    def __init__(
        self,
        processor: BatchProcessor,
        commands: CommandHandler,
        store: UserStorePort,
        media_group_delay: float = DEFAULT_DELAY,
        cancel: Optional[asyncio.Event] = None,
    ) -> None:
        self._processor = processor
        self._commands = commands
        self._store = store
        self._collector = MediaGroupCollector(self._on_group_flush, delay=media_group_delay)
        self._cancel = cancel
        self._tasks: set[asyncio.Task] = set()

    def in_flight(self) -> int:
        return len(self._tasks)

    async def dispatch(self, unit: MessageUnit) -> None:
        """Handle one incoming message without waiting for its batch."""

        try:
            self._store.upsert_user(unit.sender_id)
        except StorageError as exc:
            LOGGER.warning("Upsert user failed for user_id=%s: %s", unit.sender_id, exc)

        if unit.command is not None:
            await self._commands.handle(unit)
            return

        if unit.group_id and self._collector.collect(unit):
            return

        self.launch([unit])

    def launch(self, batch: Sequence[MessageUnit]) -> asyncio.Task:
        """Start processing a batch in the background."""

        first = batch[0]
        task = asyncio.get_running_loop().create_task(
            self._run_batch(list(batch)),
            name=f"batch-{first.chat_id}-{first.message_id}",
        )
        # The loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_group_flush(self, group_id: str, units: List[MessageUnit]) -> None:
        LOGGER.info("Launching media group %s (%s message(s))", group_id, len(units))
        self.launch(units)

    async def _run_batch(self, batch: List[MessageUnit]) -> None:
        try:
            await self._processor.handle_batch(batch)
        except Exception:
            first = batch[0]
            LOGGER.exception(
                "Batch processing failed (chat_id=%s, message_id=%s)",
                first.chat_id,
                first.message_id,
            )

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop pollers and give running batches a moment to finish."""

        dropped = self._collector.discard_all()
        if dropped:
            LOGGER.warning("Dropped %s pending media group(s) on shutdown", dropped)
        if self._cancel is not None:
            self._cancel.set()
        running = self.in_flight()
        if running:
            LOGGER.info("Waiting up to %ss for %s running batch(es)", timeout, running)
            _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
            if pending:
                LOGGER.warning("%s batch(es) still running after shutdown timeout", len(pending))
