"""Media group (album) collection.

Telegram delivers an album as separate messages sharing a grouped id. The
collector buffers them and flushes the whole group once no new member has
arrived for the debounce delay.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from core.models import MessageUnit

LOGGER = logging.getLogger(__name__)

DEFAULT_DELAY = 2.0

FlushCallback = Callable[[str, List[MessageUnit]], None]


@dataclass
class _PendingGroup:
    units: List[MessageUnit] = field(default_factory=list)
    timer: Optional[asyncio.TimerHandle] = None


class MediaGroupCollector:
    """Debounce album members into one batch per group id.

    Every arrival restarts the group's timer, so a burst flushes once, after
    the last member. State lives behind one lock that is never held while the
    flush callback runs; the callback may start tasks or collect other groups.
    """

    def __init__(self, on_flush: FlushCallback, delay: float = DEFAULT_DELAY) -> None:
        self._on_flush = on_flush
        self._delay = delay if delay > 0 else DEFAULT_DELAY
        self._lock = threading.Lock()
        self._groups: dict[str, _PendingGroup] = {}

    def collect(self, unit: MessageUnit) -> bool:
        """Buffer a grouped unit. Returns False for units without a group id."""

        group_id = unit.group_id
        if not group_id:
            return False

        loop = asyncio.get_running_loop()
        with self._lock:
            group = self._groups.get(group_id)
            if group is None:
                group = _PendingGroup()
                self._groups[group_id] = group
            group.units.append(unit)
            if group.timer is not None:
                group.timer.cancel()
            group.timer = loop.call_later(self._delay, self._flush, group_id)
            size = len(group.units)

        LOGGER.debug("Media group %s buffered unit %s (size=%s)", group_id, unit.message_id, size)
        return True

    def _flush(self, group_id: str) -> None:
        with self._lock:
            group = self._groups.pop(group_id, None)

        # A second fire for an already flushed group is a no-op.
        if group is None or not group.units:
            return

        LOGGER.info("Flushing media group %s with %s message(s)", group_id, len(group.units))
        self._on_flush(group_id, list(group.units))

    def discard_all(self) -> int:
        """Cancel every pending timer and drop buffered groups (shutdown)."""

        with self._lock:
            groups = list(self._groups.values())
            self._groups.clear()
        for group in groups:
            if group.timer is not None:
                group.timer.cancel()
        return len(groups)
