from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from core.media_group import MediaGroupCollector
from core.models import MessageUnit


def _unit(message_id: int, group_id: "str | None" = "album") -> MessageUnit:
    return MessageUnit(
        message_id=message_id,
        chat_id=1,
        sender_id=2,
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        group_id=group_id,
    )


def test_burst_flushes_once_after_last_arrival() -> None:
    delay = 0.1
    flushes: list[tuple[str, list[int], float]] = []

    async def scenario() -> float:
        loop = asyncio.get_running_loop()

        def on_flush(group_id: str, units: list[MessageUnit]) -> None:
            flushes.append((group_id, [u.message_id for u in units], loop.time()))

        collector = MediaGroupCollector(on_flush, delay=delay)
        last_arrival = loop.time()
        for message_id in (1, 2, 3):
            if message_id > 1:
                await asyncio.sleep(0.03)
            collector.collect(_unit(message_id))
            last_arrival = loop.time()

        await asyncio.sleep(0.03)
        assert flushes == []

        await asyncio.sleep(delay + 0.1)
        return last_arrival

    last_arrival = asyncio.run(scenario())

    assert len(flushes) == 1
    group_id, message_ids, flushed_at = flushes[0]
    assert group_id == "album"
    assert message_ids == [1, 2, 3]
    assert flushed_at - last_arrival >= delay - 0.01


def test_groups_flush_independently_and_callback_can_reenter() -> None:
    flushed: list[str] = []

    async def scenario() -> None:
        collector: MediaGroupCollector

        def on_flush(group_id: str, units: list[MessageUnit]) -> None:
            flushed.append(group_id)
            if group_id == "a":
                collector.collect(_unit(99, group_id="c"))

        collector = MediaGroupCollector(on_flush, delay=0.05)
        collector.collect(_unit(1, group_id="a"))
        collector.collect(_unit(2, group_id="b"))
        await asyncio.sleep(0.2)

    asyncio.run(scenario())

    assert sorted(flushed[:2]) == ["a", "b"]
    assert flushed[2:] == ["c"]


def test_ungrouped_unit_is_not_collected() -> None:
    async def scenario() -> bool:
        collector = MediaGroupCollector(lambda group_id, units: None, delay=0.05)
        return collector.collect(_unit(1, group_id=None))

    assert asyncio.run(scenario()) is False


def test_discard_all_cancels_pending_flushes() -> None:
    flushed: list[str] = []

    async def scenario() -> int:
        collector = MediaGroupCollector(lambda group_id, units: flushed.append(group_id), delay=0.05)
        collector.collect(_unit(1))
        dropped = collector.discard_all()
        await asyncio.sleep(0.1)
        return dropped

    assert asyncio.run(scenario()) == 1
    assert flushed == []


def test_stale_timer_fire_after_flush_is_ignored() -> None:
    flushed: list[tuple[str, list[int]]] = []

    async def scenario() -> None:
        collector = MediaGroupCollector(
            lambda group_id, units: flushed.append((group_id, [u.message_id for u in units])),
            delay=5,
        )
        collector.collect(_unit(1))
        collector.collect(_unit(2))

        # A timer that was already due when the group got flushed fires late.
        collector._flush("album")
        collector._flush("album")
        collector._flush("never-seen")
        collector.discard_all()

    asyncio.run(scenario())

    assert flushed == [("album", [1, 2])]
