import asyncio

import pytest

from slotcar_racecontrol.announcer.queue import AnnouncementQueue, get_announcement_queue
from slotcar_racecontrol.announcer.speakers import RecordingSpeaker


@pytest.mark.asyncio
async def test_burst_collapses_to_last_message():
    speaker = RecordingSpeaker()
    q = AnnouncementQueue(speaker)
    for n in range(5):
        q.enqueue(f"message {n}")
    await asyncio.wait_for(q.wait_idle(), timeout=1)
    assert speaker.spoken == ["message 4"]
    stats = q.stats()
    assert stats["spoken"] == 1 and stats["discarded"] == 4
    await q.close()


@pytest.mark.asyncio
async def test_requests_during_playback_keep_only_latest():
    gate = asyncio.Event()
    speaker = RecordingSpeaker(gate=gate)
    q = AnnouncementQueue(speaker)
    q.enqueue("a")
    await asyncio.sleep(0.01)
    assert speaker.spoken == ["a"]
    for text in ("b", "c", "d"):
        q.enqueue(text)
    await asyncio.sleep(0.01)
    # nothing overlaps while "a" is still playing
    assert speaker.spoken == ["a"]
    gate.set()
    await asyncio.wait_for(q.wait_idle(), timeout=1)
    assert speaker.spoken == ["a", "d"]
    assert q.stats()["discarded"] == 2
    await q.close()


@pytest.mark.asyncio
async def test_playback_failure_does_not_stop_queue():
    speaker = RecordingSpeaker(fail=True)
    q = AnnouncementQueue(speaker)
    q.enqueue("first")
    await asyncio.wait_for(q.wait_idle(), timeout=1)
    q.enqueue("second")
    await asyncio.wait_for(q.wait_idle(), timeout=1)
    assert speaker.spoken == ["first", "second"]
    assert q.stats()["failed"] == 2
    await q.close()


@pytest.mark.asyncio
async def test_plain_callable_speaker():
    spoken = []

    class SyncSpeaker:
        def speak(self, text):
            spoken.append(text)

    q = AnnouncementQueue(SyncSpeaker())
    q.enqueue("hello")
    await asyncio.wait_for(q.wait_idle(), timeout=1)
    assert spoken == ["hello"]
    await q.close()


@pytest.mark.asyncio
async def test_wait_idle_without_requests_returns():
    q = AnnouncementQueue(RecordingSpeaker())
    await asyncio.wait_for(q.wait_idle(), timeout=1)


def test_enqueue_without_event_loop_is_silent():
    speaker = RecordingSpeaker()
    q = AnnouncementQueue(speaker)
    q.enqueue("nobody listening")
    assert speaker.spoken == []
    assert q.stats()["discarded"] == 1


def test_queue_is_process_wide():
    assert get_announcement_queue() is get_announcement_queue()


def test_pending_request_does_not_survive_a_new_event_loop():
    speaker = RecordingSpeaker(gate=asyncio.Event())
    q = AnnouncementQueue(speaker)

    async def first_run():
        q.enqueue("a")
        await asyncio.sleep(0.01)
        # "a" is still playing when this loop shuts down
        q.enqueue("stale")

    async def second_run():
        speaker.gate = None
        q.enqueue("fresh")
        await asyncio.wait_for(q.wait_idle(), timeout=1)
        await q.close()

    asyncio.run(first_run())
    asyncio.run(second_run())
    assert speaker.spoken == ["a", "fresh"]
    stats = q.stats()
    assert stats["discarded"] == 1 and stats["pending"] is False
