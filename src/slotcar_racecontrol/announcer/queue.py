"""Announcement queue: one spoken message at a time, bursts collapse to the latest.

Requests go into a single-slot mailbox. A worker task takes whatever is in
the slot when it is free and waits for playback to complete before taking
the next one. A request that is overwritten before the worker gets to it is
discarded, so announcements never pile up and play back late.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Optional

from slotcar_racecontrol.announcer.speakers import LoggingSpeaker, Speaker
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)

_QUEUE: "AnnouncementQueue | None" = None  # process-wide announcer


class AnnouncementQueue:
    def __init__(self, speaker: Optional[Speaker] = None):
        self._speaker: Speaker = speaker or LoggingSpeaker()
        self._slot: Optional[str] = None
        self._busy = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None
        self._idle: Optional[asyncio.Event] = None
        self._worker: Optional[asyncio.Task] = None
        self._stats = {
            "enqueued": 0,
            "spoken": 0,
            "discarded": 0,
            "failed": 0,
        }

    @property
    def speaker(self) -> Speaker:
        return self._speaker

    def set_speaker(self, speaker: Speaker) -> None:
        self._speaker = speaker

    def stats(self) -> dict:
        return dict(self._stats, pending=self._slot is not None, busy=self._busy)

    def enqueue(self, text: str) -> None:
        """Request `text` to be spoken; supersedes any request still waiting."""
        self._stats["enqueued"] += 1
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._stats["discarded"] += 1
            _LOGGER.warning("No running event loop; dropping announcement %r", text)
            return
        self._ensure_worker(loop)
        if self._slot is not None:
            self._stats["discarded"] += 1
            _LOGGER.debug("Speech cancelled %r", self._slot)
        self._slot = text
        assert self._wakeup is not None and self._idle is not None
        self._idle.clear()
        self._wakeup.set()

    async def wait_idle(self) -> None:
        """Wait until nothing is pending or playing."""
        if self._idle is None or self._loop is not asyncio.get_running_loop():
            return
        await self._idle.wait()

    async def close(self) -> None:
        worker, self._worker = self._worker, None
        if worker is None or worker.done():
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._worker is not None and not self._worker.done() and self._loop is loop:
            return
        # First use, or the previous loop is gone: restart on this one
        if self._slot is not None:
            # left behind by a worker on a loop that is gone
            self._stats["discarded"] += 1
            _LOGGER.debug("Dropping stale announcement %r", self._slot)
            self._slot = None
        self._loop = loop
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._busy = False
        self._worker = loop.create_task(self._run(), name="announcement_queue")

    async def _run(self) -> None:
        assert self._wakeup is not None and self._idle is not None
        wakeup, idle = self._wakeup, self._idle
        while True:
            await wakeup.wait()
            wakeup.clear()
            text, self._slot = self._slot, None
            if text is not None:
                self._busy = True
                try:
                    _LOGGER.debug("Speak %r", text)
                    result = self._speaker.speak(text)
                    if inspect.isawaitable(result):
                        await result
                    self._stats["spoken"] += 1
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._stats["failed"] += 1
                    _LOGGER.error("Speech error %r: %s", text, e)
                finally:
                    self._busy = False
            if self._slot is None:
                idle.set()
            else:
                wakeup.set()


def get_announcement_queue() -> AnnouncementQueue:
    """Return the process-wide queue; it outlives individual sessions."""
    global _QUEUE
    if _QUEUE is None:
        _QUEUE = AnnouncementQueue()
    return _QUEUE
