"""Playback primitives: LoggingSpeaker, RecordingSpeaker for tests, Pyttsx3Speaker for audio."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, Protocol, Union

from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)


class Speaker(Protocol):
    def speak(self, text: str) -> Union[Awaitable[None], None]: ...


class LoggingSpeaker:
    """Writes announcements to the log instead of playing them."""

    async def speak(self, text: str) -> None:
        _LOGGER.info("ANNOUNCE %s", text)


class RecordingSpeaker:
    """Records spoken texts; an optional gate holds playback open until set."""

    def __init__(self, gate: Optional[asyncio.Event] = None, fail: bool = False):
        self.spoken: list[str] = []
        self.gate = gate
        self.fail = fail

    async def speak(self, text: str) -> None:
        self.spoken.append(text)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError(f"playback failed: {text}")


class Pyttsx3Speaker:
    """Offline text-to-speech through pyttsx3.

    pyttsx3's `runAndWait` blocks until the utterance is complete, so each
    call runs in a worker thread. A fresh engine is initialised per
    utterance; reused SAPI5 engines go silent after the first
    `runAndWait` on some Windows setups.

    Parameters
    ----------
    rate:
        Words per minute, or None for the engine default.
    volume:
        Volume 0.0-1.0.
    """

    def __init__(self, rate: Optional[int] = None, volume: float = 1.0):
        self._rate = rate
        self._volume = volume

    def _say(self, text: str) -> None:
        import pyttsx3

        engine = pyttsx3.init()
        try:
            if self._rate:
                engine.setProperty("rate", self._rate)
            engine.setProperty("volume", self._volume)
            engine.say(text)
            engine.runAndWait()
        finally:
            engine.stop()

    async def speak(self, text: str) -> None:
        await asyncio.to_thread(self._say, text)
