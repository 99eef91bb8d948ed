from __future__ import annotations

import asyncio
from typing import Callable

from slotcar_racecontrol.core.models import START_LIGHT_OFF
from slotcar_racecontrol.core.source import TelemetrySource
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)


class StartSequenceController:
    """Arms the start lights and starts the session on lights-out.

    Start light values are fed through `push`; `run` consumes them. The
    first value is the current light state: if the lights are off the
    toggle command advances the sequence. `run` then waits for the first
    transition from a lit stage to off, calls `on_start` once and returns.
    A false start does not reset the wait.
    """

    def __init__(self, source: TelemetrySource, on_start: Callable[[], None], mode: str = "race"):
        self._source = source
        self._on_start = on_start
        self.mode = mode
        self._values: asyncio.Queue[int] = asyncio.Queue()
        self.started = False

    def push(self, value: int) -> None:
        if not self.started:
            self._values.put_nowait(value)

    async def run(self) -> None:
        value = await self._values.get()
        if value == START_LIGHT_OFF:
            try:
                await self._source.toggle_start()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _LOGGER.error("Start light toggle failed (mode=%s light=%s): %s", self.mode, value, e)
        prev = value
        while True:
            curr = await self._values.get()
            if prev != START_LIGHT_OFF and curr == START_LIGHT_OFF:
                break
            prev = curr
        self.started = True
        _LOGGER.info("Start %s mode", self.mode)
        self._on_start()
