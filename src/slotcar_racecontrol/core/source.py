from __future__ import annotations

from typing import AsyncIterator, Protocol

from slotcar_racecontrol.core.models import TelemetryMessage


class TelemetrySource(Protocol):
    """Live timing from the race control unit.

    `subscribe` yields driver ticks and session signals in the order they
    were observed. Each call starts an independent subscription; closing the
    iterator unsubscribes.
    """

    def subscribe(self) -> AsyncIterator[TelemetryMessage]: ...

    async def toggle_start(self) -> None: ...

    async def set_lap(self, lap: int) -> None: ...
