from __future__ import annotations

from typing import Any, Callable, List, Optional

from slotcar_racecontrol.config.provider import SettingsProvider
from slotcar_racecontrol.core.models import RaceEvent
from slotcar_racecontrol.core.session import RaceSession
from slotcar_racecontrol.core.source import TelemetrySource
from slotcar_racecontrol.logging import get_logger

LOG = get_logger("race_control")


class RaceControl:
    """Owns the current session and the operator commands around it.

    Only one session is live at a time. Restarting tears the old session
    down completely before a new one is opened with the same options; the
    process-wide announcement queue is left untouched.
    """

    def __init__(
        self,
        source: TelemetrySource,
        config: SettingsProvider,
        dispatcher: Optional[Callable[[RaceEvent], Any]] = None,
        event_listeners: Optional[List[Callable[[RaceEvent], Any]]] = None,
    ):
        self.source = source
        self.config = config
        self.dispatcher = dispatcher
        self.event_listeners = list(event_listeners or [])
        self.session: RaceSession | None = None
        self.mode: str | None = None

    async def start_session(self, mode: str) -> RaceSession:
        await self._close_session()
        options = self.config.session_options(mode)
        self.mode = mode
        session = RaceSession(self.source, options, self.config, self.dispatcher)
        for listener in self.event_listeners:
            session.add_event_listener(listener)
        await session.open()
        self.session = session
        return session

    async def restart_session(self) -> RaceSession | None:
        if self.session is None or self.mode is None:
            return None
        LOG.info("Restarting %s session", self.mode)
        return await self.start_session(self.mode)

    def cancel_session(self) -> None:
        if self.session is not None:
            self.session.stop()

    def toggle_yellow_flag(self) -> None:
        if self.session is not None:
            self.session.toggle_yellow_flag()

    def toggle_speech(self) -> bool:
        speech = not self.config.speech_enabled()
        self.config.update(speech=speech)
        LOG.info("Speech %s", "enabled" if speech else "disabled")
        return speech

    async def close(self) -> None:
        await self._close_session()

    async def _close_session(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            await session.close()
