from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional

from slotcar_racecontrol.config.provider import SettingsProvider
from slotcar_racecontrol.config.settings import SessionOptions
from slotcar_racecontrol.core.events import EventDetector
from slotcar_racecontrol.core.models import (
    DriverTick,
    Finished,
    LapCount,
    LapCounter,
    RaceEvent,
    RankingEntry,
    StartLight,
    TelemetryMessage,
    YellowFlag,
)
from slotcar_racecontrol.core.ranking import RankingOverlay, rank
from slotcar_racecontrol.core.source import TelemetrySource
from slotcar_racecontrol.core.start_sequence import StartSequenceController
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)

Listener = Callable[[Any], Any]

_END = object()  # source exhausted
_TOGGLE_YELLOW = object()  # flip the yellow flag when processed


class RaceSession:
    """One practice, qualifying or race session.

    The session owns all per-session state (best times, grid positions,
    pit fuel marks, latest ticks). Telemetry and session commands are
    funnelled through a single inbox and processed in arrival order, so
    listeners see events in the order their source signals changed.
    Discarding the instance discards that state; a restarted session
    starts clean.
    """

    def __init__(
        self,
        source: TelemetrySource,
        options: SessionOptions,
        config: SettingsProvider,
        dispatcher: Optional[Callable[[RaceEvent], Any]] = None,
    ):
        self.source = source
        self.options = options
        self.config = config
        self.detector = EventDetector(options, lambda: self.finished)
        self.overlay = RankingOverlay(options.mode)
        self.start_sequence: StartSequenceController | None = None
        if options.mode != "practice":
            self.start_sequence = StartSequenceController(source, self.start, options.mode)
        self.started = False
        self.finished = False
        self.yellow_flag = False
        self.lap_count = LapCounter(0, options.laps)
        self.ranking: List[RankingEntry] = []
        self._latest: Dict[int, DriverTick] = {}
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []
        self._event_listeners: List[Listener] = []
        self._ranking_listeners: List[Listener] = []
        self._lap_listeners: List[Listener] = []
        if dispatcher is not None:
            self._event_listeners.append(dispatcher)

    # ---- Listeners ----
    def add_event_listener(self, listener: Listener) -> None:
        self._event_listeners.append(listener)

    def add_ranking_listener(self, listener: Listener) -> None:
        self._ranking_listeners.append(listener)

    def add_lap_listener(self, listener: Listener) -> None:
        self._lap_listeners.append(listener)

    # ---- Lifecycle ----
    async def open(self) -> None:
        if self._tasks:
            return
        self._tasks.append(asyncio.create_task(self._pump(), name="session_pump"))
        self._tasks.append(asyncio.create_task(self._process(), name="session_process"))
        if self.start_sequence is not None:
            self._tasks.append(
                asyncio.create_task(self.start_sequence.run(), name="start_sequence")
            )
        _LOGGER.info(
            "Session opened mode=%s laps=%s fixed_order=%s",
            self.options.mode,
            self.options.laps,
            self.options.fixed_order,
        )

    def start(self) -> None:
        if self.started:
            return
        self.started = True
        _LOGGER.info("Session started mode=%s", self.options.mode)

    def stop(self) -> None:
        """End the session; observers see a finished signal."""
        self._command(Finished(True))

    def toggle_yellow_flag(self) -> None:
        self._command(_TOGGLE_YELLOW)

    def _command(self, message: Any) -> None:
        self._inbox.put_nowait(message)
        if len(self._tasks) > 1 and self._tasks[1].done():
            # Source already exhausted: handle operator commands on a fresh worker
            self._tasks[1] = asyncio.create_task(self._drain(), name="session_commands")

    async def join(self) -> None:
        """Wait until the telemetry source is exhausted and every message is handled."""
        if len(self._tasks) > 1:
            await asyncio.shield(self._tasks[1])

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                _LOGGER.error("Session task %s failed: %s", task.get_name(), e)
        _LOGGER.info("Session closed mode=%s", self.options.mode)

    # ---- Internal ----
    async def _pump(self) -> None:
        try:
            async for message in self.source.subscribe():
                self._inbox.put_nowait(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            _LOGGER.error("Telemetry subscription failed: %s", e)
        finally:
            self._inbox.put_nowait(_END)

    async def _process(self) -> None:
        while True:
            message = await self._inbox.get()
            if message is _END:
                _LOGGER.info("Telemetry source exhausted")
                await self._drain()
                return
            await self._handle_queued(message)

    async def _drain(self) -> None:
        while not self._inbox.empty():
            await self._handle_queued(self._inbox.get_nowait())

    async def _handle_queued(self, message: Any) -> None:
        if message is _TOGGLE_YELLOW:
            # resolved against the flag state at processing time
            message = YellowFlag(not self.yellow_flag)
        await self.handle(message)

    async def handle(self, message: TelemetryMessage) -> List[RaceEvent]:
        """Apply one telemetry message and deliver the resulting events."""
        if isinstance(message, DriverTick):
            events = self.detector.process(message)
            self._latest[message.id] = message
            self.ranking = self.overlay.apply(
                rank(self._latest.values(), self.options), self.config.drivers()
            )
            await self._notify(self._ranking_listeners, self.ranking)
        elif isinstance(message, StartLight):
            events = self.detector.process(message)
            if self.start_sequence is not None:
                self.start_sequence.push(message.value)
        elif isinstance(message, LapCount):
            self.lap_count = LapCounter(message.lap, self.options.laps)
            await self._notify(self._lap_listeners, self.lap_count)
            try:
                await self.source.set_lap(message.lap)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _LOGGER.error("Lap counter error (lap=%d): %s", message.lap, e)
            events = self.detector.process(message)
        elif isinstance(message, YellowFlag):
            self.yellow_flag = message.active
            events = self.detector.process(message)
        elif isinstance(message, Finished):
            events = self.detector.process(message)
            self.finished = self.finished or message.finished
        else:
            _LOGGER.debug("Ignoring unknown telemetry message %r", message)
            return []
        for event in events:
            _LOGGER.debug("Race event: %s driver=%s", event.key, event.driver_id)
            await self._notify(self._event_listeners, event)
        return events

    async def _notify(self, listeners: List[Listener], value: Any) -> None:
        for listener in listeners:
            try:
                result = listener(value)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _LOGGER.error("Listener %r failed: %s", listener, e)
