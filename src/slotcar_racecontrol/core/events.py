"""Race event detection over driver ticks and session-level signals.

The detector is a plain state machine: callers feed telemetry messages in
arrival order through `EventDetector.process` and get back the events the
message produced, in emission order. Concatenating those lists yields the
merged event stream.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional

from slotcar_racecontrol.config.settings import SessionOptions
from slotcar_racecontrol.core.models import (
    MIN_LAPS_FOR_BESTS,
    START_LIGHT_FALSE_START,
    DriverTick,
    EventKind,
    Finished,
    LapCount,
    RaceEvent,
    StartLight,
    TelemetryMessage,
    YellowFlag,
)
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)

_UNSET = object()


class EventDetector:
    """Turns telemetry into race events for a single session.

    `is_finished` reports the owning session's finished flag; the final
    lap announcement is guarded by it rather than by detector state.
    """

    def __init__(self, options: SessionOptions, is_finished: Callable[[], bool] = lambda: False):
        self.options = options
        self._is_finished = is_finished
        self._best: Dict[int, List[float]] = {}
        self._prev: Dict[int, DriverTick] = {}
        self._start_light: object = _UNSET
        self._lap: object = _UNSET
        self._yellow: Optional[bool] = None
        self._yellow_seen = False
        self._finished: Optional[bool] = None
        self._finished_emitted = False

    def best_times(self, driver_id: int) -> tuple[float, ...]:
        return tuple(self._best.get(driver_id, [math.inf] * 4))

    def process(self, message: TelemetryMessage) -> List[RaceEvent]:
        if isinstance(message, DriverTick):
            return self.on_tick(message)
        if isinstance(message, StartLight):
            return self.on_start_light(message.value)
        if isinstance(message, LapCount):
            return self.on_lap_count(message.lap)
        if isinstance(message, YellowFlag):
            return self.on_yellow_flag(message.active)
        if isinstance(message, Finished):
            return self.on_finished(message.finished)
        _LOGGER.debug("Ignoring unknown telemetry message %r", message)
        return []

    # ---- Per driver ----
    def on_tick(self, curr: DriverTick) -> List[RaceEvent]:
        prev = self._prev.get(curr.id)
        self._prev[curr.id] = curr
        if prev is None:
            return []
        return self._compare(prev, curr)

    def _compare(self, prev: DriverTick, curr: DriverTick) -> List[RaceEvent]:
        events: List[RaceEvent] = []
        best = self._best.setdefault(curr.id, [math.inf] * 4)
        for index, value in enumerate(curr.best):
            if value is None or not value < best[index]:
                continue
            best[index] = value
            if curr.laps >= MIN_LAPS_FOR_BESTS:
                if index:
                    events.append(RaceEvent(EventKind.BEST_SECTOR, curr.id, index))
                else:
                    events.append(RaceEvent(EventKind.BEST_LAP, curr.id))
        # Cars that stopped reporting live timing produce fuel/pit artifacts
        if not curr.finished and curr.time is not None:
            if curr.fuel is not None and prev.fuel is not None and curr.fuel < prev.fuel:
                events.append(RaceEvent(EventKind.FUEL_LEVEL, curr.id, curr.fuel))
            if curr.in_pit and not prev.in_pit:
                events.append(RaceEvent(EventKind.PIT_ENTER, curr.id))
            if not curr.in_pit and prev.in_pit:
                events.append(RaceEvent(EventKind.PIT_EXIT, curr.id))
        return events

    # ---- Session level ----
    def on_start_light(self, value: int) -> List[RaceEvent]:
        if value == self._start_light:
            return []
        self._start_light = value
        if value == START_LIGHT_FALSE_START:
            return [RaceEvent(EventKind.FALSE_START)]
        return []

    def on_lap_count(self, lap: int) -> List[RaceEvent]:
        if lap == self._lap:
            return []
        self._lap = lap
        target = self.options.laps
        if target and lap == target and not self._is_finished():
            return [RaceEvent(EventKind.FINAL_LAP)]
        return []

    def on_yellow_flag(self, active: bool) -> List[RaceEvent]:
        if active == self._yellow:
            return []
        self._yellow = active
        if not self._yellow_seen:
            if not active:
                return []
            self._yellow_seen = True
        return [RaceEvent(EventKind.YELLOW_FLAG if active else EventKind.GREEN_FLAG)]

    def on_finished(self, finished: bool) -> List[RaceEvent]:
        if finished == self._finished:
            return []
        self._finished = finished
        if finished and not self._finished_emitted:
            self._finished_emitted = True
            return [RaceEvent(EventKind.FINISHED)]
        return []
