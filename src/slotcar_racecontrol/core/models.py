from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from slotcar_racecontrol.config.settings import DriverSettings

# Start light codes reported by the control unit
START_LIGHT_OFF = 0
START_LIGHT_FALSE_START = 9

# Best lap/sector events are suppressed on warm-up laps
MIN_LAPS_FOR_BESTS = 3


@dataclass(frozen=True)
class DriverTick:
    id: int
    time: Optional[float] = None
    best_lap: Optional[float] = None
    sector_best: Tuple[Optional[float], Optional[float], Optional[float]] = (None, None, None)
    overall_best: Optional[float] = None
    last_lap: Optional[float] = None
    laps: int = 0
    fuel: Optional[int] = None
    in_pit: bool = False
    finished: bool = False

    @property
    def best(self) -> Tuple[Optional[float], ...]:
        """Best lap followed by the three sector bests."""
        return (self.best_lap, *self.sector_best)


@dataclass(frozen=True)
class StartLight:
    value: int


@dataclass(frozen=True)
class LapCount:
    lap: int


@dataclass(frozen=True)
class YellowFlag:
    active: bool


@dataclass(frozen=True)
class Finished:
    finished: bool


TelemetryMessage = Union[DriverTick, StartLight, LapCount, YellowFlag, Finished]


class EventKind(str, Enum):
    BEST_LAP = "bestlap"
    BEST_SECTOR = "bests"
    FUEL_LEVEL = "fuel"
    PIT_ENTER = "pitenter"
    PIT_EXIT = "pitexit"
    FALSE_START = "falsestart"
    FINAL_LAP = "finallap"
    YELLOW_FLAG = "yellowflag"
    GREEN_FLAG = "greenflag"
    FINISHED = "finished"


@dataclass(frozen=True)
class RaceEvent:
    kind: EventKind
    driver_id: Optional[int] = None
    value: Optional[int] = None  # sector number or fuel level
    timestamp: float = field(default_factory=time.time, compare=False)

    @property
    def key(self) -> str:
        """Notification key, e.g. ``bestlap``, ``bests2`` or ``fuel1``."""
        if self.kind in (EventKind.BEST_SECTOR, EventKind.FUEL_LEVEL):
            return f"{self.kind.value}{self.value}"
        return self.kind.value


@dataclass
class RankingEntry:
    tick: DriverTick
    position: int
    grid_position: Optional[int] = None
    refueling: bool = False
    driver: Optional[DriverSettings] = None

    @property
    def id(self) -> int:
        return self.tick.id


@dataclass(frozen=True)
class LapCounter:
    count: int
    total: Optional[int]
