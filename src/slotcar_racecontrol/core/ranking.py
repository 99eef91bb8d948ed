from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, List, Sequence

from slotcar_racecontrol.config.settings import DriverSettings, SessionOptions
from slotcar_racecontrol.core.models import DriverTick, RankingEntry
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)


def _or_inf(value: float | None) -> float:
    return math.inf if value is None else value


def ranking_key(options: SessionOptions) -> Callable[[DriverTick], tuple]:
    """Sort key for a ranking snapshot under the given session options.

    fixed order: by car id
    race: most laps first, then lowest elapsed time
    practice/qualifying: fastest best lap first
    """
    if options.fixed_order:
        return lambda t: (t.id,)
    if options.mode == "race":
        return lambda t: (-t.laps, _or_inf(t.time), t.id)
    return lambda t: (_or_inf(t.best_lap), t.id)


def rank(ticks: Iterable[DriverTick], options: SessionOptions) -> List[DriverTick]:
    return sorted(ticks, key=ranking_key(options))


class RankingOverlay:
    """Adds grid position and refuel detection to ranking snapshots.

    Grid positions and pit-lane fuel marks live as long as the overlay
    instance, i.e. one session.
    """

    def __init__(self, mode: str):
        self.mode = mode
        self._grid_pos: Dict[int, int] = {}
        self._pit_fuel: Dict[int, int] = {}

    def grid_position(self, driver_id: int) -> int | None:
        return self._grid_pos.get(driver_id)

    def apply(
        self, ranked: Sequence[DriverTick], drivers: Sequence[DriverSettings] = ()
    ) -> List[RankingEntry]:
        entries: List[RankingEntry] = []
        for index, tick in enumerate(ranked):
            if self.mode == "race" and tick.id not in self._grid_pos and tick.time is not None:
                self._grid_pos[tick.id] = index
                _LOGGER.debug("Grid position car=%d pos=%d", tick.id, index)
            low_water = self._pit_fuel.get(tick.id)
            refueling = False
            if tick.fuel is not None:
                refueling = tick.in_pit and low_water is not None and tick.fuel > low_water
                if not tick.in_pit or low_water is None or tick.fuel < low_water:
                    self._pit_fuel[tick.id] = tick.fuel
            entries.append(
                RankingEntry(
                    tick=tick,
                    position=index,
                    grid_position=self._grid_pos.get(tick.id),
                    refueling=refueling,
                    driver=drivers[tick.id] if 0 <= tick.id < len(drivers) else None,
                )
            )
        return entries
