from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional, Union

from slotcar_racecontrol.core.models import (
    DriverTick,
    Finished,
    LapCount,
    StartLight,
    TelemetryMessage,
    YellowFlag,
)
from slotcar_racecontrol.logging import get_logger
from slotcar_racecontrol.schemas import validation

_LOGGER = get_logger(__name__)


def parse_record(record: dict) -> Optional[TelemetryMessage]:
    """Convert one validated replay record into a telemetry message."""
    kind = record.get("type")
    subject = f"telemetry.{kind}"
    if subject not in validation.SCHEMAS or not validation.is_valid(subject, record):
        return None
    if kind == "tick":
        best = list(record.get("best") or [])
        best.extend([None] * (4 - len(best)))
        return DriverTick(
            id=record["id"],
            time=record.get("time"),
            best_lap=best[0],
            sector_best=(best[1], best[2], best[3]),
            overall_best=record.get("overall_best"),
            last_lap=record.get("last_lap"),
            laps=record.get("laps", 0),
            fuel=record.get("fuel"),
            in_pit=record.get("pit", False),
            finished=record.get("finished", False),
        )
    if kind == "start":
        return StartLight(record["value"])
    if kind == "lap":
        return LapCount(record["lap"])
    if kind == "yellow":
        return YellowFlag(record["active"])
    return Finished(record["finished"])


class ReplayTelemetrySource:
    """Plays back a JSON-lines telemetry recording.

    Each line is one record (``tick``, ``start``, ``lap``, ``yellow`` or
    ``finished``) with an optional ``delay`` in seconds before it is
    emitted. Malformed lines are logged and skipped. Hardware commands are
    recorded and logged since no control unit is attached.

    Parameters
    ----------
    lines:
        A path to the recording or an iterable of JSON lines.
    speed:
        Playback speed factor applied to delays; 0 disables waiting.
    """

    def __init__(self, lines: Union[str, Path, Iterable[str]], speed: float = 1.0):
        if isinstance(lines, (str, Path)):
            self._lines: List[str] = Path(lines).read_text(encoding="utf-8").splitlines()
        else:
            self._lines = list(lines)
        self.speed = speed
        self.commands: List[tuple] = []
        self.skipped = 0

    async def subscribe(self) -> AsyncIterator[TelemetryMessage]:
        for lineno, line in enumerate(self._lines, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                self.skipped += 1
                _LOGGER.warning("Replay line %d: bad JSON (%s)", lineno, e)
                continue
            message = parse_record(record) if isinstance(record, dict) else None
            if message is None:
                self.skipped += 1
                _LOGGER.warning("Replay line %d: invalid record %r", lineno, line[:200])
                continue
            delay = float(record.get("delay", 0.0))
            if delay > 0 and self.speed > 0:
                await asyncio.sleep(delay / self.speed)
            yield message

    async def toggle_start(self) -> None:
        self.commands.append(("toggle_start",))
        _LOGGER.info("[replay] toggle start")

    async def set_lap(self, lap: int) -> None:
        self.commands.append(("set_lap", lap))
        _LOGGER.debug("[replay] set lap %d", lap)
