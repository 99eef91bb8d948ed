from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)

SessionMode = Literal["practice", "qualifying", "race"]

# Number of controller slots on the race control unit
DRIVER_SLOTS = 8


class NATSSettings(BaseModel):
    url: str = Field(default="nats://localhost:4222")
    event_subject: str = Field(default="racecontrol.events")
    # Credentials optional; anonymous connect when unset
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    connect_timeout: float = Field(default=10.0)


class SessionOptions(BaseModel):
    mode: SessionMode = Field(default="practice")
    laps: Optional[int] = Field(default=None)  # lap target, None = open ended
    sectors: bool = Field(default=False)
    fixed_order: bool = Field(default=False)


class DriverSettings(BaseModel):
    name: Optional[str] = Field(default=None)
    code: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None)


class NotificationSettings(BaseModel):
    enabled: bool = Field(default=True)
    message: Optional[str] = Field(default=None)  # overrides the localized default


def default_notifications() -> Dict[str, NotificationSettings]:
    notifications = {
        key: NotificationSettings()
        for key in (
            "bestlap",
            "pitenter",
            "pitexit",
            "falsestart",
            "finallap",
            "yellowflag",
            "greenflag",
            "finished",
        )
    }
    # Sector bests are chatty; opt-in only
    for sector in (1, 2, 3):
        notifications[f"bests{sector}"] = NotificationSettings(enabled=False)
    for level in (0, 1, 2):
        notifications[f"fuel{level}"] = NotificationSettings()
    return notifications


def default_drivers() -> List[DriverSettings]:
    return [DriverSettings() for _ in range(DRIVER_SLOTS)]


class Settings(BaseModel):
    nats: NATSSettings = Field(default_factory=NATSSettings)
    log_level: str = Field(default="INFO")
    speech: bool = Field(default=True)
    locale: str = Field(default="en")
    drivers: List[DriverSettings] = Field(default_factory=default_drivers)
    notifications: Dict[str, NotificationSettings] = Field(default_factory=default_notifications)
    race: SessionOptions = Field(default_factory=lambda: SessionOptions(mode="race", laps=10))
    qualifying: SessionOptions = Field(
        default_factory=lambda: SessionOptions(mode="qualifying")
    )
    # Publish race events to NATS for external observers
    publish_events: bool = Field(default=False)


def _env_flag(name: str, default: bool) -> bool:
    return os.environ.get(name, str(int(default))) in {"1", "true", "True"}


def get_settings() -> Settings:
    # Load base from config file if present
    config_path = os.environ.get("CONFIG_PATH", "config.json")
    data: dict = {}
    p = Path(config_path)
    if p.exists():
        try:
            data = json.loads(p.read_text())
        except Exception as e:
            _LOGGER.warning("Ignoring malformed config %s: %s", config_path, e)
            data = {}
    if not isinstance(data, dict):
        data = {}

    nats_block = data.get("nats", {}) if isinstance(data.get("nats"), dict) else {}
    if os.environ.get("NATS_URL"):
        nats_block["url"] = os.environ["NATS_URL"]
    if os.environ.get("EVENT_SUBJECT"):
        nats_block["event_subject"] = os.environ["EVENT_SUBJECT"]
    if os.environ.get("NATS_USERNAME"):
        nats_block["username"] = os.environ["NATS_USERNAME"]
    if os.environ.get("NATS_PASSWORD"):
        nats_block["password"] = os.environ["NATS_PASSWORD"]
    if os.environ.get("NATS_CONNECT_TIMEOUT"):
        nats_block["connect_timeout"] = float(os.environ["NATS_CONNECT_TIMEOUT"])

    race_block = data.get("race", {}) if isinstance(data.get("race"), dict) else {}
    race_block.setdefault("laps", 10)
    race_block["mode"] = "race"
    if os.environ.get("RACE_LAPS"):
        laps = int(os.environ["RACE_LAPS"])
        race_block["laps"] = laps if laps > 0 else None
    qualifying_block = (
        data.get("qualifying", {}) if isinstance(data.get("qualifying"), dict) else {}
    )
    qualifying_block["mode"] = "qualifying"

    settings = Settings(
        nats=NATSSettings(**nats_block),
        log_level=os.environ.get("LOG_LEVEL", data.get("log_level", "INFO")),
        speech=_env_flag("SPEECH", bool(data.get("speech", True))),
        locale=os.environ.get("LOCALE", data.get("locale", "en")),
        race=SessionOptions(**race_block),
        qualifying=SessionOptions(**qualifying_block),
        publish_events=_env_flag("PUBLISH_EVENTS", bool(data.get("publish_events", False))),
    )
    if isinstance(data.get("drivers"), list):
        drivers = [DriverSettings(**d) for d in data["drivers"] if isinstance(d, dict)]
        # Pad to the full number of slots
        drivers.extend(DriverSettings() for _ in range(DRIVER_SLOTS - len(drivers)))
        settings.drivers = drivers
    if isinstance(data.get("notifications"), dict):
        notifications = default_notifications()
        for key, value in data["notifications"].items():
            if isinstance(value, dict):
                notifications[key] = NotificationSettings(**value)
        settings.notifications = notifications
    return settings
