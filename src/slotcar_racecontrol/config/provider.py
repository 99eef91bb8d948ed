from __future__ import annotations

from typing import Dict, List

from slotcar_racecontrol.config.settings import (
    DriverSettings,
    NotificationSettings,
    SessionOptions,
    Settings,
    get_settings,
)
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)


class SettingsProvider:
    """Read-only view over the current settings snapshot.

    Consumers call the accessors whenever they need a value, so a snapshot
    swapped in via `update` is picked up by the next event without any
    re-subscription.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def update(self, **changes) -> Settings:
        self._settings = self._settings.model_copy(update=changes)
        _LOGGER.debug("Settings updated: %s", sorted(changes))
        return self._settings

    def session_options(self, mode: str) -> SessionOptions:
        if mode == "race":
            return self._settings.race
        if mode == "qualifying":
            return self._settings.qualifying
        return SessionOptions(mode="practice")

    def drivers(self) -> List[DriverSettings]:
        return list(self._settings.drivers)

    def notifications(self) -> Dict[str, NotificationSettings]:
        return dict(self._settings.notifications)

    def speech_enabled(self) -> bool:
        return self._settings.speech

    def locale(self) -> str:
        return self._settings.locale
