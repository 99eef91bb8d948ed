from __future__ import annotations

from typing import Optional

from slotcar_racecontrol.announcer.queue import AnnouncementQueue, get_announcement_queue
from slotcar_racecontrol.config.provider import SettingsProvider
from slotcar_racecontrol.core.messages import MessageResolver
from slotcar_racecontrol.core.models import RaceEvent
from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)


class AnnouncementDispatcher:
    """Turns race events into announcement texts for the queue.

    Configuration and message texts are read when each event arrives, so
    settings changes and locale switches apply to the next announcement.
    """

    def __init__(
        self,
        config: SettingsProvider,
        resolver: Optional[MessageResolver] = None,
        queue: Optional[AnnouncementQueue] = None,
    ):
        self._config = config
        self._resolver = resolver or MessageResolver()
        self._locale = config.locale()
        self._resolver.set_locale(self._locale)
        self._queue = queue or get_announcement_queue()

    def __call__(self, event: RaceEvent) -> None:
        self.dispatch(event)

    def driver_name(self, driver_id: int) -> Optional[str]:
        drivers = self._config.drivers()
        if not 0 <= driver_id < len(drivers):
            return None
        name = drivers[driver_id].name
        if name:
            return name
        return self._resolver.resolve("driver", number=driver_id + 1)

    def message_for(self, event: RaceEvent) -> Optional[str]:
        if not self._config.speech_enabled():
            return None
        locale = self._config.locale()
        if locale != self._locale:
            self._locale = locale
            self._resolver.set_locale(locale)
        key = event.key
        notification = self._config.notifications().get(key)
        if notification is None:
            _LOGGER.debug("No notification configured for %s", key)
            return None
        if not notification.enabled:
            return None
        message = notification.message or self._resolver.resolve(key)
        if not message:
            _LOGGER.warning("No message text for %s (locale=%s)", key, self._resolver.locale)
            return None
        if event.driver_id is not None:
            name = self.driver_name(event.driver_id)
            if name:
                return f"{name}: {message}"
        return message

    def dispatch(self, event: RaceEvent) -> Optional[str]:
        """Forward the event's announcement to the queue; returns the text or None if dropped."""
        text = self.message_for(event)
        if text is not None:
            self._queue.enqueue(text)
        return text
