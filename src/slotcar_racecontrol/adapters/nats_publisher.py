from __future__ import annotations

import asyncio
import json
from typing import Callable, Optional

from nats.aio.client import Client as NATS

from slotcar_racecontrol.config.settings import Settings
from slotcar_racecontrol.core.models import RaceEvent
from slotcar_racecontrol.logging import get_logger
from slotcar_racecontrol.schemas import validation

_LOGGER = get_logger(__name__)


def event_payload(event: RaceEvent, driver: Optional[str] = None) -> dict:
    return {
        "type": "race_event",
        "key": event.key,
        "kind": event.kind.value,
        "driver_id": event.driver_id,
        "driver": driver,
        "value": event.value,
        "timestamp": event.timestamp,
    }


class RaceEventPublisher:
    """Publishes race events as JSON on a NATS subject.

    Used as a session event listener. Publishing is best effort: failures
    are logged and counted, never raised into the session.
    """

    def __init__(
        self,
        settings: Settings,
        nc: Optional[NATS] = None,
        driver_name: Optional[Callable[[int], Optional[str]]] = None,
    ):
        self.settings = settings
        self.nc = nc
        self._driver_name = driver_name
        self._stats = {"published": 0, "failed": 0}

    async def __call__(self, event: RaceEvent) -> None:
        await self.publish(event)

    def stats(self) -> dict:
        return dict(self._stats)

    async def connect(self) -> None:
        if self.nc is not None:
            return
        nc = NATS()
        opts = {}
        if self.settings.nats.username and self.settings.nats.password:
            opts["user"] = self.settings.nats.username
            opts["password"] = self.settings.nats.password
        await asyncio.wait_for(
            nc.connect(servers=[self.settings.nats.url], **opts),
            timeout=self.settings.nats.connect_timeout,
        )
        self.nc = nc
        _LOGGER.info("[nats] connected %s", self.settings.nats.url)

    async def close(self) -> None:
        if self.nc:
            try:
                await self.nc.drain()
            except Exception as e:
                _LOGGER.debug("[nats] drain failed: %s", e)
            self.nc = None

    async def publish(self, event: RaceEvent) -> bool:
        if self.nc is None:
            self._stats["failed"] += 1
            _LOGGER.debug("[nats] not connected; dropping %s", event.key)
            return False
        driver = None
        if event.driver_id is not None and self._driver_name is not None:
            driver = self._driver_name(event.driver_id)
        payload = event_payload(event, driver)
        subject = self.settings.nats.event_subject
        try:
            validation.validate("race.event", payload)
            await self.nc.publish(subject, json.dumps(payload).encode())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._stats["failed"] += 1
            _LOGGER.error("[nats] publish %s to %s failed: %s", event.key, subject, e)
            return False
        self._stats["published"] += 1
        return True
