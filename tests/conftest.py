import asyncio

import pytest

from slotcar_racecontrol.config.provider import SettingsProvider
from slotcar_racecontrol.config import settings as settings_mod


class FakeSource:
    """Telemetry source replaying a fixed list of messages."""

    def __init__(self, messages=(), fail_commands=False):
        self.messages = list(messages)
        self.fail_commands = fail_commands
        self.commands = []
        self.subscriptions = 0

    async def subscribe(self):
        self.subscriptions += 1
        for message in self.messages:
            yield message

    async def toggle_start(self):
        self.commands.append(("toggle_start",))
        if self.fail_commands:
            raise RuntimeError("bluetooth write failed")

    async def set_lap(self, lap):
        self.commands.append(("set_lap", lap))
        if self.fail_commands:
            raise RuntimeError("bluetooth write failed")


class LiveSource(FakeSource):
    """Telemetry source fed by the test while the session runs."""

    def __init__(self, fail_commands=False):
        super().__init__(fail_commands=fail_commands)
        self._queue = asyncio.Queue()

    def push(self, *messages):
        for message in messages:
            self._queue.put_nowait(message)

    def end(self):
        self._queue.put_nowait(None)

    async def subscribe(self):
        self.subscriptions += 1
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def provider():
    # Resolve names at call time: test_config_settings reloads the module
    drivers = settings_mod.default_drivers()
    drivers[0] = settings_mod.DriverSettings(name="Alice", code="ALI")
    drivers[2] = settings_mod.DriverSettings(name="Carol", code="CAR")
    return SettingsProvider(settings_mod.Settings(drivers=drivers))
