import io
import logging
import sys

import pytest

from slotcar_racecontrol.logging import _DEFAULT_FORMAT, configure_logging, get_logger, resolve_level


@pytest.fixture
def captured():
    stream = io.StringIO()
    configure_logging("INFO", fmt="%(name)s: %(message)s", stream=stream)
    yield stream
    configure_logging("INFO", fmt=_DEFAULT_FORMAT, stream=sys.stderr)


def test_resolve_level_names_numbers_and_fallback(monkeypatch):
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" warning ") == logging.WARNING
    assert resolve_level("15") == 15
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("loud") == logging.INFO
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    assert resolve_level(None) == logging.ERROR


def test_reconfigure_keeps_single_handler(captured):
    root = logging.getLogger()
    handler = configure_logging("WARNING")
    assert configure_logging("INFO") is handler
    assert root.handlers.count(handler) == 1
    assert root.level == logging.INFO


def test_race_loggers_write_to_configured_stream(captured):
    get_logger("slotcar_racecontrol.core.session").info("Session opened mode=%s", "race")
    get_logger("slotcar_racecontrol.core.session").debug("Race event: %s", "bestlap")
    output = captured.getvalue()
    assert "slotcar_racecontrol.core.session: Session opened mode=race" in output
    assert "bestlap" not in output


def test_nats_client_quiet_unless_debug(captured):
    assert logging.getLogger("nats").level == logging.WARNING
    configure_logging("DEBUG")
    assert logging.getLogger("nats").level == logging.DEBUG
