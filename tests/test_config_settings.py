import importlib
import json

import pytest


def reload_settings_module():
    import slotcar_racecontrol.config.settings as settings_mod

    importlib.reload(settings_mod)
    return settings_mod


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in [
        "CONFIG_PATH",
        "NATS_URL",
        "EVENT_SUBJECT",
        "NATS_USERNAME",
        "NATS_PASSWORD",
        "NATS_CONNECT_TIMEOUT",
        "SPEECH",
        "LOCALE",
        "RACE_LAPS",
        "PUBLISH_EVENTS",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.json"))


def test_default_settings_values():
    s = reload_settings_module().get_settings()
    assert s.nats.url.startswith("nats://")
    assert s.speech is True
    assert s.race.mode == "race" and s.race.laps == 10
    assert s.qualifying.mode == "qualifying"
    assert len(s.drivers) == 8
    assert s.notifications["bestlap"].enabled
    assert not s.notifications["bests1"].enabled
    assert s.publish_events is False


def test_env_override(monkeypatch):
    monkeypatch.setenv("NATS_URL", "nats://localhost:4223")
    monkeypatch.setenv("EVENT_SUBJECT", "track.events")
    monkeypatch.setenv("NATS_CONNECT_TIMEOUT", "2.5")
    monkeypatch.setenv("SPEECH", "0")
    monkeypatch.setenv("LOCALE", "de")
    monkeypatch.setenv("RACE_LAPS", "25")
    monkeypatch.setenv("PUBLISH_EVENTS", "1")
    s = reload_settings_module().get_settings()
    assert s.nats.url.endswith(":4223")
    assert s.nats.event_subject == "track.events"
    assert s.nats.connect_timeout == 2.5
    assert s.speech is False
    assert s.locale == "de"
    assert s.race.laps == 25
    assert s.publish_events is True


def test_zero_laps_means_open_race(monkeypatch):
    monkeypatch.setenv("RACE_LAPS", "0")
    s = reload_settings_module().get_settings()
    assert s.race.laps is None


def test_config_file(monkeypatch, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "speech": False,
                "drivers": [{"name": "Alice", "color": "#ff0000"}],
                "notifications": {"pitenter": {"enabled": False}, "bestlap": {"message": "Purple!"}},
                "race": {"laps": 30, "fixed_order": True},
            }
        )
    )
    monkeypatch.setenv("CONFIG_PATH", str(path))
    s = reload_settings_module().get_settings()
    assert s.speech is False
    assert s.drivers[0].name == "Alice" and len(s.drivers) == 8
    assert s.notifications["pitenter"].enabled is False
    assert s.notifications["bestlap"].message == "Purple!"
    # untouched keys keep their defaults
    assert s.notifications["finished"].enabled
    assert s.race.laps == 30 and s.race.fixed_order and s.race.mode == "race"


def test_malformed_config_falls_back(monkeypatch, tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    monkeypatch.setenv("CONFIG_PATH", str(path))
    s = reload_settings_module().get_settings()
    assert s.race.laps == 10


def test_provider_session_options():
    from slotcar_racecontrol.config.provider import SettingsProvider

    settings_mod = reload_settings_module()
    provider = SettingsProvider(settings_mod.Settings())
    assert provider.session_options("race").laps == 10
    assert provider.session_options("qualifying").mode == "qualifying"
    practice = provider.session_options("practice")
    assert practice.mode == "practice" and practice.laps is None
