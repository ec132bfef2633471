from pathlib import Path

import pytest

from fleet_pulse.config import DATA_DIR, Settings


def test_default_settings(monkeypatch):
    for var in ("TEST_MODE", "SIM_SEED", "TICK_INTERVAL_MS", "ENABLE_TEST_ROUTES"):
        monkeypatch.delenv(var, raising=False)
    s = Settings()
    assert s.log_level == "INFO"
    assert s.tick_interval_ms == 500
    assert s.heartbeat_interval_s == 15
    assert s.location_interval_s == 1
    assert s.sim_tick_s == 1
    assert s.fleet_size == 144
    assert s.deterministic is False
    assert s.mode == "physics"
    assert s.seed == 1337
    assert s.subscriber_queue_size == 16
    assert s.enable_test_routes is False
    assert s.max_line_speed_kmh == 160
    assert Path(s.roster_path) == DATA_DIR / "fleet.json"
    assert Path(s.lines_path) == DATA_DIR / "lines.json"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("TICK_INTERVAL_MS", "250")
    monkeypatch.setenv("HEARTBEAT_INTERVAL_S", "5")
    monkeypatch.setenv("SIM_SEED", "42")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ROSTER_PATH", "/tmp/roster.json")
    s = Settings()
    assert s.tick_interval_ms == 250
    assert s.heartbeat_interval_s == 5
    assert s.seed == 42
    assert s.log_level == "DEBUG"
    assert s.roster_path == "/tmp/roster.json"


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes"])
def test_test_mode_flag(monkeypatch, value):
    monkeypatch.setenv("TEST_MODE", value)
    s = Settings()
    assert s.deterministic is True
    assert s.mode == "deterministic"


def test_test_mode_off(monkeypatch):
    monkeypatch.setenv("TEST_MODE", "0")
    assert Settings().deterministic is False


def test_malformed_number_fails_fast(monkeypatch):
    monkeypatch.setenv("TICK_INTERVAL_MS", "fast")
    with pytest.raises(ValueError):
        Settings()
