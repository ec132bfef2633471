import importlib
import os
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

TEST_ENV = {
    "TEST_MODE": "1",
    "SIM_SEED": "42",
    "TICK_INTERVAL_MS": "20",
    "LOCATION_INTERVAL_S": "0.05",
    "SIM_TICK_S": "0.05",
}


def _load_app(env: dict):
    with patch.dict(os.environ, env):
        import fleet_pulse.config

        importlib.reload(fleet_pulse.config)
        import fleet_pulse.main

        importlib.reload(fleet_pulse.main)
    return fleet_pulse.main.app


def wait_for_tick(client, seq: int = 1, timeout: float = 2.0) -> dict:
    """Poll /health until the tick generator has produced ``seq`` snapshots."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        health = client.get("/health").json()
        if health["seq"] >= seq:
            return health
        time.sleep(0.02)
    raise AssertionError(f"no tick {seq} within {timeout}s")


@pytest.fixture
def test_client():
    app = _load_app(TEST_ENV)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_client():
    app = _load_app({**TEST_ENV, "ENABLE_TEST_ROUTES": "true"})
    with TestClient(app) as client:
        yield client
