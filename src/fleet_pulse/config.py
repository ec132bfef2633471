import os
from pathlib import Path

DATA_DIR = Path(__file__).parent / "data"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Settings:
    def __init__(self):
        self.log_level: str = os.environ.get("LOG_LEVEL", "INFO")
        self.tick_interval_ms: int = int(os.environ.get("TICK_INTERVAL_MS", "500"))
        self.heartbeat_interval_s: float = float(
            os.environ.get("HEARTBEAT_INTERVAL_S", "15")
        )
        self.location_interval_s: float = float(
            os.environ.get("LOCATION_INTERVAL_S", "1")
        )
        self.sim_tick_s: float = float(os.environ.get("SIM_TICK_S", "1"))
        self.fleet_size: int = int(os.environ.get("SIM_FLEET_SIZE", "144"))
        # Deterministic mode backs the UI test suite; TEST_MODE=1 is what it sets.
        self.deterministic: bool = _env_flag("TEST_MODE")
        self.seed: int = int(os.environ.get("SIM_SEED", "1337"))
        self.roster_path: str = os.environ.get(
            "ROSTER_PATH", str(DATA_DIR / "fleet.json")
        )
        self.lines_path: str = os.environ.get(
            "LINES_PATH", str(DATA_DIR / "lines.json")
        )
        self.subscriber_queue_size: int = int(
            os.environ.get("SUBSCRIBER_QUEUE_SIZE", "16")
        )
        self.enable_test_routes: bool = _env_flag("ENABLE_TEST_ROUTES")
        self.max_line_speed_kmh: float = float(
            os.environ.get("MAX_LINE_SPEED_KMH", "160")
        )

    @property
    def mode(self) -> str:
        return "deterministic" if self.deterministic else "physics"


settings = Settings()
