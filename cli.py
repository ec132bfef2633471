"""Dev CLI for fleet-pulse."""

import json
import os
import subprocess
import sys

COMMANDS = {
    "dev": "Run uvicorn in development mode with auto-reload",
    "start": "Run uvicorn in production mode",
    "test-server": "Run uvicorn in deterministic mode with test routes enabled",
    "tail": "Print events from a running /events stream (optional base URL)",
    "snapshot": "Print one deterministic snapshot (optional seed)",
}

APP = "fleet_pulse.main:app"
DEFAULT_BASE = "http://localhost:8000"


def _uvicorn(*extra: str, env: dict | None = None):
    subprocess.run(
        [
            sys.executable,
            "-m",
            "uvicorn",
            APP,
            *extra,
            "--host",
            "0.0.0.0",
            "--port",
            "8000",
        ],
        env={**os.environ, **(env or {})},
    )


def dev():
    _uvicorn("--reload", env={"LOG_LEVEL": "DEBUG"})


def start():
    _uvicorn()


def test_server():
    _uvicorn(env={"TEST_MODE": "1", "ENABLE_TEST_ROUTES": "true"})


def tail():
    import httpx

    base = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_BASE
    event = "message"
    try:
        with httpx.stream("GET", f"{base}/events", timeout=None) as resp:
            resp.raise_for_status()
            for line in resp.iter_lines():
                if line.startswith("event:"):
                    event = line.partition(":")[2].strip()
                elif line.startswith("data:"):
                    data = line.partition(":")[2].strip()
                    if event == "train:update":
                        fc = json.loads(data)
                        print(f"train:update  {len(fc['features'])} features")
                    else:
                        print(f"{event:12s}  {data}")
                elif not line:
                    event = "message"
    except httpx.HTTPError as e:
        print(f"Stream failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


def snapshot():
    from fleet_pulse.config import settings
    from fleet_pulse.geometry import RouteIndex
    from fleet_pulse.lines import load_lines
    from fleet_pulse.roster import load_roster
    from fleet_pulse.seed import SeedSource
    from fleet_pulse.ticker import SimulationContext, generate_snapshot

    seed = settings.seed
    if len(sys.argv) > 2:
        try:
            seed = int(sys.argv[2])
        except ValueError:
            print(f"Invalid seed: {sys.argv[2]}", file=sys.stderr)
            sys.exit(1)

    ctx = SimulationContext(
        roster=load_roster(settings.roster_path),
        routes=RouteIndex.from_lines(load_lines(settings.lines_path)),
        deterministic=True,
        seeds=SeedSource(seed),
        clock=lambda: 0,
    )
    print(generate_snapshot(ctx).to_json())


def usage():
    print("Usage: uv run cli.py <command>\n")
    print("Commands:")
    for name, desc in COMMANDS.items():
        print(f"  {name:14s} {desc}")
    sys.exit(1)


def main():
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        usage()

    cmd = sys.argv[1]
    dispatch = {
        "dev": dev,
        "start": start,
        "test-server": test_server,
        "tail": tail,
        "snapshot": snapshot,
    }
    dispatch[cmd]()


if __name__ == "__main__":
    main()
