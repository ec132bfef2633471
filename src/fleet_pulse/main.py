# src/fleet_pulse/main.py
import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fleet_pulse import admin_routes
from fleet_pulse.broadcaster import Broadcaster
from fleet_pulse.config import settings
from fleet_pulse.geometry import RouteIndex
from fleet_pulse.lines import load_lines
from fleet_pulse.models import HealthResponse
from fleet_pulse.physics import SpeedEstimator
from fleet_pulse.roster import load_roster
from fleet_pulse.routes import router
from fleet_pulse.seed import SeedSource
from fleet_pulse.store import SimulationStore
from fleet_pulse.ticker import SimulationContext, TickGenerator

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_context() -> SimulationContext:
    lines = load_lines(settings.lines_path)
    roster = load_roster(settings.roster_path)
    return SimulationContext(
        roster=roster,
        routes=RouteIndex.from_lines(lines),
        deterministic=settings.deterministic,
        seeds=SeedSource(settings.seed),
        estimator=SpeedEstimator(settings.max_line_speed_kmh),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    context = build_context()
    ticker = TickGenerator(context, interval_ms=settings.tick_interval_ms)
    broadcaster = Broadcaster(
        heartbeat_interval_s=settings.heartbeat_interval_s,
        queue_size=settings.subscriber_queue_size,
    )
    ticker.add_listener(broadcaster.publish)

    rng = random.Random(settings.seed) if settings.deterministic else None
    sim_store = SimulationStore(tick_seconds=settings.sim_tick_s, rng=rng)
    sim_store.build_routes(load_lines(settings.lines_path))
    sim_store.allocate_fleet(settings.fleet_size)

    app.state.ticker = ticker
    app.state.broadcaster = broadcaster
    app.state.sim_store = sim_store
    app.state.location_interval = settings.location_interval_s
    app.state.default_seed = settings.seed
    logger.info(
        "Simulation ready: %d roster entries, %d routes, %s mode",
        len(context.roster),
        len(context.routes),
        settings.mode,
    )

    ticker.start()
    sim_store.start()
    yield
    sim_store.stop()
    broadcaster.close()
    await ticker.stop()
    logger.info("Shutdown complete")


app = FastAPI(
    title="fleet pulse",
    description="Live position simulation for a demo rail fleet. `/events` streams "
    "GeoJSON FeatureCollections as server-sent events; `/ws` is a WebSocket "
    "fallback carrying one `location` message per train.\n\n"
    "**All positions and speeds are simulated.**",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)
if settings.enable_test_routes:
    app.include_router(admin_routes.router)


@app.get("/health", response_model=HealthResponse, tags=["system"])
def health():
    ticker: TickGenerator = app.state.ticker
    broadcaster: Broadcaster = app.state.broadcaster
    return HealthResponse(
        mode=settings.mode,
        seq=ticker.context.seq,
        fleet_size=len(ticker.context.roster),
        subscribers=broadcaster.subscriber_count,
        heartbeats=broadcaster.active_heartbeats,
    )
