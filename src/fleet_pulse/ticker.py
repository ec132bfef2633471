"""Fleet-wide snapshot generation on a fixed tick."""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable

from fleet_pulse.geometry import RouteIndex
from fleet_pulse.models import Feature, FeatureCollection, FeatureProperties, PointGeometry
from fleet_pulse.physics import SpeedEstimator
from fleet_pulse.roster import Entity, EntityStatus, RosterItem
from fleet_pulse.seed import SeedSource
from fleet_pulse.weather import WeatherService

logger = logging.getLogger(__name__)

MAX_START_OFFSET_MS = 60_000
COORD_DECIMALS = 6


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Snapshot:
    seq: int
    generated_at: int  # epoch ms
    entities: tuple[Entity, ...]

    def to_feature_collection(self) -> FeatureCollection:
        return FeatureCollection(
            features=[
                Feature(
                    properties=FeatureProperties(
                        id=e.id,
                        line=e.route_id,
                        status=e.status.value,
                        speed=e.speed,
                        ts=e.ts,
                    ),
                    geometry=PointGeometry(coordinates=[e.lon, e.lat]),
                )
                for e in self.entities
            ]
        )

    def to_json(self) -> str:
        return self.to_feature_collection().model_dump_json()


@dataclass
class SimulationContext:
    """All state one simulation instance needs between ticks.

    Only the tick function mutates it, so independent instances (e.g. two
    seeds side by side) never share anything.
    """

    roster: list[RosterItem]
    routes: RouteIndex
    deterministic: bool = False
    seeds: SeedSource = field(default_factory=SeedSource)
    rng: random.Random = field(default_factory=random.Random)
    estimator: SpeedEstimator = field(default_factory=SpeedEstimator)
    weather: WeatherService = field(default_factory=WeatherService)
    clock: Callable[[], int] = wall_clock_ms
    train_start_ms: dict[str, int] = field(default_factory=dict)
    last_speed_kmh: dict[str, float] = field(default_factory=dict)
    seq: int = 0

    def reset(self, seed: int | None = None) -> None:
        self.seeds.reset(seed)
        self.train_start_ms.clear()
        self.last_speed_kmh.clear()


def _in_box(bbox, u: float, v: float) -> tuple[float, float]:
    min_lon, min_lat, max_lon, max_lat = bbox
    lon = min_lon + u * (max_lon - min_lon)
    lat = min_lat + v * (max_lat - min_lat)
    return round(lon, COORD_DECIMALS), round(lat, COORD_DECIMALS)


def _deterministic_entity(ctx: SimulationContext, item: RosterItem, now: int) -> Entity:
    u = ctx.seeds.next_uniform(item.id)
    v = ctx.seeds.next_uniform(item.id)
    lon, lat = _in_box(ctx.routes.bbox_for(item.route_id), u, v)
    return Entity(item.id, item.route_id, item.status, lon, lat, 0.0, now)


def _physics_entity(
    ctx: SimulationContext, item: RosterItem, now: int, modifier: float
) -> Entity:
    lon, lat = _in_box(
        ctx.routes.bbox_for(item.route_id), ctx.rng.random(), ctx.rng.random()
    )
    if item.status is not EntityStatus.ACTIVE:
        return Entity(item.id, item.route_id, item.status, lon, lat, 0.0, now)

    start = ctx.train_start_ms.get(item.id)
    if start is None:
        start = now - ctx.rng.randint(0, MAX_START_OFFSET_MS)
        ctx.train_start_ms[item.id] = start
    seconds_in_motion = (now - start) / 1000
    distance = ctx.routes.nearest_station_distance(item.route_id, lon, lat)
    previous = ctx.last_speed_kmh.get(item.id, 0.0)

    speed = ctx.estimator.next_speed(distance, previous, seconds_in_motion, 0.0)
    speed = round(speed * modifier, 1)
    ctx.last_speed_kmh[item.id] = speed
    return Entity(item.id, item.route_id, item.status, lon, lat, speed, now)


def generate_snapshot(ctx: SimulationContext) -> Snapshot:
    """Produce the next snapshot for the whole roster and advance ``ctx.seq``."""
    now = ctx.clock()
    if ctx.deterministic:
        entities = tuple(_deterministic_entity(ctx, item, now) for item in ctx.roster)
    else:
        modifier = ctx.weather.speed_modifier(ctx.weather.current_weather())
        entities = tuple(
            _physics_entity(ctx, item, now, modifier) for item in ctx.roster
        )
    ctx.seq += 1
    return Snapshot(seq=ctx.seq, generated_at=now, entities=entities)


class TickGenerator:
    """Runs ``generate_snapshot`` on a fixed interval and fans snapshots out.

    A tick never overlaps the next one: firings missed while a tick was
    running are skipped, not queued.
    """

    def __init__(self, context: SimulationContext, interval_ms: int = 500):
        self.context = context
        self.interval = interval_ms / 1000
        self.latest: Snapshot | None = None
        self.skipped = 0
        self._listeners: list[Callable[[Snapshot], None]] = []
        self._task: asyncio.Task | None = None

    def add_listener(self, listener: Callable[[Snapshot], None]) -> None:
        self._listeners.append(listener)

    def tick(self) -> Snapshot:
        snapshot = generate_snapshot(self.context)
        self.latest = snapshot
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Listener failed on tick %d", snapshot.seq)
        logger.debug("Tick %d: %d entities", snapshot.seq, len(snapshot.entities))
        return snapshot

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info(
            "Tick generator starting (%s mode, %d entities, every %dms)",
            "deterministic" if self.context.deterministic else "physics",
            len(self.context.roster),
            int(self.interval * 1000),
        )
        next_at = loop.time()
        try:
            while True:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Tick %d failed", self.context.seq + 1)

                next_at += self.interval
                now = loop.time()
                if now > next_at:
                    missed = int((now - next_at) // self.interval) + 1
                    self.skipped += missed
                    next_at += missed * self.interval
                    logger.warning("Tick overran, skipping %d firing(s)", missed)
                await asyncio.sleep(next_at - now)
        except asyncio.CancelledError:
            logger.info("Tick generator shutting down")
            raise

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
