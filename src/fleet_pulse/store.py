"""Self-contained route-following simulation for smooth map motion.

Vehicles carry a progress fraction along their line's polyline and are
advanced locally every tick, independent of the server snapshots.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, replace

from fleet_pulse.geometry import Point, RouteGeometry, RouteIndex, interpolate
from fleet_pulse.lines import LineRecord

logger = logging.getLogger(__name__)

DEFAULT_FLEET_SIZE = 144
ASSUMED_ROUTE_LENGTH_KM = 120.0
ADVANCE_FACTOR = 2.0
CRUISE_BAND_KMH = (90.0, 120.0)
FIRST_VEHICLE_NUMBER = 60000

STATUS_MIX = (
    ("active", 0.75),
    ("maintenance", 0.08),
    ("reserve", 0.12),
)

# Vehicles per line when the line is present; leftover slots go round-robin.
ALLOCATION_COUNTS: dict[str, int] = {
    "MEX13": 10,
    "MEX16": 13,
    "RE1": 8,
    "RE8": 9,
    "RE90": 5,
    "RE72": 7,
    "RE96": 9,
    "RB92": 6,
    "RE9": 10,
    "RE80": 10,
    "RE89": 10,
    "RB86": 10,
    "RB87": 10,
    "RB89": 6,
}


@dataclass(frozen=True)
class Vehicle:
    id: str
    route_id: str
    region: str | None
    status: str
    progress: float  # [0, 1)
    speed_kmh: float

    def as_record(self) -> dict:
        return {
            "id": self.id,
            "routeId": self.route_id,
            "status": self.status,
            "progress": self.progress,
            "speed": self.speed_kmh,
        }


def _round_half_up(x: float) -> int:
    return int(x + 0.5)


def status_counts(total: int) -> dict[str, int]:
    """Split ``total`` by the status mix; offline takes the remainder."""
    counts = {status: _round_half_up(total * share) for status, share in STATUS_MIX}
    # Rounding up several buckets can overshoot small totals.
    while sum(counts.values()) > total:
        largest = max(counts, key=counts.get)
        counts[largest] -= 1
    counts["offline"] = total - sum(counts.values())
    return counts


def wrap_progress(progress: float) -> float:
    """Closed-loop traversal: runs past the terminus restart from the origin."""
    while progress >= 1.0:
        progress -= 1.0
    return progress


def build_routes(records: list[LineRecord]) -> dict[str, RouteGeometry]:
    index = RouteIndex.from_lines(records)
    return {r.id: r for r in index.routes() if r.can_host_vehicle}


class SimulationStore:
    def __init__(
        self,
        tick_seconds: float = 1.0,
        rng: random.Random | None = None,
        advance_factor: float = ADVANCE_FACTOR,
        route_length_km: float = ASSUMED_ROUTE_LENGTH_KM,
    ):
        self.tick_seconds = tick_seconds
        self.advance_factor = advance_factor
        self.route_length_km = route_length_km
        self.routes: dict[str, RouteGeometry] = {}
        self.vehicles: list[Vehicle] = []
        self._rng = rng or random.Random()
        self._task: asyncio.Task | None = None

    def build_routes(self, records: list[LineRecord]) -> None:
        self.routes = build_routes(records)
        logger.info("Simulation store built %d routes", len(self.routes))

    def allocate_fleet(self, total: int = DEFAULT_FLEET_SIZE) -> None:
        line_ids = list(self.routes)
        if not line_ids:
            logger.warning("No routes loaded, fleet allocation skipped")
            self.vehicles = []
            return

        expanded: list[str] = []
        for line_id in line_ids:
            expanded.extend([line_id] * ALLOCATION_COUNTS.get(line_id, 0))
        i = 0
        while len(expanded) < total:
            expanded.append(line_ids[i % len(line_ids)])
            i += 1

        bucket: list[str] = []
        for status, count in status_counts(total).items():
            bucket.extend([status] * count)
        self._rng.shuffle(bucket)

        vehicles = []
        for n in range(total):
            line_id = expanded[n]
            status = bucket[n]
            speed = self._rng.uniform(*CRUISE_BAND_KMH) if status == "active" else 0.0
            vehicles.append(
                Vehicle(
                    id=f"{line_id}-{FIRST_VEHICLE_NUMBER + n + 1}",
                    route_id=line_id,
                    region=self.routes[line_id].region,
                    status=status,
                    progress=self._rng.random(),
                    speed_kmh=speed,
                )
            )
        self.vehicles = vehicles
        logger.info("Allocated %d vehicles across %d routes", total, len(line_ids))

    def progress_increment(self, speed_kmh: float) -> float:
        km = speed_kmh * (self.tick_seconds / 3600) * self.advance_factor
        return min(1.0, km / self.route_length_km)

    def advance(self) -> None:
        """Move every active vehicle one tick along its route."""
        updated = []
        for v in self.vehicles:
            if v.status != "active":
                updated.append(v)
                continue
            route = self.routes.get(v.route_id)
            if route is None or not route.can_host_vehicle:
                logger.debug("Skipping %s: no geometry for %s", v.id, v.route_id)
                updated.append(v)
                continue
            progress = wrap_progress(v.progress + self.progress_increment(v.speed_kmh))
            updated.append(replace(v, progress=progress))
        self.vehicles = updated

    def position_of(self, vehicle: Vehicle) -> Point | None:
        route = self.routes.get(vehicle.route_id)
        if route is None or not route.can_host_vehicle:
            return None
        return interpolate(route.points, vehicle.progress)

    def records(self) -> list[dict]:
        return [v.as_record() for v in self.vehicles]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            try:
                self.advance()
            except Exception:
                logger.exception("Simulation store tick failed")
