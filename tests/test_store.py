import asyncio
import random

import pytest

from fleet_pulse.config import DATA_DIR
from fleet_pulse.lines import LineRecord, Station, load_lines
from fleet_pulse.store import (
    CRUISE_BAND_KMH,
    SimulationStore,
    Vehicle,
    build_routes,
    status_counts,
    wrap_progress,
)


def make_store(**kwargs) -> SimulationStore:
    store = SimulationStore(rng=random.Random(5), **kwargs)
    store.build_routes(load_lines(str(DATA_DIR / "lines.json")))
    return store


@pytest.mark.parametrize("total", list(range(4, 301)))
def test_status_partition_sums_to_total(total):
    counts = status_counts(total)
    assert set(counts) == {"active", "maintenance", "reserve", "offline"}
    assert sum(counts.values()) == total
    assert all(c >= 0 for c in counts.values())


def test_status_counts_for_default_fleet():
    assert status_counts(144) == {
        "active": 108,
        "maintenance": 12,
        "reserve": 17,
        "offline": 7,
    }


def test_wrap_progress():
    assert 0 <= wrap_progress(0.995 + 0.02) < 0.02
    assert wrap_progress(0.5) == 0.5
    assert wrap_progress(1.0) == 0.0


def test_build_routes_flattens_regions_and_drops_short_lines():
    records = load_lines(str(DATA_DIR / "lines.json"))
    records.append(
        LineRecord("ONE", "one stop", "#000", "BY", (Station("x", 10.0, 48.0),))
    )
    routes = build_routes(records)
    assert "ONE" not in routes
    assert len(routes) == 14
    assert routes["RE9"].region == "BY"
    assert routes["MEX16"].region == "BW"
    assert all(r.approx for r in routes.values())
    assert routes["RE9"].points[0] == (10.8856, 48.3655)


def test_allocate_fleet():
    store = make_store()
    store.allocate_fleet(144)
    vehicles = store.vehicles
    assert len(vehicles) == 144
    assert len({v.id for v in vehicles}) == 144
    assert vehicles[0].id == "MEX13-60001"

    by_status = {}
    for v in vehicles:
        by_status[v.status] = by_status.get(v.status, 0) + 1
    assert by_status == status_counts(144)

    for v in vehicles:
        assert v.route_id in store.routes
        assert 0 <= v.progress < 1
        if v.status == "active":
            assert CRUISE_BAND_KMH[0] <= v.speed_kmh <= CRUISE_BAND_KMH[1]
        else:
            assert v.speed_kmh == 0


def test_allocate_fleet_uses_every_route():
    store = make_store()
    store.allocate_fleet(144)
    assert {v.route_id for v in store.vehicles} == set(store.routes)


def test_allocate_small_fleet_round_robin():
    store = SimulationStore(rng=random.Random(1))
    store.build_routes(
        [
            LineRecord("X", "x", "#000", "BY", (Station("a", 10, 48), Station("b", 11, 48))),
            LineRecord("Y", "y", "#000", "BW", (Station("a", 9, 48), Station("b", 9, 49))),
        ]
    )
    store.allocate_fleet(5)
    assert [v.route_id for v in store.vehicles] == ["X", "Y", "X", "Y", "X"]


def test_allocate_without_routes_is_empty():
    store = SimulationStore()
    store.allocate_fleet(144)
    assert store.vehicles == []


def test_advance_wraps_progress():
    # 100 km/h for 36 s at factor 2 covers 2 km: 0.02 of a 100 km route
    store = make_store(tick_seconds=36, route_length_km=100)
    store.vehicles = [Vehicle("v", "RE9", "BY", "active", 0.995, 100.0)]
    store.advance()
    assert 0 <= store.vehicles[0].progress < 0.02


def test_advance_leaves_non_active_alone():
    store = make_store()
    store.vehicles = [
        Vehicle("m", "RE9", "BY", "maintenance", 0.3, 0.0),
        Vehicle("o", "RE9", "BY", "offline", 0.6, 0.0),
    ]
    before = list(store.vehicles)
    store.advance()
    assert store.vehicles == before


def test_advance_skips_unknown_route():
    store = make_store()
    store.vehicles = [
        Vehicle("lost", "NOPE", None, "active", 0.4, 100.0),
        Vehicle("ok", "RE9", "BY", "active", 0.4, 100.0),
    ]
    store.advance()
    assert store.vehicles[0].progress == 0.4
    assert store.vehicles[1].progress > 0.4


def test_progress_increment_matches_formula():
    store = make_store(tick_seconds=1)
    assert store.progress_increment(120) == pytest.approx(120 / 3600 * 2 / 120)


def test_records_and_position():
    store = make_store()
    store.vehicles = [Vehicle("v", "RE9", "BY", "active", 0.0, 100.0)]
    assert store.records() == [
        {"id": "v", "routeId": "RE9", "status": "active", "progress": 0.0, "speed": 100.0}
    ]
    assert store.position_of(store.vehicles[0]) == store.routes["RE9"].points[0]
    assert store.position_of(Vehicle("x", "NOPE", None, "active", 0.5, 1.0)) is None


async def test_start_is_idempotent_and_stop_cancels():
    store = make_store(tick_seconds=0.01)
    store.allocate_fleet(20)
    store.start()
    task = store._task
    store.start()
    assert store._task is task
    assert store.running

    store.stop()
    assert not store.running
    await asyncio.sleep(0)
    assert task.cancelled()


async def test_loop_advances_active_vehicles():
    store = make_store(tick_seconds=0.01)
    store.vehicles = [Vehicle("v", "RE9", "BY", "active", 0.1, 110.0)]
    store.start()
    await asyncio.sleep(0.05)
    store.stop()
    assert store.vehicles[0].progress > 0.1
