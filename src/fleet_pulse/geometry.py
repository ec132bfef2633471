"""Route geometry lookups: polylines, sampling boxes and stop distances."""

import logging
import math
from dataclasses import dataclass, field

from fleet_pulse.lines import BBOX_BY_LINE, DEFAULT_BBOX, BBox, LineRecord

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0
FALLBACK_STATION_DISTANCE_M = 2000.0

Point = tuple[float, float]  # (lon, lat)


def haversine_m(a: Point, b: Point) -> float:
    """Great-circle distance in meters between two (lon, lat) points."""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    s = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(s))


def polyline_length_m(points: list[Point]) -> float:
    return sum(haversine_m(points[i - 1], points[i]) for i in range(1, len(points)))


def interpolate(points: list[Point], progress: float) -> Point:
    """Map a progress fraction onto the point sequence.

    The fraction is spread evenly over the segments (not by length), and the
    coordinate is a linear blend of the two bracketing points.
    """
    if not points:
        raise ValueError("cannot interpolate along an empty route")
    if len(points) == 1:
        return points[0]
    progress = min(max(progress, 0.0), 1.0)
    pos = progress * (len(points) - 1)
    i = min(int(pos), len(points) - 2)
    t = pos - i
    a, b = points[i], points[i + 1]
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def bbox_of(points: list[Point]) -> BBox:
    lons = [p[0] for p in points]
    lats = [p[1] for p in points]
    return (min(lons), min(lats), max(lons), max(lats))


def bbox_ring(bbox: BBox) -> list[Point]:
    min_lon, min_lat, max_lon, max_lat = bbox
    return [
        (min_lon, min_lat),
        (max_lon, min_lat),
        (max_lon, max_lat),
        (min_lon, max_lat),
        (min_lon, min_lat),
    ]


@dataclass(frozen=True)
class RouteGeometry:
    id: str
    name: str
    color: str
    points: list[Point]
    approx: bool = True
    region: str | None = None
    stations: list[Point] = field(default_factory=list)

    @property
    def can_host_vehicle(self) -> bool:
        return len(self.points) >= 2


class RouteIndex:
    """Immutable lookup table of route geometries keyed by route id."""

    def __init__(
        self,
        routes: list[RouteGeometry] | None = None,
        bboxes: dict[str, BBox] | None = None,
        default_bbox: BBox = DEFAULT_BBOX,
    ):
        self._routes: dict[str, RouteGeometry] = {r.id: r for r in routes or []}
        self._bboxes: dict[str, BBox] = dict(BBOX_BY_LINE if bboxes is None else bboxes)
        self.default_bbox = default_bbox

    @classmethod
    def from_lines(cls, records: list[LineRecord], **kwargs) -> "RouteIndex":
        routes = []
        for rec in records:
            points = [(s.lon, s.lat) for s in rec.stations]
            routes.append(
                RouteGeometry(
                    id=rec.id,
                    name=rec.name,
                    color=rec.color,
                    points=points,
                    approx=True,
                    region=rec.region,
                    stations=list(points),
                )
            )
        return cls(routes, **kwargs)

    def __contains__(self, route_id: str) -> bool:
        return route_id in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def get(self, route_id: str) -> RouteGeometry | None:
        return self._routes.get(route_id)

    def routes(self) -> list[RouteGeometry]:
        return list(self._routes.values())

    def points_for(self, route_id: str) -> list[Point]:
        """Ordered polyline for a route.

        Unknown routes (or routes too short to traverse) get the outline of
        the default region box so an entity always has somewhere to go.
        """
        route = self._routes.get(route_id)
        if route is None or not route.can_host_vehicle:
            return bbox_ring(self.default_bbox)
        return list(route.points)

    def bbox_for(self, route_id: str) -> BBox:
        if route_id in self._bboxes:
            return self._bboxes[route_id]
        route = self._routes.get(route_id)
        if route is not None and route.can_host_vehicle:
            return bbox_of(route.points)
        return self.default_bbox

    def nearest_point(self, route_id: str, lon: float, lat: float) -> tuple[int, Point]:
        """Index and coordinate of the polyline vertex closest to (lon, lat)."""
        points = self.points_for(route_id)
        best = min(range(len(points)), key=lambda i: haversine_m(points[i], (lon, lat)))
        return best, points[best]

    def nearest_station_distance(self, route_id: str, lon: float, lat: float) -> float:
        """Meters from (lon, lat) to the closest stop on the route."""
        route = self._routes.get(route_id)
        if route is None or not route.stations:
            return FALLBACK_STATION_DISTANCE_M
        return min(haversine_m(s, (lon, lat)) for s in route.stations)
