"""Static line/station dataset and the per-line sampling boxes."""

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REGIONS = {
    "baden_wuerttemberg": "BW",
    "bayern": "BY",
}

DEFAULT_COLOR = "#00A3FF"

# (min_lon, min_lat, max_lon, max_lat)
BBox = tuple[float, float, float, float]

DEFAULT_BBOX: BBox = (9.0, 48.5, 11.0, 49.9)

BBOX_BY_LINE: dict[str, BBox] = {
    "RE9": (10.05, 48.30, 10.97, 48.60),
    "MEX16": (9.10, 48.65, 10.05, 48.75),
    "RE8": (9.05, 48.70, 10.00, 49.90),
}


@dataclass(frozen=True)
class Station:
    name: str
    lon: float
    lat: float


@dataclass(frozen=True)
class LineRecord:
    id: str
    name: str
    color: str
    region: str  # "BW" or "BY"
    stations: tuple[Station, ...]


def _station_from_record(raw: dict) -> Station:
    # Datasets mix "lng" and "lon"; fall back to a longitude inside the region.
    lon = raw.get("lng", raw.get("lon", 10.0))
    return Station(name=raw.get("name", ""), lon=float(lon), lat=float(raw["lat"]))


def parse_lines(dataset: dict) -> list[LineRecord]:
    """Flatten the region-grouped dataset into a list of line records."""
    if not isinstance(dataset, dict):
        raise ValueError(
            f"line dataset must be an object, got {type(dataset).__name__}"
        )
    records = []
    for region_key, region in REGIONS.items():
        groups = dataset.get(region_key) or []
        if not isinstance(groups, list):
            logger.warning("Region %s is not a list, skipping", region_key)
            continue
        for group in groups:
            if not isinstance(group, dict) or "id" not in group:
                logger.warning("Skipping malformed line in %s: %r", region_key, group)
                continue
            stations = tuple(
                _station_from_record(s)
                for s in group.get("stations") or []
                if isinstance(s, dict) and "lat" in s
            )
            records.append(
                LineRecord(
                    id=group["id"],
                    name=group.get("name", group["id"]),
                    color=group.get("color") or DEFAULT_COLOR,
                    region=region,
                    stations=stations,
                )
            )
    return records


def load_lines(path: str) -> list[LineRecord]:
    """Load the line dataset, returning an empty list if it is unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            dataset = json.load(f)
        return parse_lines(dataset)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Could not load line dataset from %s: %s", path, e)
        return []
