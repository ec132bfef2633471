import json
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class EntityStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    RESERVE = "reserve"
    OFFLINE = "offline"
    ALARM = "alarm"


@dataclass(frozen=True)
class RosterItem:
    id: str
    route_id: str
    status: EntityStatus = EntityStatus.ACTIVE


@dataclass(frozen=True)
class Entity:
    """One fleet member as of a tick. Replaced wholesale every tick."""

    id: str
    route_id: str
    status: EntityStatus
    lon: float
    lat: float
    speed: float  # km/h
    ts: int  # epoch ms

    def __post_init__(self):
        if self.status is not EntityStatus.ACTIVE and self.speed != 0:
            raise ValueError(f"{self.id}: non-active entity must have speed 0")
        if self.speed < 0:
            raise ValueError(f"{self.id}: speed must be >= 0")


def parse_roster(rows: list[dict]) -> list[RosterItem]:
    if not isinstance(rows, list):
        raise ValueError(f"roster must be a list, got {type(rows).__name__}")
    items = []
    for row in rows:
        if not isinstance(row, dict) or "id" not in row:
            logger.warning("Skipping malformed roster row: %r", row)
            continue
        status = row.get("status", EntityStatus.ACTIVE.value)
        try:
            status = EntityStatus(status)
        except ValueError:
            logger.warning("Unknown status %r for %s, using active", status, row["id"])
            status = EntityStatus.ACTIVE
        route_id = row.get("routeId") or row.get("line") or ""
        items.append(RosterItem(id=str(row["id"]), route_id=route_id, status=status))
    return items


def load_roster(path: str) -> list[RosterItem]:
    """Read the roster file; an unreadable file yields an empty roster."""
    try:
        with open(path, encoding="utf-8") as f:
            rows = json.load(f)
        return parse_roster(rows)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Could not load roster from %s, running empty: %s", path, e)
        return []
