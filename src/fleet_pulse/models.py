# src/fleet_pulse/models.py
from pydantic import BaseModel, Field


class PointGeometry(BaseModel):
    type: str = Field(default="Point", json_schema_extra={"example": "Point"})
    coordinates: list[float] = Field(
        ...,
        description="[longitude, latitude]",
        json_schema_extra={"example": [10.8856, 48.3655]},
    )


class FeatureProperties(BaseModel):
    id: str = Field(..., description="Stable train identifier")
    line: str = Field(..., description="Route identifier", json_schema_extra={"example": "RE9"})
    status: str = Field(
        ...,
        description="One of active, maintenance, reserve, offline, alarm",
    )
    speed: float = Field(..., description="Speed in km/h", ge=0)
    ts: int = Field(..., description="Generation time (epoch ms)")


class Feature(BaseModel):
    type: str = Field(default="Feature")
    properties: FeatureProperties
    geometry: PointGeometry


class FeatureCollection(BaseModel):
    type: str = Field(default="FeatureCollection")
    features: list[Feature]


class SnapshotResponse(FeatureCollection):
    seq: int = Field(..., description="Sequence id of the snapshot")


class LocationMessage(BaseModel):
    """Per-train message on the WebSocket fallback channel."""

    type: str = Field(default="location")
    runId: str
    line: str
    ts: int
    lon: float
    lat: float
    speed: float


class HealthResponse(BaseModel):
    status: str = "ok"
    mode: str
    seq: int
    fleet_size: int
    subscribers: int
    heartbeats: int


class SimRoute(BaseModel):
    id: str
    name: str
    color: str
    approx: bool
    coordinates: list[list[float]] = Field(
        ..., description="Array of [longitude, latitude] coordinate pairs"
    )
    length_km: float = Field(..., description="Straight-line length between stops")


class SimVehicle(BaseModel):
    id: str
    routeId: str
    status: str
    progress: float = Field(..., ge=0, lt=1)
    speed: float
    coordinates: list[float] | None = Field(
        None, description="Interpolated [longitude, latitude]"
    )
    color: str
    icon: str
