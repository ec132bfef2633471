# src/fleet_pulse/routes.py
import asyncio
import logging

from fastapi import APIRouter, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, StreamingResponse

from fleet_pulse.broadcaster import Broadcaster
from fleet_pulse.geometry import polyline_length_m
from fleet_pulse.models import LocationMessage, SimRoute, SimVehicle, SnapshotResponse
from fleet_pulse.store import SimulationStore
from fleet_pulse.styles import style_for
from fleet_pulse.ticker import Snapshot, TickGenerator

log = logging.getLogger(__name__)

router = APIRouter()

RETRY_MS = 5000

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get(
    "/events",
    summary="Live fleet stream",
    description="Server-sent events: `ping` once on connect, `train:update` with a "
    "GeoJSON FeatureCollection every tick, `hb` heartbeats. Send `Last-Event-ID` "
    "(or `?lastEventId=`) to resume.",
    tags=["stream"],
)
async def events(
    request: Request,
    last_event_id: str | None = Header(None),
    last_event_id_query: str | None = Query(None, alias="lastEventId"),
):
    broadcaster: Broadcaster = request.app.state.broadcaster
    ticker: TickGenerator = request.app.state.ticker
    token = last_event_id if last_event_id is not None else last_event_id_query

    async def stream():
        sub = broadcaster.subscribe(token, ticker.context.seq)
        try:
            yield f"retry: {RETRY_MS}\n\n"
            while True:
                event = await sub.get()
                if event is None:
                    return
                yield event.encode()
        finally:
            broadcaster.unsubscribe(sub)

    return StreamingResponse(
        stream(), media_type="text/event-stream", headers=SSE_HEADERS
    )


def snapshot_to_locations(snapshot: Snapshot) -> list[dict]:
    return [
        LocationMessage(
            runId=e.id,
            line=e.route_id,
            ts=e.ts,
            lon=e.lon,
            lat=e.lat,
            speed=e.speed,
        ).model_dump()
        for e in snapshot.entities
    ]


@router.websocket("/ws")
async def websocket_locations(websocket: WebSocket):
    """Fallback for clients without EventSource: one `location` message per
    train, repeated every LOCATION_INTERVAL_S seconds."""
    ticker: TickGenerator = websocket.app.state.ticker
    interval: float = websocket.app.state.location_interval
    await websocket.accept()
    log.info("WebSocket client connected")

    async def send_loop():
        while True:
            snapshot = ticker.latest
            if snapshot is not None:
                for message in snapshot_to_locations(snapshot):
                    await websocket.send_json(message)
            await asyncio.sleep(interval)

    sender = asyncio.create_task(send_loop())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.info("WebSocket client disconnected")
    finally:
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Sends racing a closed socket end up here.
            log.debug("WebSocket sender stopped: %s", e)


@router.get(
    "/snapshot",
    response_model=SnapshotResponse,
    summary="Latest fleet snapshot",
    tags=["stream"],
)
def get_snapshot(request: Request):
    ticker: TickGenerator = request.app.state.ticker
    snapshot = ticker.latest
    if snapshot is None:
        return JSONResponse({"error": "No snapshot yet"}, status_code=503)
    fc = snapshot.to_feature_collection()
    return SnapshotResponse(features=fc.features, seq=snapshot.seq)


@router.get(
    "/sim/routes",
    response_model=list[SimRoute],
    summary="Route geometries used by the local simulation",
    tags=["sim"],
)
def get_sim_routes(request: Request):
    store: SimulationStore = request.app.state.sim_store
    return [
        SimRoute(
            id=r.id,
            name=r.name,
            color=r.color,
            approx=r.approx,
            coordinates=[list(p) for p in r.points],
            length_km=round(polyline_length_m(r.points) / 1000, 1),
        )
        for r in store.routes.values()
    ]


@router.get(
    "/sim/vehicles",
    response_model=list[SimVehicle],
    summary="Locally simulated vehicles with interpolated positions",
    tags=["sim"],
)
def get_sim_vehicles(
    request: Request,
    status: str | None = Query(None, description="Filter by status"),
    route: str | None = Query(None, description="Filter by route id"),
):
    store: SimulationStore = request.app.state.sim_store
    result = []
    for v in store.vehicles:
        if status is not None and v.status != status:
            continue
        if route is not None and v.route_id != route:
            continue
        position = store.position_of(v)
        style = style_for(v.status)
        result.append(
            SimVehicle(
                **v.as_record(),
                coordinates=list(position) if position is not None else None,
                color=style["color"],
                icon=style["icon"],
            )
        )
    return result
