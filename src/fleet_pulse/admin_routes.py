# src/fleet_pulse/admin_routes.py
"""Test/ops controls. Only mounted when ENABLE_TEST_ROUTES is set."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from fleet_pulse.ticker import TickGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class SeedResetResponse(BaseModel):
    ok: bool
    seed: int
    seq: int


@router.post("/seed/reset", response_model=SeedResetResponse)
async def reset_seed(request: Request):
    ticker: TickGenerator = request.app.state.ticker
    default_seed: int = request.app.state.default_seed
    ticker.context.reset(default_seed)
    logger.info("Deterministic seed reset to %d", default_seed)
    return SeedResetResponse(ok=True, seed=default_seed, seq=ticker.context.seq)
