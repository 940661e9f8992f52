"""
FPL Live - Endpoints Module

FastAPI app initialization, CORS middleware, lifespan handler,
and the live gameweek API endpoints.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from fpl_live.cache import LiveDataCache
from fpl_live.calculators import get_player_live_computed
from fpl_live.autosubs import compute_live_squad
from fpl_live.models import LiveSquadRequest, PlayerLiveResponse
import fpl_live.services as services_module


logger = logging.getLogger("fpl_live")


def get_live_cache(request: Request) -> LiveDataCache:
    """One LiveDataCache per app; never shared across app instances."""
    state = request.app.state
    if getattr(state, "live_cache", None) is None:
        state.live_cache = LiveDataCache()
    return state.live_cache


def _require_gameweek(gw: int):
    if not 1 <= gw <= 38:
        raise HTTPException(status_code=400, detail=f"Invalid gameweek {gw}")


# ============ LIFESPAN ============

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup - create shared HTTP client and this app's cache
    services_module.http_client = services_module._new_client()
    app.state.live_cache = LiveDataCache()
    logger.info(f"FPL Live started, upstream {services_module.FPL_BASE_URL}")

    yield

    # Shutdown - close HTTP client
    await services_module.close_http_client()


# ============ APP INITIALIZATION ============

app = FastAPI(title="FPL Live API", version="1.0.0", lifespan=lifespan)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,  # Set to True only with specific origins, not "*"
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============ LIVE GAMEWEEK ENDPOINTS ============

@app.post("/api/live/{gw}/refresh")
async def refresh_gameweek(gw: int, request: Request):
    """Refetch fixtures and live stats for a gameweek and rebuild every cache."""
    _require_gameweek(gw)
    live_cache = get_live_cache(request)
    return await services_module.refresh_live_data(gw, live_cache)


@app.get("/api/live/{gw}/teams")
async def get_team_statuses(gw: int, request: Request):
    _require_gameweek(gw)
    live_cache = get_live_cache(request)
    return {
        "gameweek": gw,
        "teams": {
            str(team_id): status.to_dict()
            for (key_gw, team_id), status in sorted(live_cache.team_status.items())
            if key_gw == gw
        },
    }


@app.get("/api/live/{gw}/bonus")
async def get_projected_bonus(gw: int, request: Request):
    _require_gameweek(gw)
    live_cache = get_live_cache(request)
    return {
        "gameweek": gw,
        "bonus": {
            str(player_id): bonus
            for (key_gw, player_id), bonus in sorted(live_cache.projected_bonus.items())
            if key_gw == gw
        },
    }


@app.get("/api/live/{gw}/player/{player_id}", response_model=PlayerLiveResponse)
async def get_player_live(
    gw: int,
    player_id: int,
    request: Request,
    team_id: int = Query(..., description="Player's team id"),
    bonus_confirmed_on_provisional: Optional[bool] = Query(None),
    projected_bonus_during_live: Optional[bool] = Query(None),
    projected_bonus_during_provisional: Optional[bool] = Query(None),
):
    _require_gameweek(gw)
    live_cache = get_live_cache(request)
    result = get_player_live_computed(
        player_id, team_id, gw, live_cache,
        bonus_confirmed_on_provisional=bonus_confirmed_on_provisional,
        projected_bonus_during_live=projected_bonus_during_live,
        projected_bonus_during_provisional=projected_bonus_during_provisional,
    )
    line = live_cache.get_live_line(player_id)
    return {
        "player_id": player_id,
        "team_id": team_id,
        "gameweek": gw,
        **result.to_dict(),
        "stats": line.to_dict() if line else None,
    }


@app.post("/api/live/{gw}/squad")
async def get_squad_live(gw: int, body: LiveSquadRequest, request: Request):
    """Auto-subs, multipliers and totals for a posted squad against the cached snapshot."""
    _require_gameweek(gw)
    slots = [p.position for p in body.picks]
    if len(set(slots)) != len(slots):
        raise HTTPException(status_code=422, detail="Duplicate squad positions")

    live_cache = get_live_cache(request)
    overrides = {
        name: value
        for name, value in (
            ("bonus_confirmed_on_provisional", body.bonus_confirmed_on_provisional),
            ("projected_bonus_during_live", body.projected_bonus_during_live),
            ("projected_bonus_during_provisional", body.projected_bonus_during_provisional),
        )
        if value is not None
    }
    picks, summary = compute_live_squad(
        [p.to_pick() for p in body.picks], gw, live_cache,
        chip_code=body.chip, transfer_cost=body.transfer_cost, **overrides,
    )
    return {
        "gameweek": gw,
        "picks": [p.to_dict() for p in picks],
        "summary": summary.to_dict(),
    }


# ============ HEALTH CHECK ============

@app.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint with cache status."""
    return {
        "status": "ok",
        "cache": get_live_cache(request).summary(),
    }


# ============ MAIN ============

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
