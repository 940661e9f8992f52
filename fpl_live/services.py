"""
FPL Live - Services Module

HTTP client, fixture and live-stat fetchers, and the pure cache builders
they feed. Fetch failures are logged and degrade to empty caches; there is
no retry here, the caller simply polls again.
"""

import logging
from typing import Optional, List, Dict, Tuple, Any

import httpx

from fpl_live.cache import LiveDataCache, TeamKey, PlayerKey
from fpl_live.calculators import bonus_from_bps_rows
from fpl_live.config import LIVE_CONFIG
from fpl_live.constants import FPL_BASE_URL, parse_number
from fpl_live.models import FixtureInfo, LiveStatLine, TeamStatus

__all__ = [
    "get_http_client",
    "close_http_client",
    "parse_fixtures",
    "build_fixture_caches",
    "build_live_points",
    "fetch_fixtures",
    "fetch_live_gw",
    "refresh_live_data",
]


logger = logging.getLogger("fpl_live")


# ============ HTTP CLIENT ============

# Global HTTP client (initialized in lifespan)
http_client: Optional[httpx.AsyncClient] = None


def _new_client() -> httpx.AsyncClient:
    cfg = LIVE_CONFIG["http"]
    return httpx.AsyncClient(
        timeout=cfg.timeout,
        limits=httpx.Limits(
            max_keepalive_connections=cfg.max_keepalive_connections,
            max_connections=cfg.max_connections,
        ),
        headers={"User-Agent": cfg.user_agent},
    )


async def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client, creating one if needed."""
    global http_client
    if http_client is None:
        http_client = _new_client()
    return http_client


async def close_http_client():
    global http_client
    if http_client is not None:
        await http_client.aclose()
        http_client = None


async def _get_json(url: str, client: Optional[httpx.AsyncClient] = None) -> Any:
    client = client or await get_http_client()
    response = await client.get(url)
    response.raise_for_status()
    return response.json()


# ============ CACHE BUILDERS (pure) ============

def parse_fixtures(payload: Any) -> List[FixtureInfo]:
    """Fixture payload -> FixtureInfo list; anything that isn't a list of dicts is dropped."""
    if not isinstance(payload, list):
        if payload is not None:
            logger.warning(f"Fixture payload is {type(payload).__name__}, expected list")
        return []
    return [FixtureInfo.from_api(fx) for fx in payload if isinstance(fx, dict)]


def build_fixture_caches(
    gw: int,
    fixtures: List[FixtureInfo],
    include_finished_provisional: bool = True,
) -> Tuple[Dict[TeamKey, TeamStatus], Dict[PlayerKey, int]]:
    """
    Aggregate per-team status and project bonus for every in-progress fixture.

    A team is started if any of its fixtures has kicked off, finished only if
    all are finished, and provisionally finished only if all are finished or
    provisionally finished. Projected bonus is summed per player so double
    gameweeks accumulate.
    """
    per_team: Dict[int, Dict[str, bool]] = {}
    projected_bonus: Dict[PlayerKey, int] = {}

    def upsert_team(team_id: int, started: bool, finished: bool, finished_provisional: bool):
        cur = per_team.setdefault(team_id, {"started_any": False, "finished_all": True, "finished_prov_all": True})
        cur["started_any"] = cur["started_any"] or started or finished or finished_provisional
        cur["finished_all"] = cur["finished_all"] and finished
        cur["finished_prov_all"] = cur["finished_prov_all"] and (finished or finished_provisional)

    for fx in fixtures:
        finished_provisional = fx.finished_provisional if include_finished_provisional else False
        upsert_team(fx.team_h, fx.started, fx.finished, finished_provisional)
        upsert_team(fx.team_a, fx.started, fx.finished, finished_provisional)

        if not fx.in_progress:
            continue

        for player_id, bonus in bonus_from_bps_rows(fx.bps_rows()).items():
            key = (gw, player_id)
            projected_bonus[key] = projected_bonus.get(key, 0) + bonus

    team_status = {
        (gw, team_id): TeamStatus(
            started=st["started_any"],
            finished=st["finished_all"],
            finished_provisional=st["finished_prov_all"] if include_finished_provisional else False,
        )
        for team_id, st in per_team.items()
    }
    return team_status, projected_bonus


def build_live_points(payload: Any, include_extended_stats: bool = False) -> Dict[int, LiveStatLine]:
    """event/{gw}/live payload -> player_id -> LiveStatLine."""
    elements = payload.get("elements") if isinstance(payload, dict) else None
    if not isinstance(elements, list):
        return {}
    live_points = {}
    for element in elements:
        if not isinstance(element, dict):
            continue
        player_id = parse_number(element.get("id"))
        if player_id is None:
            continue
        live_points[player_id] = LiveStatLine.from_api(element.get("stats"), include_extended_stats)
    return live_points


# ============ FETCHERS ============

async def fetch_fixtures(
    gw: int,
    live_cache: LiveDataCache,
    include_finished_provisional: Optional[bool] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[FixtureInfo]:
    """
    Fetch a gameweek's fixtures and rebuild team status + projected bonus.

    On any failure the fixture list and both caches end up empty.
    """
    if include_finished_provisional is None:
        include_finished_provisional = LIVE_CONFIG["scoring"].include_finished_provisional

    live_cache.clear_fixture_caches()
    try:
        payload = await _get_json(f"{FPL_BASE_URL}/fixtures/?event={gw}", client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error fetching fixtures for GW{gw}: {e}")
        return []

    fixtures = parse_fixtures(payload)
    team_status, projected_bonus = build_fixture_caches(gw, fixtures, include_finished_provisional)
    live_cache.replace_fixture_caches(gw, fixtures, team_status, projected_bonus)
    logger.info(f"GW{gw} fixtures refreshed: {len(fixtures)} fixtures, {len(team_status)} teams, {len(projected_bonus)} projected bonus players")
    return fixtures


async def fetch_live_gw(
    gw: int,
    live_cache: LiveDataCache,
    include_extended_stats: Optional[bool] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[Dict]:
    """Fetch event/{gw}/live and rebuild the live points cache. Returns the raw payload or None."""
    if include_extended_stats is None:
        include_extended_stats = LIVE_CONFIG["scoring"].include_extended_stats

    live_cache.clear_live_points()
    try:
        payload = await _get_json(f"{FPL_BASE_URL}/event/{gw}/live/", client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error fetching live data for GW{gw}: {e}")
        return None

    live_points = build_live_points(payload, include_extended_stats)
    live_cache.replace_live_points(gw, live_points)
    logger.info(f"GW{gw} live stats refreshed: {len(live_points)} players")
    return payload


async def refresh_live_data(
    gw: int,
    live_cache: LiveDataCache,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict:
    """
    Refresh both caches for a gameweek under the cache's in-flight guard.

    A second caller waits for the first refresh to finish and then runs its
    own, so the last completed refresh always reflects the latest snapshot.
    """
    async with live_cache.refresh_lock:
        fixtures = await fetch_fixtures(gw, live_cache, client=client)
        live = await fetch_live_gw(gw, live_cache, client=client)
    return {
        "gameweek": gw,
        "fixtures": len(fixtures),
        "live_ok": live is not None,
        "cache": live_cache.summary(),
    }
