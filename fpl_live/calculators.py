"""
FPL Live - Calculators Module

Bonus point projection from BPS tables and the per-player live score state
machine. Everything here is pure: it reads already-materialized caches and
never performs I/O.
"""

from typing import Optional, Dict, List, Iterable, Any

from fpl_live.cache import LiveDataCache
from fpl_live.config import LIVE_CONFIG, LiveScoringConfig
from fpl_live.constants import (
    STATUS_FINISHED, STATUS_LIVE, STATUS_NOT_STARTED,
)
from fpl_live.models import BpsRow, PlayerLiveResult, TeamStatus

__all__ = [
    "coerce_bps_rows",
    "bonus_from_bps_rows",
    "get_team_gw_status",
    "get_player_live_computed",
]


# =============================================================================
# BONUS POINT PROJECTION
# =============================================================================

def coerce_bps_rows(rows: Optional[Iterable[Any]]) -> List[BpsRow]:
    """Accept BpsRow, {element, value} dicts or (element, value) pairs; drop anything invalid."""
    valid = []
    for row in rows or []:
        if isinstance(row, BpsRow):
            valid.append(row)
        elif isinstance(row, dict):
            parsed = BpsRow.from_api(row)
            if parsed is not None:
                valid.append(parsed)
        elif isinstance(row, (tuple, list)) and len(row) == 2:
            parsed = BpsRow.from_api({"element": row[0], "value": row[1]})
            if parsed is not None:
                valid.append(parsed)
    return valid


def bonus_from_bps_rows(rows: Optional[Iterable[Any]]) -> Dict[int, int]:
    """
    Project 3-2-1 bonus from a fixture's BPS rows, compressing ties per rank.

    - Two tied on top: both 3, next score group gets 1.
    - Three or more tied on top: all 3, nobody else.
    - Clear leader: 3; tied second place all get 2 and nobody gets 1;
      a single second gets 2 and the next score group gets 1.
    """
    ranked = sorted(coerce_bps_rows(rows), key=lambda r: r.value, reverse=True)
    bonus: Dict[int, int] = {}
    if not ranked:
        return bonus

    def group_below(score):
        """All rows sharing the highest score strictly below `score`."""
        lower = next((r.value for r in ranked if r.value < score), None)
        if lower is None:
            return []
        return [r for r in ranked if r.value == lower]

    top_score = ranked[0].value
    top = [r for r in ranked if r.value == top_score]

    if len(top) >= 2:
        for row in top:
            bonus[row.element] = 3
        if len(top) >= 3:
            return bonus
        for row in group_below(top_score):
            bonus[row.element] = 1
        return bonus

    bonus[top[0].element] = 3
    second = group_below(top_score)
    if not second:
        return bonus

    if len(second) >= 2:
        for row in second:
            bonus[row.element] = 2
        return bonus

    bonus[second[0].element] = 2
    for row in group_below(second[0].value):
        bonus[row.element] = 1
    return bonus


# =============================================================================
# PLAYER LIVE COMPUTATION
# =============================================================================

def get_team_gw_status(live_cache: LiveDataCache, team_id: int, gw: int) -> TeamStatus:
    return live_cache.get_team_status(team_id, gw)


def get_player_live_computed(
    player_id: int,
    team_id: int,
    gw: int,
    live_cache: LiveDataCache,
    config: Optional[LiveScoringConfig] = None,
    bonus_confirmed_on_provisional: Optional[bool] = None,
    projected_bonus_during_live: Optional[bool] = None,
    projected_bonus_during_provisional: Optional[bool] = None,
) -> PlayerLiveResult:
    """
    Merge official live stats with team status and projected bonus.

    First matching rule wins:
    1. bonus confirmed            -> official total, no projection
    2. provisional + projecting   -> base points + projected bonus
    3. live + projecting          -> base points + projected bonus
    4. live or provisional        -> base points only
    5. not started                -> 0

    where base points = official total - bonus already in it. Keyword flags
    override the matching `config` fields for one call.
    """
    cfg = config or LIVE_CONFIG["scoring"]
    if bonus_confirmed_on_provisional is None:
        bonus_confirmed_on_provisional = cfg.bonus_confirmed_on_provisional
    if projected_bonus_during_live is None:
        projected_bonus_during_live = cfg.projected_bonus_during_live
    if projected_bonus_during_provisional is None:
        projected_bonus_during_provisional = cfg.projected_bonus_during_provisional

    team = get_team_gw_status(live_cache, team_id, gw)
    bonus_confirmed = team.finished or (bonus_confirmed_on_provisional and team.finished_provisional)

    live = live_cache.get_live_line(player_id)
    official_total = live.points if live else 0
    confirmed_bonus = live.bonus if live else 0
    minutes = live.minutes if live else 0

    if bonus_confirmed:
        live_total = official_total
        proj_bonus = 0
    elif (team.finished_provisional and projected_bonus_during_provisional) or (
        team.started and projected_bonus_during_live
    ):
        proj_bonus = live_cache.get_projected_bonus(player_id, gw)
        live_total = official_total - confirmed_bonus + proj_bonus
    elif team.started or team.finished_provisional:
        live_total = official_total - confirmed_bonus
        proj_bonus = 0
    else:
        live_total = 0
        proj_bonus = 0

    if team.finished or team.finished_provisional:
        status = STATUS_FINISHED
    elif team.started:
        status = STATUS_LIVE
    else:
        status = STATUS_NOT_STARTED

    return PlayerLiveResult(
        locked=live_total - proj_bonus,
        proj_bonus=proj_bonus,
        live_total=live_total,
        status=status,
        minutes=minutes,
        confirmed_bonus=confirmed_bonus,
    )
