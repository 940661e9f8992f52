"""
FPL Live - Auto-Substitution Module

Resolves who actually scores for a squad this poll: automatic substitutions
for confirmed non-players, formation checks, captaincy fallback and chip
multipliers. Re-run from the full annotated squad on every poll, since any
"did not play" or "bench can complete" conclusion may flip as fixtures settle.
"""

import logging
from dataclasses import replace
from typing import Optional, List, Dict, Set

from fpl_live.cache import LiveDataCache
from fpl_live.calculators import get_player_live_computed
from fpl_live.config import LIVE_CONFIG, AutoSubConfig, LiveScoringConfig
from fpl_live.constants import (
    AUTO_SUB_IN, AUTO_SUB_OUT, CHIP_BENCH_BOOST, CHIP_TRIPLE_CAPTAIN,
    OUTFIELD_POSITIONS, STATUS_FINISHED, normalize_chip,
)
from fpl_live.models import Pick, SquadLiveSummary

__all__ = [
    "annotate_squad",
    "apply_auto_subs_and_multipliers",
    "summarise_squad",
    "compute_live_squad",
]

logger = logging.getLogger("fpl_live")


def annotate_squad(
    picks: List[Pick],
    gw: int,
    live_cache: LiveDataCache,
    config: Optional[LiveScoringConfig] = None,
    **overrides,
) -> List[Pick]:
    """Attach each pick's live computation (minutes, status, live line)."""
    annotated = []
    for pick in picks:
        live = get_player_live_computed(pick.player_id, pick.team_id, gw, live_cache, config=config, **overrides)
        annotated.append(replace(pick, minutes=live.minutes, status=live.status, live=live))
    return annotated


def _position_counts(players: List[Pick]) -> Dict[str, int]:
    counts = {pos: 0 for pos in OUTFIELD_POSITIONS}
    for p in players:
        if p.playing_position in counts:
            counts[p.playing_position] += 1
    return counts


def _can_complete(
    outfield: List[Pick],
    later_bench: List[Pick],
    cfg: AutoSubConfig,
) -> bool:
    """
    Could the bench still behind this candidate finish a legal outfield?

    Only the consecutive run of finished bench players counts; one whose
    match is still pending ends the run. Every position deficit must be
    coverable and there must be enough of them to fill every open spot.
    """
    spots_left = cfg.max_outfield - len(outfield)
    counts = _position_counts(outfield)

    usable = []
    for p in later_bench:
        if p.status != STATUS_FINISHED:
            break
        if p.minutes > 0:
            usable.append(p)
    available = _position_counts(usable)

    for pos, minimum in cfg.formation_minimums.items():
        if available[pos] < max(0, minimum - counts[pos]):
            return False
    return len(usable) >= spots_left


def _is_legal_outfield(outfield: List[Pick], cfg: AutoSubConfig) -> bool:
    counts = _position_counts(outfield)
    return all(counts[pos] >= minimum for pos, minimum in cfg.formation_minimums.items())


def _could_still_score(pick: Optional[Pick]) -> bool:
    """Played already, or the fixture isn't confirmed over yet."""
    return pick is not None and (pick.minutes > 0 or pick.status != STATUS_FINISHED)


def apply_auto_subs_and_multipliers(
    picks: List[Pick],
    chip_code: Optional[str] = None,
    config: Optional[AutoSubConfig] = None,
) -> List[Pick]:
    """
    Assign `multiplier` and `auto_sub_status` to every pick.

    Picks must already carry `minutes` and `status` (see `annotate_squad`).
    Returns new Pick objects sorted by squad slot; the input is untouched.
    """
    cfg = config or LIVE_CONFIG["autosub"]
    chip = normalize_chip(chip_code)
    cap_factor = cfg.triple_captain_factor if chip == CHIP_TRIPLE_CAPTAIN else cfg.captain_factor

    squad = sorted(picks, key=lambda p: p.position)
    starters = [p for p in squad if p.position <= cfg.starters]
    bench = [p for p in squad if p.position > cfg.starters]

    if chip == CHIP_BENCH_BOOST:
        captain = next((p for p in squad if p.is_captain), None)
        return [
            replace(
                p,
                multiplier=cap_factor if captain is not None and p.player_id == captain.player_id else 1,
                auto_sub_status=None,
            )
            for p in squad
        ]

    subbed_out: Set[int] = set()
    subbed_in: Set[int] = set()

    # Goalkeeper - only ever replaced by a bench goalkeeper
    active_gk = next((p for p in starters if p.is_goalkeeper), None)
    if active_gk is not None and active_gk.did_not_play:
        subbed_out.add(active_gk.player_id)
        active_gk = next((p for p in bench if p.is_goalkeeper and not p.did_not_play), None)
        if active_gk is not None:
            subbed_in.add(active_gk.player_id)

    # Outfield
    outfield_bench = [p for p in bench if not p.is_goalkeeper]
    active_outfield = []
    for p in starters:
        if p.is_goalkeeper:
            continue
        if p.did_not_play:
            subbed_out.add(p.player_id)
        else:
            active_outfield.append(p)

    for idx, candidate in enumerate(outfield_bench):
        if len(active_outfield) >= cfg.max_outfield:
            break
        # Nothing further can be concluded until this bench player's match is over
        if candidate.status != STATUS_FINISHED:
            break
        if candidate.minutes == 0:
            continue

        trial = active_outfield + [candidate]
        if len(trial) == cfg.max_outfield:
            accept = _is_legal_outfield(trial, cfg)
        else:
            accept = _can_complete(trial, outfield_bench[idx + 1:], cfg)

        if accept:
            active_outfield = trial
            subbed_in.add(candidate.player_id)
        else:
            logger.debug(f"Auto-sub skipped player {candidate.player_id}: formation cannot be completed")

    active = ([active_gk] if active_gk is not None else []) + active_outfield
    active_ids = {p.player_id for p in active}

    # Captaincy: captain, then vice, then nobody
    captain = next((p for p in squad if p.is_captain), None)
    vice = next((p for p in squad if p.is_vice_captain), None)
    captain_id = None
    for choice in (captain, vice):
        if choice is not None and choice.player_id in active_ids and _could_still_score(choice):
            captain_id = choice.player_id
            break

    result = []
    for p in squad:
        if p.player_id in active_ids:
            multiplier = cap_factor if p.player_id == captain_id else 1
        else:
            multiplier = 0
        if p.player_id in subbed_out:
            status = AUTO_SUB_OUT
        elif p.player_id in subbed_in:
            status = AUTO_SUB_IN
        else:
            status = None
        result.append(replace(p, multiplier=multiplier, auto_sub_status=status))
    return result


def summarise_squad(picks: List[Pick], transfer_cost: int = 0, chip_code: Optional[str] = None) -> SquadLiveSummary:
    """Squad totals from engine output; picks without a live line count as zero."""
    total = 0
    locked = 0
    projected = 0
    to_play = 0
    for p in picks:
        multiplier = p.multiplier or 0
        if p.live is not None:
            total += p.live.live_total * multiplier
            locked += p.live.locked * multiplier
            projected += p.live.proj_bonus * multiplier
        if multiplier > 0 and p.status != STATUS_FINISHED:
            to_play += 1
    return SquadLiveSummary(
        total=total,
        locked=locked,
        projected_bonus=projected,
        transfer_cost=transfer_cost,
        net_total=total - transfer_cost,
        players_to_play=to_play,
        chip=normalize_chip(chip_code),
    )


def compute_live_squad(
    picks: List[Pick],
    gw: int,
    live_cache: LiveDataCache,
    chip_code: Optional[str] = None,
    transfer_cost: int = 0,
    scoring_config: Optional[LiveScoringConfig] = None,
    autosub_config: Optional[AutoSubConfig] = None,
    **overrides,
):
    """Annotate, auto-sub and total a squad in one pass. Returns (picks, summary)."""
    annotated = annotate_squad(picks, gw, live_cache, config=scoring_config, **overrides)
    resolved = apply_auto_subs_and_multipliers(annotated, chip_code, config=autosub_config)
    return resolved, summarise_squad(resolved, transfer_cost=transfer_cost, chip_code=chip_code)
