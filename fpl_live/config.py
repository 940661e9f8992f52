from dataclasses import dataclass
from typing import Dict


# =============================================================================
# LIVE SCORING CONFIGURATION - bonus confirmation policy and ingestion toggles
# =============================================================================

@dataclass
class LiveScoringConfig:
    """
    When projected bonus is shown and when official figures take over.

    FPL marks a fixture `finished_provisional` at the final whistle but only
    adds the confirmed bonus to `total_points` about an hour later when it
    flips to `finished`. Between the two the live total is base points plus
    the bonus we project from the BPS table.
    """

    # Treat a provisional finish as confirmed bonus (official total wins)
    bonus_confirmed_on_provisional: bool = False

    # Show projected bonus while the team's fixture is in play
    projected_bonus_during_live: bool = True

    # Show projected bonus between final whistle and confirmation
    projected_bonus_during_provisional: bool = True

    # Off = ignore `finished_provisional` entirely (only `finished` counts)
    include_finished_provisional: bool = True

    # Ingest the defensive/attacking counters alongside points/bonus/minutes
    include_extended_stats: bool = False


@dataclass
class AutoSubConfig:
    """
    Formation rules for automatic substitutions and captain multipliers.

    A legal XI is 1 GK plus 10 outfielders with at least 3 DEF, 2 MID, 1 FWD.
    """

    max_outfield: int = 10
    min_def: int = 3
    min_mid: int = 2
    min_fwd: int = 1

    captain_factor: int = 2
    triple_captain_factor: int = 3

    # Squad slots 1-11 start, 12-15 are the bench in priority order
    starters: int = 11

    @property
    def formation_minimums(self) -> Dict[str, int]:
        return {"DEF": self.min_def, "MID": self.min_mid, "FWD": self.min_fwd}


@dataclass
class HttpConfig:
    """Shared httpx client settings. No retries: the caller polls again."""

    timeout: float = 30.0
    max_keepalive_connections: int = 20
    max_connections: int = 50
    user_agent: str = "FPL-Live/1.0"


# Initialize global config
LIVE_CONFIG = {
    "scoring": LiveScoringConfig(),
    "autosub": AutoSubConfig(),
    "http": HttpConfig(),
}
