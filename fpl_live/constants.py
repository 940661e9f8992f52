"""
FPL Live - Constants Module

API locations, position and status labels, chip codes, and the numeric
coercion helpers used at every ingestion boundary.
"""

import math
import os
from typing import Any, Optional, Union


# ============ CONSTANTS ============

# Point this at the caching proxy in production (e.g. http://localhost:4321/api/fpl)
FPL_BASE_URL = os.environ.get("FPL_BASE_URL", "https://fantasy.premierleague.com/api").rstrip("/")

OUTFIELD_POSITIONS = ("DEF", "MID", "FWD")

# Match status labels shown per player
STATUS_NOT_STARTED = "NS"
STATUS_LIVE = "Live"
STATUS_FINISHED = "Fin"

# Chip codes as they appear on entry picks (`active_chip`)
CHIP_BENCH_BOOST = "BB"
CHIP_TRIPLE_CAPTAIN = "TC"
CHIP_ALIASES = {
    "bboost": CHIP_BENCH_BOOST,
    "3xc": CHIP_TRIPLE_CAPTAIN,
}

AUTO_SUB_IN = "IN"
AUTO_SUB_OUT = "OUT"

# Fixture stat block holding the raw bonus point system scores
BPS_IDENTIFIER = "bps"

# Counters copied from event/{gw}/live only when extended stats are requested
EXTENDED_STAT_FIELDS = (
    "bps",
    "goals_scored",
    "assists",
    "clean_sheets",
    "goals_conceded",
    "own_goals",
    "penalties_saved",
    "penalties_missed",
    "yellow_cards",
    "red_cards",
    "saves",
    "clearances_blocks_interceptions",
    "recoveries",
    "tackles",
    "defensive_contribution",
)

Number = Union[int, float]


def parse_number(value: Any) -> Optional[Number]:
    """
    Strictly parse an API value as a finite number.

    Returns None for None, booleans, empty/non-numeric strings, NaN and
    infinities. Integral floats come back as int so they can be used as ids.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def to_number(value: Any, default: Number = 0) -> Number:
    """Lenient coercion: anything unparseable becomes `default`."""
    number = parse_number(value)
    return default if number is None else number


def normalize_chip(chip: Optional[str]) -> Optional[str]:
    """Map FPL's long chip names onto BB/TC; other chips pass through unchanged."""
    if not chip:
        return None
    return CHIP_ALIASES.get(chip, chip)
