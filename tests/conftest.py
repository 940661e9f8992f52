"""Shared fixtures for FPL live test suite."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from fpl_live.models import Pick

# Default 4-4-2 with one bench player per position
DEFAULT_LAYOUT = {
    1: "GK",
    2: "DEF", 3: "DEF", 4: "DEF", 5: "DEF",
    6: "MID", 7: "MID", 8: "MID", 9: "MID",
    10: "FWD", 11: "FWD",
    12: "GK", 13: "DEF", 14: "MID", 15: "FWD",
}


@pytest.fixture
def make_fixture():
    """Factory for creating fixture dicts matching FPL /fixtures/ shape."""
    def _make(bps_h=None, bps_a=None, **overrides):
        base = {
            "id": 1,
            "event": 10,
            "team_h": 1,
            "team_a": 2,
            "team_h_score": None,
            "team_a_score": None,
            "started": False,
            "finished": False,
            "finished_provisional": False,
            "stats": [],
        }
        if bps_h is not None or bps_a is not None:
            base["stats"] = [
                {"identifier": "goals_scored", "h": [], "a": []},
                {
                    "identifier": "bps",
                    "h": [{"element": e, "value": v} for e, v in (bps_h or [])],
                    "a": [{"element": e, "value": v} for e, v in (bps_a or [])],
                },
            ]
        base.update(overrides)
        return base
    return _make


@pytest.fixture
def make_live_element():
    """Factory for creating an event/{gw}/live element."""
    def _make(pid, total_points=0, bonus=0, minutes=0, **stats):
        return {
            "id": pid,
            "stats": {"total_points": total_points, "bonus": bonus, "minutes": minutes, **stats},
        }
    return _make


@pytest.fixture
def make_pick():
    """Factory for a single annotated pick."""
    def _make(slot, playing_position, **overrides):
        base = dict(
            player_id=100 + slot,
            position=slot,
            playing_position=playing_position,
            team_id=slot,
            minutes=90,
            status="Fin",
        )
        base.update(overrides)
        return Pick(**base)
    return _make


@pytest.fixture
def make_squad(make_pick):
    """
    Factory for a 15-pick squad. Player ids are 100 + slot.

    `overrides` maps slot -> field overrides, e.g. {3: {"minutes": 0}}.
    Captain defaults to slot 10, vice to slot 6.
    """
    def _make(overrides=None, layout=None, captain=10, vice=6):
        layout = layout or DEFAULT_LAYOUT
        overrides = overrides or {}
        picks = []
        for slot, pos in layout.items():
            fields = dict(is_captain=slot == captain, is_vice_captain=slot == vice)
            fields.update(overrides.get(slot, {}))
            picks.append(make_pick(slot, pos, **fields))
        return picks
    return _make
