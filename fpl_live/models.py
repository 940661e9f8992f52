from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from fpl_live.constants import (
    BPS_IDENTIFIER, EXTENDED_STAT_FIELDS, STATUS_NOT_STARTED, STATUS_FINISHED,
    parse_number, to_number,
)


# ============ ENUMS ============

class PlayingPosition(str, Enum):
    GK = "GK"
    DEF = "DEF"
    MID = "MID"
    FWD = "FWD"


# =============================================================================
# INGESTED DATA - parsed and validated once at the fetch boundary
# =============================================================================

@dataclass(frozen=True)
class BpsRow:
    """One raw bonus point system score for a player in a fixture."""
    element: int
    value: float

    @classmethod
    def from_api(cls, raw: Any) -> Optional["BpsRow"]:
        """Build from `{element, value}`; None if either field is not a finite number."""
        if not isinstance(raw, dict):
            return None
        element = parse_number(raw.get("element"))
        value = parse_number(raw.get("value"))
        if element is None or value is None:
            return None
        return cls(element=element, value=value)


@dataclass
class FixtureStat:
    identifier: str
    h: List[BpsRow] = field(default_factory=list)
    a: List[BpsRow] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: Dict) -> "FixtureStat":
        def _rows(side):
            items = raw.get(side)
            if not isinstance(items, list):
                return []
            return [row for row in (BpsRow.from_api(r) for r in items) if row is not None]

        return cls(identifier=str(raw.get("identifier", "")), h=_rows("h"), a=_rows("a"))


@dataclass
class FixtureInfo:
    """One match from /fixtures/?event={gw}. Refetched every poll."""
    id: int
    team_h: int
    team_a: int
    team_h_score: Optional[int] = None
    team_a_score: Optional[int] = None
    started: bool = False
    finished: bool = False
    finished_provisional: bool = False
    stats: List[FixtureStat] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: Dict) -> "FixtureInfo":
        stats = raw.get("stats")
        return cls(
            id=to_number(raw.get("id")),
            team_h=to_number(raw.get("team_h")),
            team_a=to_number(raw.get("team_a")),
            team_h_score=parse_number(raw.get("team_h_score")),
            team_a_score=parse_number(raw.get("team_a_score")),
            started=bool(raw.get("started")),
            finished=bool(raw.get("finished")),
            finished_provisional=bool(raw.get("finished_provisional")),
            stats=[FixtureStat.from_api(s) for s in stats if isinstance(s, dict)] if isinstance(stats, list) else [],
        )

    @property
    def in_progress(self) -> bool:
        """Started but not officially finished (provisional finishes still count)."""
        return self.started and not self.finished

    def bps_rows(self) -> List[BpsRow]:
        """Home and away BPS rows merged; empty when the fixture has no bps block."""
        for stat in self.stats:
            if stat.identifier == BPS_IDENTIFIER:
                return stat.h + stat.a
        return []


@dataclass
class LiveStatLine:
    """Official live figures for one player, replaced wholesale on every ingest."""
    points: int = 0
    bonus: int = 0
    minutes: int = 0
    # Extended counters - None unless extended stats were ingested
    bps: Optional[int] = None
    goals_scored: Optional[int] = None
    assists: Optional[int] = None
    clean_sheets: Optional[int] = None
    goals_conceded: Optional[int] = None
    own_goals: Optional[int] = None
    penalties_saved: Optional[int] = None
    penalties_missed: Optional[int] = None
    yellow_cards: Optional[int] = None
    red_cards: Optional[int] = None
    saves: Optional[int] = None
    clearances_blocks_interceptions: Optional[int] = None
    recoveries: Optional[int] = None
    tackles: Optional[int] = None
    defensive_contribution: Optional[int] = None

    @classmethod
    def from_api(cls, stats: Any, include_extended_stats: bool = False) -> "LiveStatLine":
        if not isinstance(stats, dict):
            stats = {}
        line = cls(
            points=to_number(stats.get("total_points")),
            bonus=to_number(stats.get("bonus")),
            minutes=to_number(stats.get("minutes")),
        )
        if include_extended_stats:
            for name in EXTENDED_STAT_FIELDS:
                setattr(line, name, to_number(stats.get(name)))
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class TeamStatus:
    """Aggregated state of every fixture a team plays in one gameweek."""
    started: bool = False
    finished: bool = False
    finished_provisional: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "started": self.started,
            "finished": self.finished,
            "finishedProvisional": self.finished_provisional,
        }


# =============================================================================
# COMPUTED RESULTS
# =============================================================================

@dataclass(frozen=True)
class PlayerLiveResult:
    """
    Displayable live score for one player.

    `locked` is the part of `live_total` that cannot go down when the bonus
    projection is revised; `proj_bonus` is the part that can.
    """
    locked: float
    proj_bonus: float
    live_total: float
    status: str
    minutes: int
    confirmed_bonus: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "locked": self.locked,
            "projBonus": self.proj_bonus,
            "liveTotal": self.live_total,
            "status": self.status,
            "minutes": self.minutes,
            "confirmedBonus": self.confirmed_bonus,
        }


@dataclass
class Pick:
    """One of the 15 squad slots, optionally annotated with live data."""
    player_id: int
    position: int                    # squad slot 1-15
    playing_position: str            # GK / DEF / MID / FWD
    team_id: Optional[int] = None
    is_captain: bool = False
    is_vice_captain: bool = False
    minutes: int = 0
    status: str = STATUS_NOT_STARTED
    live: Optional[PlayerLiveResult] = None
    # Set by the auto-sub engine
    multiplier: Optional[int] = None
    auto_sub_status: Optional[str] = None

    @property
    def is_goalkeeper(self) -> bool:
        return self.playing_position == PlayingPosition.GK.value

    @property
    def did_not_play(self) -> bool:
        """Confirmed non-player: zero minutes and the fixture is over."""
        return self.minutes == 0 and self.status == STATUS_FINISHED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "position": self.position,
            "playingPosition": self.playing_position,
            "teamId": self.team_id,
            "is_captain": self.is_captain,
            "is_vice_captain": self.is_vice_captain,
            "minutes": self.minutes,
            "status": self.status,
            "live": self.live.to_dict() if self.live else None,
            "multiplier": self.multiplier,
            "autoSubStatus": self.auto_sub_status,
        }


@dataclass(frozen=True)
class SquadLiveSummary:
    """Squad-level totals after auto-subs and multipliers."""
    total: float
    locked: float
    projected_bonus: float
    transfer_cost: int
    net_total: float
    players_to_play: int
    chip: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============ REQUEST / RESPONSE SCHEMAS ============
# These provide contract stability between frontend and backend

class PickIn(BaseModel):
    """Schema for one squad pick posted to the live squad endpoint."""
    player_id: int
    team_id: int
    position: int = Field(ge=1, le=15)
    playing_position: PlayingPosition
    is_captain: bool = False
    is_vice_captain: bool = False

    def to_pick(self) -> Pick:
        return Pick(
            player_id=self.player_id,
            position=self.position,
            playing_position=self.playing_position.value,
            team_id=self.team_id,
            is_captain=self.is_captain,
            is_vice_captain=self.is_vice_captain,
        )


class LiveSquadRequest(BaseModel):
    picks: List[PickIn] = Field(min_length=1, max_length=15)
    chip: Optional[str] = None
    transfer_cost: int = 0
    bonus_confirmed_on_provisional: Optional[bool] = None
    projected_bonus_during_live: Optional[bool] = None
    projected_bonus_during_provisional: Optional[bool] = None


class PlayerLiveResponse(BaseModel):
    """Schema for a single player's live line."""
    model_config = ConfigDict(extra="allow")

    player_id: int
    team_id: int
    gameweek: int
    locked: float
    projBonus: float
    liveTotal: float
    status: str
    minutes: int
    confirmedBonus: int

