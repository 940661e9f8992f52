import asyncio
from datetime import datetime
from typing import Optional, Dict, Tuple, List

from fpl_live.models import FixtureInfo, LiveStatLine, TeamStatus

# (gameweek, team_id) and (gameweek, player_id)
TeamKey = Tuple[int, int]
PlayerKey = Tuple[int, int]


class LiveDataCache:
    """
    Per-session snapshot of one gameweek's live data.

    Each fetch replaces its containers wholesale with a single assignment, so
    a reader that awaits the fetch never sees half of an old snapshot mixed
    with half of a new one. Create one per app/session instead of sharing a
    module-level instance between requests.
    """

    def __init__(self):
        self.fixtures: List[FixtureInfo] = []
        self.team_status: Dict[TeamKey, TeamStatus] = {}
        self.projected_bonus: Dict[PlayerKey, int] = {}
        self.live_points: Dict[int, LiveStatLine] = {}
        self.fixtures_gameweek: Optional[int] = None
        self.live_gameweek: Optional[int] = None
        self.fixtures_last_update: Optional[datetime] = None
        self.live_last_update: Optional[datetime] = None
        # In-flight refresh guard - overlapping refreshes run one after another
        self.refresh_lock = asyncio.Lock()

    def replace_fixture_caches(
        self,
        gw: int,
        fixtures: List[FixtureInfo],
        team_status: Dict[TeamKey, TeamStatus],
        projected_bonus: Dict[PlayerKey, int],
    ):
        self.fixtures = fixtures
        self.team_status = team_status
        self.projected_bonus = projected_bonus
        self.fixtures_gameweek = gw
        self.fixtures_last_update = datetime.now()

    def clear_fixture_caches(self):
        self.fixtures = []
        self.team_status = {}
        self.projected_bonus = {}
        self.fixtures_gameweek = None
        self.fixtures_last_update = None

    def replace_live_points(self, gw: int, live_points: Dict[int, LiveStatLine]):
        self.live_points = live_points
        self.live_gameweek = gw
        self.live_last_update = datetime.now()

    def clear_live_points(self):
        self.live_points = {}
        self.live_gameweek = None
        self.live_last_update = None

    def get_team_status(self, team_id: int, gw: int) -> TeamStatus:
        """Cached status, or not-started when the team has no fixture this gameweek."""
        return self.team_status.get((gw, team_id)) or TeamStatus()

    def get_projected_bonus(self, player_id: int, gw: int) -> int:
        return self.projected_bonus.get((gw, player_id), 0)

    def get_live_line(self, player_id: int) -> Optional[LiveStatLine]:
        return self.live_points.get(player_id)

    def summary(self) -> Dict:
        return {
            "fixtures": len(self.fixtures),
            "fixtures_gameweek": self.fixtures_gameweek,
            "teams": len(self.team_status),
            "projected_bonus_players": len(self.projected_bonus),
            "live_players": len(self.live_points),
            "live_gameweek": self.live_gameweek,
            "fixtures_last_update": self.fixtures_last_update.isoformat() if self.fixtures_last_update else None,
            "live_last_update": self.live_last_update.isoformat() if self.live_last_update else None,
        }
