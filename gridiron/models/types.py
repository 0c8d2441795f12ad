# gridiron/models/types.py
from typing_extensions import TypedDict
from typing import List, Optional


class TeamRef(TypedDict):
    id: str
    displayName: str


class GameTeams(TypedDict):
    home: Optional[TeamRef]
    away: Optional[TeamRef]


class GameLite(TypedDict):
    gameId: Optional[str]
    homeTeam: Optional[str]
    homeTeamId: Optional[str]
    awayTeam: Optional[str]
    awayTeamId: Optional[str]
    startTime: Optional[str]
    status: Optional[str]


class Source(TypedDict):
    name: str
    url: str


class InjuryRecord(TypedDict, total=False):
    player_id: str
    name: str
    pos: Optional[str]
    status: str
    detail: str
    headshot: Optional[str]
    team: str
    last_updated_ts: str
    sources: List[Source]


class TendencySummary(TypedDict, total=False):
    label: str
    sample_games: int
    pass_rate_pct: int
    rush_rate_pct: int
    third_down_pct: int
    red_zone_pct: int
    plays_pg: int
    time_possession_avg: str


class Spotlight(TypedDict):
    player_id: str
    name: str
    pos: str
    confidence: float
    rationale: str
