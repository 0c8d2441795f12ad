# gridiron/services/espn_nfl.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from gridiron.models.types import GameLite, GameTeams, TeamRef
from gridiron.services.espn_common import EspnClient

logger = logging.getLogger("gridiron.espn_nfl")

NY = ZoneInfo("America/New_York")


def current_season(today: Optional[datetime] = None) -> int:
    """
    Season year heuristic: early-year (Jan/Feb) games belong to the prior
    season (playoffs, Super Bowl); otherwise the calendar year.
    """
    today = today or datetime.now(NY)
    return today.year if today.month >= 3 else today.year - 1


def _competitors(ev: Dict[str, Any]) -> List[Dict[str, Any]]:
    comp = (ev.get("competitions") or [{}])[0] or {}
    return comp.get("competitors") or []


def _team_ref(competitor: Optional[Dict[str, Any]]) -> Optional[TeamRef]:
    team = (competitor or {}).get("team")
    if not team or team.get("id") is None:
        return None
    return {
        "id": str(team["id"]),
        "displayName": team.get("displayName") or team.get("name") or str(team["id"]),
    }


def extract_teams(ev: Dict[str, Any]) -> GameTeams:
    """Pick the two participants of an event by their home/away role tag."""
    competitors = _competitors(ev)
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    return {"home": _team_ref(home), "away": _team_ref(away)}


def extract_game_lite(ev: Dict[str, Any]) -> GameLite:
    """
    Flatten an ESPN NFL event into a lite row with team IDs.
    """
    comp = (ev.get("competitions") or [{}])[0] or {}
    competitors = comp.get("competitors") or []

    home = next(
        (c for c in competitors if c.get("homeAway") == "home"),
        competitors[0] if competitors else {},
    )
    away = next(
        (c for c in competitors if c.get("homeAway") == "away"),
        competitors[1] if len(competitors) > 1 else {},
    )

    home_team = home.get("team") or {}
    away_team = away.get("team") or {}
    status = ((comp.get("status") or {}).get("type") or {}).get("name")

    return {
        "gameId": ev.get("id"),
        "homeTeam": home_team.get("displayName"),
        "homeTeamId": home_team.get("id"),
        "awayTeam": away_team.get("displayName"),
        "awayTeamId": away_team.get("id"),
        "startTime": ev.get("date"),
        "status": status,
    }


async def get_board_events(client: EspnClient, dates: Optional[str] = None) -> List[Dict[str, Any]]:
    board = await client.get_scoreboard(dates)
    events = board.get("events") if isinstance(board, dict) else None
    return events if isinstance(events, list) else []


async def find_event(client: EspnClient, game_id: str) -> Optional[Dict[str, Any]]:
    """Linear scan of the current event board for `game_id`."""
    for ev in await get_board_events(client):
        if str(ev.get("id")) == str(game_id):
            return ev
    return None


async def resolve_teams(client: EspnClient, game_id: str) -> GameTeams:
    """
    Map a game id to its home/away teams. A side is None when the game is not
    on the board or its team subtree is missing; callers skip that side.
    """
    ev = await find_event(client, game_id)
    if ev is None:
        logger.info("resolve_teams: game %s not on the board", game_id)
        return {"home": None, "away": None}
    return extract_teams(ev)
