# gridiron/services/injuries.py
from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from gridiron.core.cache import TTLCache, override_suffix
from gridiron.core.settings import FANOUT_CONCURRENCY, INJURY_CACHE_TTL
from gridiron.models.types import InjuryRecord
from gridiron.services.espn_common import EspnClient
from gridiron.services.espn_nfl import resolve_teams
from gridiron.services.fanout import FanOutResult, fan_out
from gridiron.services.refs import RefResolver, ref_url

logger = logging.getLogger("gridiron.injuries")

SOURCE_NAME = "ESPN Core v2"
HIDDEN_STATUSES = {"active", "probable"}
NO_DETAIL = "—"

Nodes = Dict[str, Any]
Extractor = Callable[[Nodes], Optional[str]]


# -----------------------------
# Field reconciliation
# -----------------------------

def _clean(val: Any) -> Optional[str]:
    """Non-empty trimmed string, or None. Numbers are stringified; objects are not values."""
    if isinstance(val, bool):
        return None
    if isinstance(val, str):
        return val.strip() or None
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if isinstance(val, (int, float)):
        return str(val)
    return None


def field(node: str, *path: Any) -> Extractor:
    """Extractor reading `path` (dict keys / list indexes) under one of the nodes."""

    def get(nodes: Nodes) -> Optional[str]:
        cur = nodes.get(node)
        for key in path:
            if isinstance(key, int):
                if not isinstance(cur, list) or len(cur) <= key:
                    return None
                cur = cur[key]
            else:
                if not isinstance(cur, dict):
                    return None
                cur = cur.get(key)
        return _clean(cur)

    return get


def first_present(chain: Sequence[Extractor], nodes: Nodes, default: Optional[str] = None) -> Optional[str]:
    for extract in chain:
        value = extract(nodes)
        if value:
            return value
    return default


# Precedence within each chain is part of the response contract.
NAME_CHAIN = [
    field("athlete", "fullName"),
    field("athlete", "displayName"),
    field("athlete", "shortName"),
]
STATUS_CHAIN = [
    field("injury", "status"),
    field("injury", "status", "name"),
    field("injury", "type"),
    field("injury", "shortStatus"),
]
DETAIL_CHAIN = [
    field("injury", "shortComment"),
    field("injury", "comment"),
    field("injury", "description"),
    field("injury", "text"),
]
POSITION_CHAIN = [
    field("position", "abbreviation"),
    field("position", "displayName"),
    field("athlete", "position", "abbreviation"),
    field("athlete", "position", "displayName"),
]
HEADSHOT_CHAIN = [
    field("athlete", "headshot", "href"),
    field("athlete", "headshot", "$ref"),
    field("athlete", "images", 0, "url"),
]
PLAYER_ID_CHAIN = [
    field("athlete", "id"),
    field("injury", "athleteId"),
]


def status_is_filtered(status: Optional[str]) -> bool:
    return (status or "").strip().lower() in HIDDEN_STATUSES


def anonymous_player_id(team_id: str, name: str, status: str) -> str:
    """Placeholder id for records without an athlete id; same input, same id."""
    digest = hashlib.sha1(f"{team_id}|{name}|{status}".encode("utf-8")).hexdigest()
    return f"anon-{digest[:12]}"


def normalize_injury(
    injury: Dict[str, Any],
    athlete: Dict[str, Any],
    position: Optional[Dict[str, Any]],
    source_url: str,
    team_id: str,
) -> InjuryRecord:
    """
    Reduce one dereferenced injury (+ athlete, + position) to the canonical
    player-injury shape. The status filter is applied by the caller.
    """
    nodes = {"injury": injury, "athlete": athlete, "position": position}

    name = first_present(NAME_CHAIN, nodes, "Unknown")
    status = first_present(STATUS_CHAIN, nodes, "Unknown")
    player_id = first_present(PLAYER_ID_CHAIN, nodes) or anonymous_player_id(team_id, name, status)

    return {
        "player_id": player_id,
        "name": name,
        "pos": first_present(POSITION_CHAIN, nodes),
        "status": status,
        "detail": first_present(DETAIL_CHAIN, nodes, NO_DETAIL),
        "headshot": first_present(HEADSHOT_CHAIN, nodes),
        "last_updated_ts": datetime.now(timezone.utc).isoformat(),
        "sources": [{"name": SOURCE_NAME, "url": source_url}],
    }


# -----------------------------
# Per-game injuries service
# -----------------------------

class InjuryService:
    def __init__(
        self,
        client: EspnClient,
        cache: Optional[TTLCache] = None,
        max_concurrency: int = FANOUT_CONCURRENCY,
    ):
        self.client = client
        self.cache = cache if cache is not None else TTLCache(INJURY_CACHE_TTL)
        self.max_concurrency = max_concurrency

    async def team_injuries(self, team_id: str) -> FanOutResult[InjuryRecord]:
        """
        Fan out over a team's injury list. Items that cannot be dereferenced
        come back as skips; filtered statuses are NOT removed here.
        """
        listing = await self.client.get_team_injuries(team_id)
        items = listing.get("items") if isinstance(listing, dict) else None
        if not isinstance(items, list) or not items:
            return FanOutResult([])

        resolver = RefResolver(self.client)

        async def one(pointer: Any) -> Optional[InjuryRecord]:
            url = ref_url(pointer)
            injury = await resolver.deref(url)
            if not isinstance(injury, dict):
                return None
            athlete = await resolver.deref(injury.get("athlete"))
            if not isinstance(athlete, dict):
                return None
            position = await resolver.deref(athlete.get("position")) if athlete.get("position") else None
            return normalize_injury(
                injury,
                athlete,
                position if isinstance(position, dict) else None,
                url or "",
                str(team_id),
            )

        return await fan_out(items, one, self.max_concurrency)

    async def visible_team_injuries(self, team_id: Optional[str]) -> tuple[List[InjuryRecord], int]:
        if not team_id:
            return [], 0
        result = await self.team_injuries(team_id)
        players = [p for p in result.values if not status_is_filtered(p["status"])]
        logger.info(
            "injuries team=%s -> %d visible (%d fetched, %d skipped)",
            team_id, len(players), len(result.values), len(result.skipped),
        )
        return players, len(result.skipped)

    async def for_game(
        self,
        game_id: str,
        home_id: Optional[str] = None,
        away_id: Optional[str] = None,
        home_name: Optional[str] = None,
        away_name: Optional[str] = None,
        force: bool = False,
        debug: bool = False,
    ) -> Dict[str, Any]:
        """
        Injuries for both teams of a game, status-filtered and team-tagged.
        Always returns a body; failures are reported under `error`.
        """
        key = game_id + override_suffix(
            home_id=home_id, away_id=away_id, home_name=home_name, away_name=away_name
        )
        dbg: Dict[str, Any] = {"gameId": game_id, "homeId": home_id, "awayId": away_id, "tries": []}

        try:
            if not force:
                cached = self.cache.get(key)
                if cached is not None:
                    return {**cached, "debug": {**dbg, "cache": "hit"}} if debug else cached

            if not home_id or not away_id:
                teams = await resolve_teams(self.client, game_id)
                home, away = teams["home"] or {}, teams["away"] or {}
                if not home_id:
                    home_id = home.get("id")
                    home_name = home_name or home.get("displayName")
                if not away_id:
                    away_id = away.get("id")
                    away_name = away_name or away.get("displayName")
                dbg["resolved"] = {
                    "homeId": home_id,
                    "awayId": away_id,
                    "homeName": home_name,
                    "awayName": away_name,
                }

            if not home_id and not away_id:
                data = {"team_id": "mixed", "players": [], "error": "Teams not found"}
                return {**data, "debug": dbg} if debug else data

            (home_players, home_skipped), (away_players, away_skipped) = await asyncio.gather(
                self.visible_team_injuries(home_id),
                self.visible_team_injuries(away_id),
            )
            dbg["tries"].append({
                "step": "coreV2",
                "home": len(home_players),
                "away": len(away_players),
                "skipped": home_skipped + away_skipped,
            })

            players = [{**p, "team": home_name or "Home"} for p in home_players]
            players += [{**p, "team": away_name or "Away"} for p in away_players]
            data = {"team_id": "mixed", "players": players}

            if players:
                self.cache.set(key, data)
            return {**data, "debug": dbg} if debug else data
        except Exception as e:
            logger.exception("injuries failed for game=%s: %s", game_id, e)
            return {"team_id": "mixed", "players": [], "error": str(e), "debug": dbg}
