# gridiron/services/tendencies.py
from __future__ import annotations

import asyncio
import logging
import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence

from gridiron.core.cache import TTLCache, override_suffix
from gridiron.core.settings import TENDENCY_CACHE_TTL
from gridiron.models.types import TeamRef, TendencySummary
from gridiron.services.espn_common import EspnClient
from gridiron.services.espn_nfl import current_season, resolve_teams

logger = logging.getLogger("gridiron.tendencies")

DEFAULT_SAMPLE = 3
REGULAR_SEASON = 2

_PAIR_RE = re.compile(r"(\d+)\s*-\s*(\d+)")
_CLOCK_RE = re.compile(r"(\d+):(\d+)")
_NUMERIC_RE = re.compile(r"^[\d.\-:]+$")


# -----------------------------
# Small numeric helpers
# -----------------------------

def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def pct(num: float, den: float) -> float:
    return (num / den) * 100 if den > 0 else 0.0


def avg(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def norm_pct(v: float) -> float:
    """ESPN percentage fields come as 0-1 or 0-100; always return 0-100."""
    if 0 < v <= 1:
        return v * 100
    return v or 0.0


def parse_pair(txt: Any) -> Dict[str, float]:
    """'M-A' -> made/att/pct; anything unparseable is 0-0."""
    if not txt or not isinstance(txt, str):
        return {"made": 0, "att": 0, "pct": 0.0}
    m = _PAIR_RE.search(txt)
    made = int(m.group(1)) if m else 0
    att = int(m.group(2)) if m else 0
    return {"made": made, "att": att, "pct": pct(made, att)}


def parse_to_secs(txt: Any) -> int:
    """'MM:SS' -> seconds; malformed or missing -> 0."""
    if not txt or not isinstance(txt, str):
        return 0
    m = _CLOCK_RE.search(txt)
    if not m:
        return 0
    return int(m.group(1)) * 60 + int(m.group(2))


def secs_to_mmss(s: int) -> str:
    s = max(0, int(s))
    return f"{s // 60:02d}:{s % 60:02d}"


def _to_num(v: Any) -> float:
    if isinstance(v, bool) or v is None:
        return 0.0
    if isinstance(v, (int, float)):
        return 0.0 if math.isnan(v) else float(v)
    if isinstance(v, str):
        try:
            return float(v.replace(",", "").strip() or 0)
        except ValueError:
            return 0.0
    return 0.0


def _loose_num(raw: Any) -> Optional[float]:
    """Numbers embedded in display strings ('22', '1,024 yds'); None when there are none."""
    if isinstance(raw, str):
        digits = re.sub(r"[^\d.-]", "", raw)
        if not digits:
            return 0.0
        try:
            return float(digits)
        except ValueError:
            return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    return 0.0 if raw is None else None


# -----------------------------
# Tier A: season aggregate (core v2)
# -----------------------------

def flatten_core_stats(root: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    category -> stats[] -> flat {name: value}. Numeric strings become floats
    unless they look like a clock ('31:45').
    """
    if not isinstance(root, dict):
        return None

    out: Dict[str, Any] = {}
    splits = root.get("splits") or root.get("statistics") or {}
    cats = splits.get("categories") if isinstance(splits, dict) else None

    for cat in cats if isinstance(cats, list) else []:
        stats = (cat or {}).get("stats")
        for s in stats if isinstance(stats, list) else []:
            if not isinstance(s, dict):
                continue
            key = str(s.get("name") or s.get("shortDisplayName") or s.get("displayName") or "").strip()
            if not key:
                continue
            raw = s.get("value") if s.get("value") is not None else s.get("displayValue")
            if raw is None or raw == "":
                continue
            if isinstance(raw, str) and _NUMERIC_RE.match(raw) and ":" not in raw:
                try:
                    raw = float(raw)
                except ValueError:
                    pass
            out[key] = raw
    return out


def _rx(*patterns: str) -> List[Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def pick_num(stats: Dict[str, Any], names: Iterable[str] = (), patterns: Iterable[Pattern[str]] = ()) -> float:
    """Exact-name lookup first (first present name wins), then a regex scan over all keys."""
    for n in names:
        if stats.get(n) is not None:
            return _to_num(stats[n])
    for rx in patterns:
        hit = next((k for k in stats if rx.search(k)), None)
        if hit is not None:
            return _to_num(stats[hit])
    return 0.0


PASS_ATT = (["passingAttempts", "passAttempts", "teamPassingAttempts"], _rx(r"^pass.*attempt"))
RUSH_ATT = (
    ["rushingAttempts", "rushAttempts", "teamRushingAttempts", "carries"],
    _rx(r"^rush.*attempt", r"carry"),
)
PLAYS = (["offensivePlays", "teamOffensivePlays"], _rx(r"offen.*play"))
THIRD_MADE = (["thirdDownConversions", "thirdDownConverted"], _rx(r"third.*conv(ersion)?"))
THIRD_ATT = (["thirdDownAttempts", "thirdDownTotal"], _rx(r"third.*att"))
RZ_TD_PCT = (["redzoneTouchdownPct"], _rx(r"red.?zone.*touchdown.*pct"))
RZ_SCORE_PCT = (["redzoneScoringPct"], _rx(r"red.?zone.*scor.*pct"))
RZ_EFF_PCT = (["redzoneEfficiencyPct"], _rx(r"red.?zone.*eff.*pct"))
RZ_MADE = (
    ["redZoneScores", "redZoneConverted", "redZoneTouchdowns"],
    _rx(r"red.?zone.*(score|td|conv)"),
)
RZ_ATT = (
    ["redZoneAttempts", "redZoneOpportunities", "redZoneTrips"],
    _rx(r"red.?zone.*(att|opp|trip)"),
)
GAMES = (["gamesPlayed", "games"], _rx(r"games?played"))
WINS = (["wins"], _rx(r"wins?"))
LOSSES = (["losses"], _rx(r"loss(es)?"))
TOP_SECONDS = ["timeOfPossessionSeconds", "possessionTimeSeconds"]
TOP_CLOCK = ["timeOfPossession", "possessionTime"]


def derive_season_tendencies(
    stats: Optional[Dict[str, Any]],
    dbg: Optional[List[Dict[str, Any]]] = None,
) -> Optional[TendencySummary]:
    """
    Season-aggregate tendencies from a flattened core v2 stats map.
    Returns None (caller falls back to recent games) unless plays > 0 and games > 0.
    """
    if not stats:
        return None

    pass_att = pick_num(stats, *PASS_ATT)
    rush_att = pick_num(stats, *RUSH_ATT)
    plays = pick_num(stats, *PLAYS) or (pass_att + rush_att)

    third_made = pick_num(stats, *THIRD_MADE)
    third_att = pick_num(stats, *THIRD_ATT)

    rz_td_pct = norm_pct(pick_num(stats, *RZ_TD_PCT))
    rz_score_pct = norm_pct(pick_num(stats, *RZ_SCORE_PCT))
    rz_eff_pct = norm_pct(pick_num(stats, *RZ_EFF_PCT))
    rz_fallback = pct(pick_num(stats, *RZ_MADE), pick_num(stats, *RZ_ATT))

    games = pick_num(stats, *GAMES) or (pick_num(stats, *WINS) + pick_num(stats, *LOSSES)) or 0.0

    if plays <= 0 or games <= 0:
        if dbg is not None:
            dbg.append({"core_usable": False, "reason": f"plays={plays:g} games={games:g}"})
        return None

    pass_rate = pct(pass_att, pass_att + rush_att)
    red_zone = rz_td_pct or rz_score_pct or rz_eff_pct or rz_fallback

    to_seconds = pick_num(stats, TOP_SECONDS)
    if not to_seconds:
        clock = next((stats[k] for k in TOP_CLOCK if stats.get(k)), None)
        if isinstance(clock, str):
            to_seconds = parse_to_secs(clock)

    if dbg is not None:
        dbg.append({
            "core_usable": True,
            "passAtt": pass_att,
            "rushAtt": rush_att,
            "plays": plays,
            "games": games,
            "thirdMade": third_made,
            "thirdAtt": third_att,
            "redZonePctFinal": red_zone,
            "toSeconds": to_seconds,
        })

    pass_pct = round_half_up(pass_rate)
    return {
        "sample_games": int(games),
        "pass_rate_pct": pass_pct,
        "rush_rate_pct": 100 - pass_pct,
        "third_down_pct": round_half_up(pct(third_made, third_att)),
        "red_zone_pct": round_half_up(red_zone),
        "plays_pg": round_half_up(plays / games),
        "time_possession_avg": secs_to_mmss(round_half_up(to_seconds / games)),
    }


# -----------------------------
# Tier B: last-N completed games (site summary box scores)
# -----------------------------

def _find_stat(stats: List[Any], name: str) -> Optional[Dict[str, Any]]:
    return next((s for s in stats if isinstance(s, dict) and s.get("name") == name), None)


def _stat_value(stats: List[Any], names: Sequence[str]) -> float:
    for n in names:
        s = _find_stat(stats, n)
        if s is None:
            continue
        v = s.get("value") if s.get("value") is not None else s.get("displayValue")
        if v is not None and v != "":
            return _to_num(v)
    return 0.0


def _stat_text(stats: List[Any], names: Sequence[str], default: str) -> str:
    """Display string of the first named stat present ('5-12', '31:45')."""
    for n in names:
        s = _find_stat(stats, n)
        if s is None:
            continue
        for k in ("displayValue", "value"):
            v = s.get(k)
            if isinstance(v, str) and v.strip():
                return v.strip()
    return default


def _team_block(blocks: Any, team_id: str) -> Optional[Dict[str, Any]]:
    for b in blocks if isinstance(blocks, list) else []:
        if isinstance(b, dict) and str((b.get("team") or {}).get("id")) == str(team_id):
            return b
    return None


def sum_player_attempts(
    summary: Dict[str, Any],
    team_id: str,
    category: str,
    attempt_keys: Sequence[str],
) -> float:
    """
    Sum a team's per-player attempt stats in one box-score group ('passing',
    'rushing'). Understands named stat rows as well as ESPN's column layout
    (`keys` + `athletes[].stats`, incl. combined 'C/ATT' columns).
    """
    team_block = _team_block((summary.get("boxscore") or {}).get("players"), team_id)
    if not team_block:
        return 0.0

    wanted = {k.lower() for k in attempt_keys}
    total = 0.0
    for grp in team_block.get("statistics") or []:
        if not isinstance(grp, dict):
            continue
        gname = str(grp.get("name") or grp.get("displayName") or "").lower()
        if gname != category.lower():
            continue

        for row in grp.get("statistics") or []:
            if not isinstance(row, dict):
                continue
            key = str(row.get("name") or row.get("displayName") or "").lower()
            if key not in wanted:
                continue
            num = _loose_num(row.get("value") if row.get("value") is not None else row.get("displayValue"))
            if num is not None:
                total += num

        keys = [str(k).lower() for k in grp.get("keys") or []]
        for col, key in enumerate(keys):
            parts = key.split("/")
            hit = next((i for i, p in enumerate(parts) if p in wanted), None)
            if hit is None:
                continue
            for ath in grp.get("athletes") or []:
                cells = (ath or {}).get("stats") or []
                if col >= len(cells):
                    continue
                cell = str(cells[col]).split("/")
                if len(cell) != len(parts):
                    continue
                num = _loose_num(cell[hit])
                if num is not None:
                    total += num
    return total


def extract_per_game(
    summary: Dict[str, Any],
    team_id: str,
    dbg: Optional[List[Dict[str, Any]]] = None,
) -> Optional[Dict[str, float]]:
    """One team's figures from one game summary; None when the game has no plays for it."""
    team_box = _team_block((summary.get("boxscore") or {}).get("teams"), team_id) or {}
    stats = team_box.get("statistics") or []

    pass_att = _stat_value(stats, ["passingAttempts", "passAttempts"])
    rush_att = _stat_value(stats, ["rushingAttempts", "rushAttempts"])
    source = "team"

    if pass_att == 0:
        p = sum_player_attempts(summary, team_id, "passing", ["attempts", "att", "passingAttempts"])
        if p > 0:
            pass_att, source = p, "players"
    if rush_att == 0:
        r = sum_player_attempts(summary, team_id, "rushing", ["attempts", "rushes", "carries"])
        if r == 0:
            r = sum_player_attempts(summary, team_id, "rushing", ["rushingAttempts"])
        if r > 0:
            rush_att, source = r, "players"

    third_txt = _stat_text(stats, ["thirdDownEff"], "0-0")
    red_txt = _stat_text(stats, ["redZoneEff", "redZoneAttempts"], "0-0")
    top_txt = _stat_text(stats, ["timeOfPossession", "possessionTime"], "0:00")

    plays = pass_att + rush_att
    if plays <= 0:
        if dbg is not None:
            dbg.append({"teamId": team_id, "used": "skip", "reason": "no plays"})
        return None

    if dbg is not None:
        dbg.append({
            "teamId": team_id,
            "used": source,
            "passAtt": pass_att,
            "rushAtt": rush_att,
            "thirdDown": third_txt,
            "redZone": red_txt,
            "toP": top_txt,
        })

    return {
        "passAtt": pass_att,
        "rushAtt": rush_att,
        "plays": plays,
        "passRate": pct(pass_att, plays),
        "thirdDownPct": parse_pair(third_txt)["pct"],
        "redZonePct": parse_pair(red_txt)["pct"],
        "toSecs": parse_to_secs(top_txt),
    }


def _event_ts(ev: Dict[str, Any]) -> float:
    raw = ev.get("date")
    if not isinstance(raw, str) or not raw:
        return 0.0
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def recent_completed_ids(schedule: Optional[Dict[str, Any]]) -> List[str]:
    """Completed event ids from a team schedule, newest first."""
    events = (schedule.get("events") if isinstance(schedule, dict) else None) or []
    done = [
        ev for ev in events
        if isinstance(ev, dict)
        and ((((ev.get("competitions") or [{}])[0] or {}).get("status") or {}).get("type") or {}).get("completed")
    ]
    done.sort(key=_event_ts, reverse=True)
    return [str(ev.get("id")) for ev in done if ev.get("id") is not None]


def summarize_games(label: str, games: List[Dict[str, float]]) -> Optional[TendencySummary]:
    if not games:
        return None
    pass_pct = round_half_up(avg([g["passRate"] for g in games]))
    return {
        "label": label,
        "sample_games": len(games),
        "pass_rate_pct": pass_pct,
        "rush_rate_pct": 100 - pass_pct,
        "third_down_pct": round_half_up(avg([g["thirdDownPct"] for g in games])),
        "red_zone_pct": round_half_up(avg([g["redZonePct"] for g in games])),
        "plays_pg": round_half_up(avg([g["plays"] for g in games])),
        "time_possession_avg": secs_to_mmss(round_half_up(avg([g["toSecs"] for g in games]))),
    }


# -----------------------------
# Per-game tendencies service
# -----------------------------

class TendencyService:
    def __init__(self, client: EspnClient, cache: Optional[TTLCache] = None):
        self.client = client
        self.cache = cache if cache is not None else TTLCache(TENDENCY_CACHE_TTL)

    async def season_tendencies(
        self,
        team_id: str,
        season: int,
        season_type: int,
        dbg: Optional[List[Dict[str, Any]]] = None,
    ) -> Optional[TendencySummary]:
        root = await self.client.get_team_statistics(team_id, season, season_type)
        stats = flatten_core_stats(root)
        if dbg is not None and stats is not None:
            dbg.append({
                "source": "core",
                "url": self.client.team_statistics_url(team_id, season, season_type),
                "keys": list(stats)[:60],
            })
        return derive_season_tendencies(stats, dbg)

    async def recent_tendencies(
        self,
        team_id: str,
        label: str,
        max_games: int = DEFAULT_SAMPLE,
        dbg: Optional[Dict[str, Any]] = None,
        side: str = "team",
    ) -> Optional[TendencySummary]:
        """
        Walk completed games newest-first until `max_games` usable box scores
        were collected, then average them.
        """
        ids = recent_completed_ids(await self.client.get_team_schedule(team_id))
        calc: List[Dict[str, Any]] = []
        if dbg is not None:
            dbg[f"{side}_recent_ids"] = ids[:max_games]
            dbg[f"{side}_calc"] = calc

        games: List[Dict[str, float]] = []
        for event_id in ids:
            if len(games) >= max_games:
                break
            summary = await self.client.get_game_summary(event_id)
            if not isinstance(summary, dict):
                continue
            per_game = extract_per_game(summary, team_id, calc)
            if per_game is not None:
                games.append(per_game)

        logger.info("tendencies team=%s recent games used=%d", team_id, len(games))
        return summarize_games(label, games)

    async def _or_recent(
        self,
        summary: Optional[TendencySummary],
        team: TeamRef,
        n: int,
        dbg: Dict[str, Any],
        side: str,
    ) -> Optional[TendencySummary]:
        if summary is not None:
            return summary
        return await self.recent_tendencies(team["id"], team["displayName"], n, dbg, side)

    async def for_game(
        self,
        game_id: str,
        n: int = DEFAULT_SAMPLE,
        season: Optional[int] = None,
        season_type: int = REGULAR_SEASON,
        home_id: Optional[str] = None,
        away_id: Optional[str] = None,
        home_name: Optional[str] = None,
        away_name: Optional[str] = None,
        force: bool = False,
        debug: bool = False,
    ) -> Dict[str, Any]:
        """
        Home/away tendencies for a game: season aggregate per team, falling back
        to recent box scores per team. Always returns a body; failures are
        reported under `error`.
        """
        season = season or current_season()
        key = f"{game_id}|n={n}|s={season}|t={season_type}" + override_suffix(
            home_id=home_id, away_id=away_id, home_name=home_name, away_name=away_name
        )
        dbg: Dict[str, Any] = {"mode": "core-preferred", "season": season, "type": season_type}

        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                return {**cached["data"], "debug": cached["debug"]} if debug else cached["data"]

        try:
            home: Optional[TeamRef] = None
            away: Optional[TeamRef] = None
            if home_id:
                home = {"id": str(home_id), "displayName": home_name or "Home"}
            if away_id:
                away = {"id": str(away_id), "displayName": away_name or "Away"}
            if home is None or away is None:
                teams = await resolve_teams(self.client, game_id)
                if home is None and teams["home"]:
                    home = {**teams["home"], "displayName": home_name or teams["home"]["displayName"]}
                if away is None and teams["away"]:
                    away = {**teams["away"], "displayName": away_name or teams["away"]["displayName"]}

            if not home or not away:
                return {"error": "Teams not found", "home": None, "away": None}

            dbg["home_core"], dbg["away_core"] = [], []
            home_final, away_final = await asyncio.gather(
                self.season_tendencies(home["id"], season, season_type, dbg["home_core"]),
                self.season_tendencies(away["id"], season, season_type, dbg["away_core"]),
            )

            if home_final is None or away_final is None:
                dbg["mode"] = "core+fallback-lastN"

                home_final, away_final = await asyncio.gather(
                    self._or_recent(home_final, home, n, dbg, "home"),
                    self._or_recent(away_final, away, n, dbg, "away"),
                )
            logger.info(
                "tendencies game=%s mode=%s home=%s away=%s",
                game_id, dbg["mode"], home_final is not None, away_final is not None,
            )

            data = {
                "sample_n": n,
                "season": season,
                "type": season_type,
                "home": {"team_id": home["id"], "team": home["displayName"], **(home_final or {})},
                "away": {"team_id": away["id"], "team": away["displayName"], **(away_final or {})},
            }
            if home_final is not None or away_final is not None:
                self.cache.set(key, {"data": data, "debug": dbg})
            return {**data, "debug": dbg} if debug else data
        except Exception as e:
            logger.exception("tendencies failed for game=%s: %s", game_id, e)
            err = {"error": str(e), "home": None, "away": None}
            return {**err, "debug": dbg} if debug else err
