# gridiron/services/espn_common.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from zoneinfo import ZoneInfo

from gridiron.core.settings import (
    ESPN_CORE_BASE,
    ESPN_SITE_BASE,
    ESPN_TIMEOUT,
    ESPN_USER_AGENT,
)

logger = logging.getLogger("gridiron.espn_common")

HEADERS = {"User-Agent": ESPN_USER_AGENT, "Accept": "application/json"}


# -----------------------------------------------------------
# Read-only ESPN JSON client
# -----------------------------------------------------------
class EspnClient:
    """
    Read-only JSON access to the three ESPN endpoint families we use:

      - site API: scoreboard, team schedule, game summary
      - core v2:  team season statistics, team injuries (list of $ref items)
      - any absolute URL handed back by the core API ($ref pointers)

    `fetch_json` never raises for HTTP or transport failures: it logs and
    returns None so callers can treat "no data" uniformly. No retries.
    """

    def __init__(
        self,
        site_base: str = ESPN_SITE_BASE,
        core_base: str = ESPN_CORE_BASE,
        timeout: float = ESPN_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.site_base = site_base.rstrip("/")
        self.core_base = core_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=HEADERS,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                r = await client.get(url, params=params)
                if not r.is_success:
                    logger.warning("espn fetch %s -> HTTP %s", url, r.status_code)
                    return None
                return r.json()
        except Exception as e:
            logger.warning("espn fetch %s failed: %s", url, repr(e))
            return None

    # ---------- site API ----------
    async def get_scoreboard(self, dates: Optional[str] = None) -> Optional[Dict[str, Any]]:
        params = {"dates": dates, "limit": 500} if dates else None
        return await self.fetch_json(f"{self.site_base}/scoreboard", params)

    async def get_team_schedule(self, team_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_json(f"{self.site_base}/teams/{team_id}/schedule")

    async def get_game_summary(self, event_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_json(f"{self.site_base}/summary", {"event": event_id})

    # ---------- core v2 ----------
    def team_statistics_url(self, team_id: str, season: int, season_type: int) -> str:
        return f"{self.core_base}/seasons/{season}/types/{season_type}/teams/{team_id}/statistics"

    async def get_team_statistics(self, team_id: str, season: int, season_type: int) -> Optional[Dict[str, Any]]:
        return await self.fetch_json(self.team_statistics_url(team_id, season, season_type))

    async def get_team_injuries(self, team_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_json(f"{self.core_base}/teams/{team_id}/injuries", {"limit": 200})


# -----------------------------------------------------------
# Date normalization helper (NY-local “today” by default)
# -----------------------------------------------------------
def normalize_date_param(date: Optional[str]) -> str:
    """
    Normalize a date for ESPN's `dates` param.

    Accepts:
      - None            -> today's date in America/New_York, YYYYMMDD
      - 'YYYYMMDD'      -> returned unchanged
      - 'YYYY-MM-DD'    -> dashes removed
      - anything else   -> returned as-is (caller responsibility)
    """
    if date:
        s = date.strip()
        if len(s) == 8 and s.isdigit():
            return s
        if len(s) == 10 and "-" in s:
            parts = s.split("-")
            if len(parts) == 3 and all(p.isdigit() for p in parts):
                return "".join(parts)
        return s

    try:
        now = datetime.now(ZoneInfo("America/New_York"))
    except Exception:
        # naive local time if tzdata is unavailable
        now = datetime.now()

    return now.strftime("%Y%m%d")
