from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from gridiron.services.espn_common import EspnClient

SITE = "https://site.test/apis/site/v2/sports/football/nfl"
CORE = "https://core.test/v2/sports/football/leagues/nfl"


class FakeUpstream:
    """URL -> canned JSON, served through httpx.MockTransport; records every request."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, Any]] = {}
        self.calls: List[str] = []
        self.headers: List[httpx.Headers] = []

    def add(self, url: str, payload: Any, status: int = 200) -> None:
        self.routes[url] = (status, payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        self.headers.append(request.headers)
        if url not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status, payload = self.routes[url]
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)

    def client(self) -> EspnClient:
        return EspnClient(site_base=SITE, core_base=CORE, transport=httpx.MockTransport(self.handler))

    def count(self, url: str) -> int:
        return self.calls.count(url)

    # ---------- canned ESPN shapes ----------
    def add_board(self, *events: Dict[str, Any]) -> None:
        self.add(f"{SITE}/scoreboard", {"events": list(events)})

    @staticmethod
    def event(
        game_id: str,
        home: Optional[Tuple[str, str]] = ("1", "Home Team"),
        away: Optional[Tuple[str, str]] = ("2", "Away Team"),
        date: str = "2024-09-08T17:00Z",
        completed: bool = False,
    ) -> Dict[str, Any]:
        competitors = []
        for role, team in (("home", home), ("away", away)):
            c: Dict[str, Any] = {"homeAway": role}
            if team is not None:
                c["team"] = {"id": team[0], "displayName": team[1]}
            competitors.append(c)
        return {
            "id": game_id,
            "date": date,
            "competitions": [{
                "status": {"type": {"name": "STATUS_FINAL" if completed else "STATUS_SCHEDULED", "completed": completed}},
                "competitors": competitors,
            }],
        }

    def add_injuries(self, team_id: str, injuries: List[Dict[str, Any]]) -> List[str]:
        """Register an injury list whose items are $ref pointers; returns the item URLs."""
        urls = []
        for i, node in enumerate(injuries):
            url = f"{CORE}/teams/{team_id}/injuries/{i}"
            self.add(url, node)
            urls.append(url)
        self.add(f"{CORE}/teams/{team_id}/injuries?limit=200", {"items": [{"$ref": u} for u in urls]})
        return urls


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
