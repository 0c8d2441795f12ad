from datetime import datetime

import httpx
import pytest

from conftest import CORE, SITE
from gridiron.core.settings import ESPN_USER_AGENT
from gridiron.services.espn_common import normalize_date_param
from gridiron.services.espn_nfl import current_season, extract_game_lite, resolve_teams


@pytest.mark.asyncio
async def test_fetch_json_returns_payload_and_sends_identity_headers(upstream) -> None:
    upstream.add(f"{CORE}/thing", {"ok": 1})
    data = await upstream.client().fetch_json(f"{CORE}/thing")
    assert data == {"ok": 1}
    assert upstream.headers[0]["user-agent"] == ESPN_USER_AGENT
    assert upstream.headers[0]["accept"] == "application/json"


@pytest.mark.asyncio
async def test_fetch_json_non_success_is_none(upstream) -> None:
    upstream.add(f"{CORE}/down", {"error": "x"}, status=503)
    client = upstream.client()
    assert await client.fetch_json(f"{CORE}/down") is None
    assert await client.fetch_json(f"{CORE}/unknown") is None


@pytest.mark.asyncio
async def test_fetch_json_transport_error_is_none(upstream) -> None:
    upstream.add(f"{CORE}/boom", httpx.ConnectError("connection refused"))
    assert await upstream.client().fetch_json(f"{CORE}/boom") is None
    assert upstream.count(f"{CORE}/boom") == 1


@pytest.mark.asyncio
async def test_fetch_json_invalid_body_is_none() -> None:
    from gridiron.services.espn_common import EspnClient

    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>nope</html>"))
    client = EspnClient(site_base=SITE, core_base=CORE, transport=transport)
    assert await client.fetch_json(f"{SITE}/scoreboard") is None


@pytest.mark.asyncio
async def test_resolve_teams_finds_event_by_id(upstream) -> None:
    upstream.add_board(
        upstream.event("100", home=("5", "Five"), away=("6", "Six")),
        upstream.event("401", home=("1", "Home Team"), away=("2", "Away Team")),
    )
    teams = await resolve_teams(upstream.client(), "401")
    assert teams["home"] == {"id": "1", "displayName": "Home Team"}
    assert teams["away"] == {"id": "2", "displayName": "Away Team"}
    assert upstream.count(f"{SITE}/scoreboard") == 1


@pytest.mark.asyncio
async def test_resolve_teams_unknown_game(upstream) -> None:
    upstream.add_board(upstream.event("100"))
    assert await resolve_teams(upstream.client(), "999") == {"home": None, "away": None}


@pytest.mark.asyncio
async def test_resolve_teams_board_unavailable(upstream) -> None:
    assert await resolve_teams(upstream.client(), "401") == {"home": None, "away": None}


@pytest.mark.asyncio
async def test_resolve_teams_missing_team_subtree(upstream) -> None:
    upstream.add_board(upstream.event("401", away=None))
    teams = await resolve_teams(upstream.client(), "401")
    assert teams["home"]["id"] == "1"
    assert teams["away"] is None


def test_extract_game_lite() -> None:
    ev = {
        "id": "401",
        "date": "2024-09-08T17:00Z",
        "competitions": [{
            "status": {"type": {"name": "STATUS_FINAL"}},
            "competitors": [
                {"homeAway": "away", "team": {"id": "2", "displayName": "Away Team"}},
                {"homeAway": "home", "team": {"id": "1", "displayName": "Home Team"}},
            ],
        }],
    }
    assert extract_game_lite(ev) == {
        "gameId": "401",
        "homeTeam": "Home Team",
        "homeTeamId": "1",
        "awayTeam": "Away Team",
        "awayTeamId": "2",
        "startTime": "2024-09-08T17:00Z",
        "status": "STATUS_FINAL",
    }


def test_current_season_heuristic() -> None:
    assert current_season(datetime(2025, 1, 20)) == 2024
    assert current_season(datetime(2025, 2, 9)) == 2024
    assert current_season(datetime(2025, 3, 1)) == 2025
    assert current_season(datetime(2025, 10, 19)) == 2025


def test_normalize_date_param() -> None:
    assert normalize_date_param("20240908") == "20240908"
    assert normalize_date_param("2024-09-08") == "20240908"
    assert len(normalize_date_param(None)) == 8
