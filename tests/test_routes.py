import pytest
from fastapi.testclient import TestClient

from conftest import CORE, SITE
from gridiron.core.cache import TTLCache
from gridiron.main import create_app


@pytest.fixture
def api(upstream):
    with TestClient(create_app(client=upstream.client())) as client:
        yield client


def test_health(api) -> None:
    r = api.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["ts"]


def test_games_board(api, upstream) -> None:
    upstream.add_board(upstream.event("401"), upstream.event("402", home=("3", "Third"), away=("4", "Fourth")))
    r = api.get("/api/games")
    assert r.status_code == 200
    assert [row["gameId"] for row in r.json()] == ["401", "402"]
    assert r.json()[1]["homeTeam"] == "Third"


def test_games_board_for_date(api, upstream) -> None:
    upstream.add(f"{SITE}/scoreboard?dates=20240908&limit=500", {"events": [upstream.event("401")]})
    r = api.get("/api/games", params={"date": "2024-09-08"})
    assert [row["gameId"] for row in r.json()] == ["401"]


def test_games_board_upstream_down(api) -> None:
    r = api.get("/api/games")
    assert r.status_code == 200
    assert r.json() == []


def test_game_detail(api, upstream) -> None:
    upstream.add_board(upstream.event("401"))
    r = api.get("/api/games/401")
    assert r.status_code == 200
    assert r.json()["awayTeamId"] == "2"

    missing = api.get("/api/games/999")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Game not found"}


def test_spotlights_placeholder(api) -> None:
    body = api.get("/api/games/401/spotlights").json()
    assert body["team_id"] == "TBD"
    assert [p["pos"] for p in body["players"]] == ["QB", "WR"]


def test_unknown_api_path_is_json_404(api) -> None:
    r = api.get("/api/nope/never")
    assert r.status_code == 404
    assert r.json() == {"error": "Not Found", "path": "/api/nope/never"}


def test_injuries_endpoint(api, upstream) -> None:
    upstream.add_board(upstream.event("401"))
    upstream.add(f"{CORE}/athletes/11", {"id": 11, "fullName": "Player 11"})
    upstream.add_injuries("1", [{"status": "Out", "athlete": {"$ref": f"{CORE}/athletes/11"}}])

    r = api.get("/api/games/401/injuries", params={"debug": "1"})
    assert r.status_code == 200
    body = r.json()
    assert [(p["name"], p["team"]) for p in body["players"]] == [("Player 11", "Home Team")]
    assert body["debug"]["gameId"] == "401"

    calls = len(upstream.calls)
    assert api.get("/api/games/401/injuries").json()["players"] == body["players"]
    assert len(upstream.calls) == calls

    api.get("/api/games/401/injuries", params={"force": "1"})
    assert len(upstream.calls) > calls


def test_injuries_teams_not_found_is_200(api, upstream) -> None:
    upstream.add_board(upstream.event("100"))
    r = api.get("/api/games/401/injuries")
    assert r.status_code == 200
    assert r.json() == {"team_id": "mixed", "players": [], "error": "Teams not found"}


def test_tendencies_teams_not_found_is_200(api, upstream) -> None:
    upstream.add_board(upstream.event("100"))
    r = api.get("/api/games/401/tendencies")
    assert r.status_code == 200
    assert r.json() == {"error": "Teams not found", "home": None, "away": None}


def test_tendencies_endpoint_params(api, upstream) -> None:
    upstream.add(f"{CORE}/seasons/2023/types/3/teams/1/statistics", {"splits": {"categories": [
        {"stats": [
            {"name": "offensivePlays", "value": 300},
            {"name": "gamesPlayed", "value": 5},
            {"name": "passingAttempts", "value": 150},
            {"name": "rushingAttempts", "value": 150},
        ]},
    ]}})
    r = api.get("/api/games/401/tendencies", params={
        "season": "2023", "type": "3", "n": "5", "homeId": "1", "awayId": "2", "homeName": "Hosts",
    })
    assert r.status_code == 200
    body = r.json()
    assert (body["season"], body["type"], body["sample_n"]) == (2023, 3, 5)
    assert body["home"]["team"] == "Hosts"
    assert body["home"]["pass_rate_pct"] == 50
    assert body["home"]["plays_pg"] == 60
    assert body["away"] == {"team_id": "2", "team": "Away"}


def test_tendencies_bad_numbers_fall_back_to_defaults(api, upstream) -> None:
    r = api.get("/api/games/401/tendencies", params={
        "n": "lots", "type": "x", "season": "2024", "homeId": "1", "awayId": "2",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["sample_n"] == 3
    assert body["type"] == 2


def test_injected_cache_is_used(upstream) -> None:
    injury_cache, tendency_cache = TTLCache(900), TTLCache(3600)
    app = create_app(client=upstream.client(), injury_cache=injury_cache, tendency_cache=tendency_cache)
    assert app.state.injuries.cache is injury_cache
    assert app.state.tendencies.cache is tendency_cache

    upstream.add_board(upstream.event("401"))
    upstream.add(f"{CORE}/athletes/11", {"id": 11, "fullName": "Player 11"})
    upstream.add_injuries("1", [{"status": "Out", "athlete": {"$ref": f"{CORE}/athletes/11"}}])
    with TestClient(app) as client:
        client.get("/api/games/401/injuries")

    assert [p["name"] for p in injury_cache.get("401")["players"]] == ["Player 11"]
