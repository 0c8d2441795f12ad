# gridiron/routers/tendencies_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request

from gridiron.routers.params import flag, int_param, text_param
from gridiron.services.tendencies import DEFAULT_SAMPLE, REGULAR_SEASON

router = APIRouter(tags=["tendencies"])


@router.get("/{game_id}/tendencies")
async def game_tendencies(
    request: Request,
    game_id: str,
    n: Optional[str] = None,
    season: Optional[str] = None,
    season_type: Optional[str] = Query(None, alias="type"),
    homeId: Optional[str] = None,
    awayId: Optional[str] = None,
    homeName: Optional[str] = None,
    awayName: Optional[str] = None,
    force: Optional[str] = None,
    debug: Optional[str] = None,
):
    """
    Offensive tendencies for both teams: season aggregate when usable,
    otherwise the average of the last `n` completed games.
    Always HTTP 200; check `error` in the body.
    """
    service = request.app.state.tendencies
    return await service.for_game(
        game_id,
        n=int_param(n, DEFAULT_SAMPLE, lo=1),
        season=int_param(season, None, lo=1),
        season_type=int_param(season_type, REGULAR_SEASON, lo=1),
        home_id=text_param(homeId),
        away_id=text_param(awayId),
        home_name=text_param(homeName),
        away_name=text_param(awayName),
        force=flag(force),
        debug=flag(debug),
    )
