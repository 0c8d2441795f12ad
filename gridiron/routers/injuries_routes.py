# gridiron/routers/injuries_routes.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request

from gridiron.routers.params import flag, text_param

router = APIRouter(tags=["injuries"])


@router.get("/{game_id}/injuries")
async def game_injuries(
    request: Request,
    game_id: str,
    homeId: Optional[str] = None,
    awayId: Optional[str] = None,
    homeName: Optional[str] = None,
    awayName: Optional[str] = None,
    force: Optional[str] = None,
    debug: Optional[str] = None,
):
    """
    Injuries for both teams of a game (Active/Probable hidden).
    Always HTTP 200; check `error` in the body.
    """
    service = request.app.state.injuries
    return await service.for_game(
        game_id,
        home_id=text_param(homeId),
        away_id=text_param(awayId),
        home_name=text_param(homeName),
        away_name=text_param(awayName),
        force=flag(force),
        debug=flag(debug),
    )
