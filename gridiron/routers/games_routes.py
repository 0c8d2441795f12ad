# gridiron/routers/games_routes.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from gridiron.models.types import GameLite
from gridiron.services.espn_common import normalize_date_param
from gridiron.services.espn_nfl import extract_game_lite, find_event, get_board_events
from gridiron.services.spotlights import spotlights_for_game

logger = logging.getLogger("gridiron.games")
router = APIRouter(tags=["games"])


# ---------------- Board ----------------
@router.get("", response_model=List[GameLite])
async def games_board(
    request: Request,
    date: Optional[str] = Query(None, description="YYYYMMDD or YYYY-MM-DD; default = current board"),
):
    """
    Lite rows for the event board (current week when no date is given).
    """
    client = request.app.state.espn
    dates = normalize_date_param(date) if date else None
    events = await get_board_events(client, dates)
    rows = [extract_game_lite(ev) for ev in events]
    logger.info("games board dates=%s -> %d", dates, len(rows))
    return rows


# ---------------- Single game ----------------
@router.get("/{game_id}", response_model=GameLite)
async def game_detail(request: Request, game_id: str):
    ev = await find_event(request.app.state.espn, game_id)
    if not ev:
        raise HTTPException(404, "Game not found")
    return extract_game_lite(ev)


# ---------------- Spotlights (placeholder) ----------------
@router.get("/{game_id}/spotlights")
async def game_spotlights(game_id: str):
    return spotlights_for_game(game_id)
