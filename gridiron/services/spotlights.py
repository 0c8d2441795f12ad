# gridiron/services/spotlights.py
from __future__ import annotations

from typing import Any, Dict, List

from gridiron.models.types import Spotlight

# Placeholder until a real spotlight model exists
PLACEHOLDER_SPOTLIGHTS: List[Spotlight] = [
    {
        "player_id": "qb1",
        "name": "QB Spotlight",
        "pos": "QB",
        "confidence": 70.2,
        "rationale": "Offense leaning pass vs favorable defense.",
    },
    {
        "player_id": "wr1",
        "name": "WR Spotlight",
        "pos": "WR",
        "confidence": 66.4,
        "rationale": "Strong role + zone advantage.",
    },
]


def spotlights_for_game(game_id: str) -> Dict[str, Any]:
    return {"team_id": "TBD", "players": [dict(p) for p in PLACEHOLDER_SPOTLIGHTS]}
