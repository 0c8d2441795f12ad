# gridiron/core/settings.py
from __future__ import annotations

import os
from typing import List, Optional

# ------------ Upstream (ESPN) ------------
ESPN_SITE_BASE = os.getenv(
    "ESPN_SITE_BASE",
    "https://site.api.espn.com/apis/site/v2/sports/football/nfl",
).rstrip("/")
ESPN_CORE_BASE = os.getenv(
    "ESPN_CORE_BASE",
    "https://sports.core.api.espn.com/v2/sports/football/leagues/nfl",
).rstrip("/")
ESPN_USER_AGENT = os.getenv("ESPN_USER_AGENT", "GridironAI/1.0 (+gridironai)")
ESPN_TIMEOUT = float(os.getenv("ESPN_TIMEOUT", "12.0"))

# ------------ Fan-out / caches ------------
FANOUT_CONCURRENCY = int(os.getenv("FANOUT_CONCURRENCY", "8"))
INJURY_CACHE_TTL = float(os.getenv("INJURY_CACHE_TTL", str(15 * 60)))
TENDENCY_CACHE_TTL = float(os.getenv("TENDENCY_CACHE_TTL", str(60 * 60)))

# ------------ HTTP surface ------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGIN = os.getenv("CORS_ORIGIN")

# localhost, 127.0.0.1 (any port) and Amplify previews
DEFAULT_CORS_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$|^https://.*\.amplifyapp\.com$"


def cors_origins() -> Optional[List[str]]:
    """Explicit origins from CORS_ORIGIN, or None to fall back to DEFAULT_CORS_REGEX."""
    if not CORS_ORIGIN:
        return None
    return [o.strip() for o in CORS_ORIGIN.split(",") if o.strip()]
