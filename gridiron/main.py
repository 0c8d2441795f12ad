# gridiron/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from gridiron.core.cache import TTLCache
from gridiron.core.settings import (
    DEFAULT_CORS_REGEX,
    INJURY_CACHE_TTL,
    LOG_LEVEL,
    TENDENCY_CACHE_TTL,
    cors_origins,
)
from gridiron.routers import games_routes, injuries_routes, tendencies_routes
from gridiron.services.espn_common import EspnClient
from gridiron.services.injuries import InjuryService
from gridiron.services.tendencies import TendencyService

# ------------ Logging ------------
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("gridiron")


# ------------ Access log middleware ------------
class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            dt = (time.perf_counter() - t0) * 1000
            logger.info(
                "ACCESS %s %s q=%s -> %s in %.1fms",
                request.method,
                request.url.path,
                request.url.query,
                status,
                dt,
            )
        return response


def create_app(
    client: Optional[EspnClient] = None,
    injury_cache: Optional[TTLCache] = None,
    tendency_cache: Optional[TTLCache] = None,
) -> FastAPI:
    """
    Build an app instance. Each instance owns its ESPN client and its own
    caches, so separate instances never share state.
    """
    espn = client or EspnClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("GridironAI API starting (site=%s core=%s)", espn.site_base, espn.core_base)
        yield

    app = FastAPI(
        title="GridironAI API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.espn = espn
    app.state.injuries = InjuryService(
        espn, injury_cache if injury_cache is not None else TTLCache(INJURY_CACHE_TTL)
    )
    app.state.tendencies = TendencyService(
        espn, tendency_cache if tendency_cache is not None else TTLCache(TENDENCY_CACHE_TTL)
    )

    app.add_middleware(AccessLogMiddleware)

    # ------------ CORS (explicit list via CORS_ORIGIN, else localhost/Amplify) ------------
    origins = cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or [],
        allow_origin_regex=None if origins else DEFAULT_CORS_REGEX,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    # ------------ Error handlers ------------
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(status_code=404, content={"error": "Not Found", "path": request.url.path})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("UNHANDLED ERROR: %s %s", request.method, request.url)
        return JSONResponse(status_code=500, content={"error": "internal_error"})

    # ------------ Health ------------
    @app.get("/api/health")
    async def health():
        return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}

    # ------------ Mount routers ------------
    app.include_router(games_routes.router, prefix="/api/games")
    app.include_router(injuries_routes.router, prefix="/api/games")
    app.include_router(tendencies_routes.router, prefix="/api/games")

    return app


app = create_app()
