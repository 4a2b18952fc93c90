# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — REST API.

FastAPI server exposing advanced and semantic search over ASVAB
practice content. Main entry point for initialization and routing.
"""

import logging
import sqlite3
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from asvab_search import __version__, config
from asvab_search.auth import AuthManager
from asvab_search.config import ALLOWED_ORIGINS, RATE_LIMIT, RATE_WINDOW
from asvab_search.exceptions import ItemNotFound, SearchError
from asvab_search.i18n import DEFAULT_LANGUAGE, get_trans
from asvab_search.metrics import MetricsMiddleware, metrics
from asvab_search.routes import search as search_router
from asvab_search.services import SearchServices

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the connection pool, search services and auth on startup."""
    import asvab_search.auth

    db_path = config.DB_PATH  # Read at runtime, not import time
    logger.info("Starting lifespan with DB_PATH: %s", db_path)
    if db_path == str(config.DEFAULT_DB_PATH):
        config.ensure_data_dir()

    services = await SearchServices.create(db_path)
    auth_manager = AuthManager(db_path)

    # Dependencies resolve auth through the module-level instance
    asvab_search.auth._auth_manager = auth_manager

    app.state.services = services
    app.state.auth_manager = auth_manager

    try:
        yield
    finally:
        await services.close()
        asvab_search.auth._auth_manager = None


app = FastAPI(
    title="ASVAB Search API",
    description="Advanced and semantic search across questions, flashcards, "
    "military jobs and study groups.",
    version=__version__,
    lifespan=lifespan,
)


# ─── Middleware ──────────────────────────────────────────────────────


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window rate limiter.

    Tracks at most ``MAX_TRACKED_IPS`` clients; past that, expired entries
    are dropped first, then the oldest 20 %.
    """

    MAX_TRACKED_IPS = 10_000

    def __init__(self, app, limit: int = 100, window: int = 60):
        super().__init__(app)
        self.limit = limit
        self.window = window
        self.requests: dict[str, list[float]] = {}

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        recent = [t for t in self.requests.get(client_ip, []) if now - t < self.window]
        if len(recent) >= self.limit:
            self.requests[client_ip] = recent
            logger.warning("Rate limit exceeded for %s", client_ip)
            lang = request.headers.get("Accept-Language", DEFAULT_LANGUAGE)
            return JSONResponse(
                status_code=429,
                content={"detail": get_trans("error_too_many_requests", lang)},
                headers={"Retry-After": str(self.window)},
            )

        recent.append(now)
        self.requests[client_ip] = recent
        if len(self.requests) > self.MAX_TRACKED_IPS:
            self._evict(now)

        return await call_next(request)

    def _evict(self, now: float) -> None:
        expired = [ip for ip, ts in self.requests.items() if not ts or now - ts[-1] > self.window]
        for ip in expired:
            del self.requests[ip]

        if len(self.requests) > self.MAX_TRACKED_IPS:
            by_age = sorted(self.requests.items(), key=lambda kv: kv[1][-1] if kv[1] else 0)
            for ip, _ in by_age[: max(1, len(by_age) // 5)]:
                del self.requests[ip]


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept-Language"],
)
app.add_middleware(RateLimitMiddleware, limit=RATE_LIMIT, window=RATE_WINDOW)
app.add_middleware(MetricsMiddleware)


# ─── Exception Handlers ──────────────────────────────────────────────


def _lang(request: Request) -> str:
    return request.headers.get("Accept-Language", DEFAULT_LANGUAGE)


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
    status = 404 if isinstance(exc, ItemNotFound) else 500
    if status == 500:
        logger.error("%s: %s", type(exc).__name__, exc.__cause__ or exc)
    return JSONResponse(status_code=status, content={"detail": get_trans(exc.i18n_key, _lang(request))})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(sqlite3.Error)
async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.error("Database error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": get_trans("error_internal_db", _lang(request))})


@app.exception_handler(Exception)
async def universal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": get_trans("error_unexpected", _lang(request))})


# ─── Routes ──────────────────────────────────────────────────────────


@app.get("/", tags=["health"])
async def root_node(request: Request) -> dict:
    lang = _lang(request)
    return {
        "service": "asvab-search",
        "version": __version__,
        "status": get_trans("system_operational", lang),
        "description": get_trans("info_service_desc", lang),
    }


@app.get("/health", tags=["health"])
async def health_check(request: Request) -> dict:
    """Simple status check for load balancers."""
    return {"status": get_trans("system_healthy", _lang(request)), "version": __version__}


@app.get("/metrics", tags=["health"])
async def get_metrics(request: Request):
    """Expose Prometheus metrics."""
    metrics.set_gauge("asvab_search_db_connections", request.app.state.services.pool.active_count)
    return Response(content=metrics.to_prometheus(), media_type="text/plain")


app.include_router(search_router.router)
