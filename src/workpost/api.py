"""HTTP API for workpost.

A module-level ``_db`` is set at startup (``main()``) or by test fixtures and
injected into route handlers via ``Depends(_get_db)``. Every workflow route is
mounted under ``/api/v4``; ``/health`` sits outside it.

The session user is taken from the ``X-User-Id`` header. Authentication is
the host platform's job; this service trusts the header.

Usage:
    workpost serve                # http://127.0.0.1:8065
    workpost serve --port 9000
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

from workpost.core import WorkpostDB, find_workpost_root
from workpost.logging import setup_logging

DEFAULT_PORT = 8065
API_PREFIX = "/api/v4"

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_db: WorkpostDB | None = None


def _get_db() -> WorkpostDB:
    """Return the active database connection."""
    from fastapi import HTTPException

    if _db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return _db


def create_app() -> Any:
    """Create the FastAPI application with all workflow endpoints."""
    from fastapi import FastAPI

    from workpost import __version__
    from workpost.api_routes import channels, me, plans, tasks, troubles

    app = FastAPI(title="workpost", version=__version__, docs_url=None, redoc_url=None)

    for module in (plans, tasks, troubles, channels, me):
        app.include_router(module.create_router(), prefix=API_PREFIX)

    @app.middleware("http")
    async def _log_requests(request: Request, call_next: Any) -> Any:
        started = perf_counter()
        response = await call_next(request)
        duration_ms = int((perf_counter() - started) * 1000)
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "event": "request",
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    @app.get("/health")
    async def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": __version__})

    return app


def main(port: int = DEFAULT_PORT) -> None:
    """Start the API server for the project found from the cwd."""
    import uvicorn

    global _db

    workpost_dir = find_workpost_root()
    setup_logging(workpost_dir)
    _db = WorkpostDB.from_project(workpost_dir.parent, check_same_thread=False)

    app = create_app()
    print(f"workpost API: http://127.0.0.1:{port}{API_PREFIX}")
    try:
        uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
    finally:
        _db.close()
        _db = None
