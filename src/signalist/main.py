"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from signalist.api import api_router
from signalist.config import get_settings
from signalist.core.dependencies import WorkerStateDep
from signalist.core.exceptions import StorageError
from signalist.core.logging import get_logger, setup_logging
from signalist.worker import worker_lifespan

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: starts the digest worker alongside the HTTP server."""
    settings = get_settings()
    setup_logging(settings)

    async with worker_lifespan(settings) as state:
        app.state.worker = state
        logger.info("Signalist ready", env=settings.env)
        yield


app = FastAPI(
    title="Signalist",
    description="Watchlist-aware market news and daily AI digests",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=503, content={"detail": exc.message})


# Infrastructure (no prefix, not versioned)


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check, always ok while the process is running."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(state: WorkerStateDep) -> dict[str, str]:
    """Readiness check for Redis, PostgreSQL and the scheduler."""
    checks: dict[str, str] = {}
    try:
        await state.redis.ping()  # type: ignore[misc]
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "error"
    try:
        await state.db.fetchval("SELECT 1")
        checks["db"] = "ok"
    except Exception:
        checks["db"] = "error"
    checks["scheduler"] = (
        "ok" if state.scheduler and state.scheduler.running else "disabled"
    )
    status = "ready" if all(v != "error" for v in checks.values()) else "not_ready"
    return {"status": status, **checks}


# Domain API
app.include_router(api_router, prefix="/api/v1")
