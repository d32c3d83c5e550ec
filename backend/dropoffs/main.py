"""
Recycling Drop-offs — FastAPI Application
=========================================
Nearest recycling drop-off points served as GeoJSON from PostGIS.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from dropoffs.api import register_error_handlers
from dropoffs.config import Settings, load_settings
from dropoffs.errors import ConfigurationError, DropoffError
from dropoffs.models.database import init_connection_pool
from dropoffs.routers import dropoffs

logger = logging.getLogger(__name__)


# ── Lifespan (startup / shutdown) ─────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Build the connection pool for the configured mode.
        - Verify PostGIS connectivity (unless disabled).
    Shutdown:
        - Dispose the pool.

    Configuration and connection errors are logged once here and
    re-raised, which aborts startup before any request is accepted.
    """
    settings: Settings = app.state.settings
    logger.info("%s starting up...", settings.app_name)

    try:
        pool = init_connection_pool(settings)
        if settings.db_verify_on_startup:
            try:
                await pool.verify()
            except DropoffError:
                await pool.dispose()
                raise
    except ConfigurationError as exc:
        if exc.missing:
            logger.critical("Missing environment variables: %s", ", ".join(exc.missing))
        logger.critical("Startup aborted: %s", exc)
        raise
    except DropoffError as exc:
        logger.critical("Startup aborted: %s", exc)
        raise

    app.state.pool = pool

    yield

    await pool.dispose()
    logger.info("%s shut down.", settings.app_name)


# ── App factory ───────────────────────────────────────────────────
def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Nearest recycling drop-off points as GeoJSON, "
            "ranked by PostGIS geodesic distance."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(dropoffs.router)

    @app.get("/health")
    async def health(request: Request):
        pool = getattr(request.app.state, "pool", None)
        return {
            "status": "ok",
            "service": settings.app_name,
            "pool": pool.status() if pool is not None else None,
        }

    # Front-end assets last, so API routes take precedence over "/".
    if settings.static_dir.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=settings.static_dir, html=True),
            name="static",
        )

    return app


# ── Module-level app instance (for `uvicorn dropoffs.main:app`) ──
app = create_app()  # pragma: no cover
