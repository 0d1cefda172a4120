#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
WikiRefs: FastAPI application factory
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wikirefs.core.config import get_settings
from wikirefs.core.database import create_all_tables, dispose_db, get_session_factory, init_db
from wikirefs.routes import attachments, refs, render
from wikirefs.services.pipeline import build_render_pipeline
from wikirefs.services.state_cache import RenderStateCache
from wikirefs.services.users import resolve_identity_projection

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    init_db()
    await create_all_tables()   # safe: CREATE TABLE IF NOT EXISTS
    await _seed_defaults()
    yield
    app.state.render_cache.clear_all_state_caches()
    await dispose_db()


# -----------------------------------------------------------------------------

async def _seed_defaults() -> None:
    """Create the root page '/' if the tree is empty."""
    from wikirefs.services.pages import ensure_root_page

    factory = get_session_factory()
    async with factory() as session:
        try:
            await ensure_root_page(session)
            await session.commit()
        except Exception:
            log.exception("could not seed the root page")
            await session.rollback()


# -----------------------------------------------------------------------------

def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger("wikirefs").setLevel("DEBUG" if settings.debug else settings.log_level.upper())

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Resolves $ref / $refs attachment tags in rendered wiki pages.",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # ── Per-application state ─────────────────────────────────────────────

    app.state.render_cache = RenderStateCache(settings.render_cache_max_contexts)
    app.state.render_pipeline = build_render_pipeline(app.state.render_cache)
    app.state.identity_projection = resolve_identity_projection()

    # ── CORS ──────────────────────────────────────────────────────────────

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── API routers ───────────────────────────────────────────────────────

    prefix = "/api/v1"

    app.include_router(refs.router,        prefix=prefix)
    app.include_router(render.router,      prefix=prefix)
    app.include_router(attachments.router, prefix=prefix)

    # ── Global exception handlers ─────────────────────────────────────────

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        detail = getattr(exc, "detail", None) or "Not found"
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": detail},
        )

    @app.exception_handler(500)
    async def server_error(request: Request, exc):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health check ──────────────────────────────────────────────────────

    @app.get("/api/health", tags=["system"])
    async def health():
        return {"status": "ok", "version": settings.app_version, "app": settings.app_name}

    return app


# -----------------------------------------------------------------------------

app = create_app()


# -----------------------------------------------------------------------------
