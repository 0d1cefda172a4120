#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Render endpoint: refs-aware render for page views and the editor preview.

GET /api/v1/render?content=...&format=markdown&context=/docs&preview=true

``context`` identifies the render context whose cached ref resolutions may
be reused; it defaults to ``pagePath``.  ``pagePath`` is the page being
rendered, used by tags that name no page.  ``preview=false`` is a full render
and discards the context's cache first.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wikirefs.core.config import get_settings
from wikirefs.core.database import get_db
from wikirefs.core.deps import get_identity_projection, get_render_cache, get_render_pipeline
from wikirefs.core.security import get_viewer
from wikirefs.schemas import RenderResponse
from wikirefs.services.pages import normalize_path
from wikirefs.services.pipeline import RenderContext, RenderPipeline, stage_for
from wikirefs.services.refs import resolve_context_map
from wikirefs.services.renderer import render
from wikirefs.services.state_cache import RenderStateCache
from wikirefs.services.users import IdentityProjection


# -----------------------------------------------------------------------------

router = APIRouter(prefix="/render", tags=["render"])


# -----------------------------------------------------------------------------

@router.get("", response_model=RenderResponse)
async def render_refs(
    content:   str           = Query(default="", max_length=1_000_000),
    format:    str           = Query(default="markdown"),
    page_path: Optional[str] = Query(default=None, alias="pagePath"),
    context:   Optional[str] = Query(default=None),
    preview:   bool          = Query(default=True),
    viewer = Depends(get_viewer),
    cache: RenderStateCache        = Depends(get_render_cache),
    pipeline: RenderPipeline       = Depends(get_render_pipeline),
    projection: IdentityProjection = Depends(get_identity_projection),
    db: AsyncSession               = Depends(get_db),
):
    """Render *content*, replace refs tags with placeholders, and resolve them."""
    current_page = normalize_path(page_path) if page_path else None
    context_id = context or current_page or ""

    ctx = pipeline.run(RenderContext(
        stage_name=stage_for(preview),
        context_id=context_id,
        html=render(content, format),
    ))
    refs = await resolve_context_map(
        db, viewer, ctx.refs_context_map, cache.get_cache(context_id), projection,
        current_page=current_page, base_url=get_settings().base_url,
    )
    return {
        "html":    ctx.html,
        "format":  format,
        "context": context_id,
        "preview": preview,
        "refs":    refs,
    }


# -----------------------------------------------------------------------------
