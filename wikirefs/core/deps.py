#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
FastAPI dependencies for the objects ``create_app`` builds once per
application: the render state cache, the render pipeline, and the identity
projection.  Nothing here is a module global, so each app (and each test
client) owns its own instances.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import Request

from wikirefs.services.pipeline import RenderPipeline
from wikirefs.services.state_cache import RenderStateCache
from wikirefs.services.users import IdentityProjection


# -----------------------------------------------------------------------------

def get_render_cache(request: Request) -> RenderStateCache:
    return request.app.state.render_cache


def get_render_pipeline(request: Request) -> RenderPipeline:
    return request.app.state.render_pipeline


def get_identity_projection(request: Request) -> IdentityProjection:
    return request.app.state.identity_projection


# -----------------------------------------------------------------------------
