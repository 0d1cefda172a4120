#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Refs router
===========
GET /api/v1/ref?pagePath=...&fileNameOrId=...&options={...}   one attachment
GET /api/v1/refs?prefix=...|pagePath=...&options={...}        attachment list

``options`` is a JSON object.  ``/refs`` reads ``regexp`` / ``regex``
(``/pattern/flags`` or a bare pattern), ``contains`` and ``depth`` (only
with ``prefix``).  ``/ref`` accepts options but does not use them.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wikirefs.core.config import get_settings
from wikirefs.core.database import get_db
from wikirefs.core.deps import get_identity_projection
from wikirefs.core.errors import InvalidOption
from wikirefs.core.security import get_viewer
from wikirefs.schemas import RefResponse, RefsResponse
from wikirefs.services.attachments import (
    attachment_dict, find_attachment_ref, find_attachment_refs,
)
from wikirefs.services.users import IdentityProjection


# -----------------------------------------------------------------------------

router = APIRouter(tags=["refs"])


# -----------------------------------------------------------------------------

def _parse_options(raw: Optional[str]) -> dict[str, Any]:
    if raw is None or not raw.strip():
        return {}
    try:
        options = json.loads(raw)
    except ValueError:
        raise InvalidOption(f"the param 'options' is not valid JSON: {raw}")
    if not isinstance(options, dict):
        raise InvalidOption("the param 'options' must be a JSON object.")
    return options


# ── Single attachment ─────────────────────────────────────────────────────────

@router.get("/ref", response_model=RefResponse)
async def get_ref(
    page_path:       Optional[str] = Query(None, alias="pagePath"),
    file_name_or_id: Optional[str] = Query(None, alias="fileNameOrId"),
    options:         Optional[str] = Query(None),
    viewer = Depends(get_viewer),
    projection: IdentityProjection = Depends(get_identity_projection),
    db: AsyncSession = Depends(get_db),
):
    _parse_options(options)
    att = await find_attachment_ref(db, viewer, page_path, file_name_or_id, projection)
    return {"attachment": attachment_dict(att, projection, get_settings().base_url)}


# ── Attachment list ───────────────────────────────────────────────────────────

@router.get("/refs", response_model=RefsResponse)
async def get_refs(
    prefix:    Optional[str] = Query(None),
    page_path: Optional[str] = Query(None, alias="pagePath"),
    options:   Optional[str] = Query(None),
    viewer = Depends(get_viewer),
    projection: IdentityProjection = Depends(get_identity_projection),
    db: AsyncSession = Depends(get_db),
):
    atts = await find_attachment_refs(
        db, viewer, projection,
        prefix=prefix, page_path=page_path, options=_parse_options(options),
    )
    base_url = get_settings().base_url
    return {"attachments": [attachment_dict(a, projection, base_url) for a in atts]}


# -----------------------------------------------------------------------------
