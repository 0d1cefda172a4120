#!/usr/bin/env python
#
#
# ----------------------------------------------------------------------------
"""
Attachments router
==================
GET /api/v1/attachments/{att_id}/{filename}   direct URL used by resolved refs

Access is checked against the page the attachment belongs to.
"""
# ----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession


# ----------------------------------------------------------------------------

from wikirefs.core.config import get_settings
from wikirefs.core.database import get_db
from wikirefs.core.security import get_viewer
from wikirefs.services.attachments import get_attachment_for_viewer


# ----------------------------------------------------------------------------

router = APIRouter(tags=["attachments"])


# ── Direct attachment URL (by UUID) ──────────────────────────────────────────

@router.get("/attachments/{att_id}/{filename}")
async def serve_attachment(
    att_id: str,
    filename: str,
    viewer = Depends(get_viewer),
    db: AsyncSession = Depends(get_db),
):
    att = await get_attachment_for_viewer(db, att_id, filename, viewer)
    abs_path = get_settings().attachment_root_resolved / att.storage_path
    if not att.storage_path or not abs_path.is_file():
        raise HTTPException(status_code=404, detail="File not found on disk")
    return FileResponse(str(abs_path), media_type=att.content_type, filename=att.original_name)


# -----------------------------------------------------------------------------
