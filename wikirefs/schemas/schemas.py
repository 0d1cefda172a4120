#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Pydantic v2 schemas for response serialisation.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Attachments
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class CreatorResponse(BaseModel):
    """Public projection of the user who uploaded an attachment."""
    id: str
    username: str
    display_name: str
    created_at: Optional[datetime] = None
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


# -----------------------------------------------------------------------------

class AttachmentResponse(BaseModel):
    id: str
    page_id: str
    original_name: str
    content_type: str
    size_bytes: int
    created_at: datetime
    url: str
    creator: Optional[CreatorResponse] = None


# -----------------------------------------------------------------------------

class RefResponse(BaseModel):
    attachment: AttachmentResponse


class RefsResponse(BaseModel):
    attachments: list[AttachmentResponse]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Render
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ResolvedTag(BaseModel):
    alias: str
    raw_tag: str
    args: list[list[Any]]
    position: int = Field(description="Character (not byte) offset of the tag's '$' in the content")
    status: int
    message: str = ""
    attachments: list[AttachmentResponse] = Field(default_factory=list)


# -----------------------------------------------------------------------------

class RenderResponse(BaseModel):
    html: str
    format: str
    context: str
    preview: bool
    refs: dict[str, ResolvedTag] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
