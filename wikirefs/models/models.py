#!/usr/bin/env python
#
#
# ----------------------------------------------------------------------------
"""
ORM Models for WikiRefs
========================

Tables
------
users       : identities that create pages and upload attachments
pages       : wiki pages addressed by a hierarchical path ("/docs/a/b")
attachments : files uploaded to a page

Pages and attachments are owned by the host wiki; refs resolution only
reads them.  All primary keys are UUIDs.  Timestamps stored in UTC.
"""
# ----------------------------------------------------------------------------

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, DateTime, ForeignKey, Integer, String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wikirefs.core.database import Base


# ----------------------------------------------------------------------------

def _uuid_col(primary_key=False, nullable=False, **kw):
    """UUID column stored as String(36): works for both SQLite and PostgreSQL."""
    return mapped_column(
        String(36),
        primary_key=primary_key,
        nullable=nullable,
        default=lambda: str(uuid.uuid4()),
        **kw,
    )


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class User(Base):
    __tablename__ = "users"

    id:           Mapped[str]        = _uuid_col(primary_key=True)
    username:     Mapped[str]        = mapped_column(String(64),  unique=True, nullable=False, index=True)
    email:        Mapped[str]        = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[str]        = mapped_column(String(128), nullable=False, default="")
    # Older identity records have no avatar; see services.users.IdentityProjection
    image_url:    Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_active:    Mapped[bool]       = mapped_column(Boolean, default=True, nullable=False)
    created_at:   Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=_utcnow)

    pages:       Mapped[list["Page"]]       = relationship(back_populates="creator")
    attachments: Mapped[list["Attachment"]] = relationship(back_populates="creator")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# pages
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

GRANT_PUBLIC     = 1   # listed and readable by everyone
GRANT_RESTRICTED = 2   # readable by anyone holding the link, never listed
GRANT_OWNER      = 4   # creator only

STATUS_PUBLISHED = "published"
STATUS_DELETED   = "deleted"    # moved to the trash


class Page(Base):
    __tablename__ = "pages"

    id:          Mapped[str]        = _uuid_col(primary_key=True)
    path:        Mapped[str]        = mapped_column(String(1024), unique=True, nullable=False, index=True)
    title:       Mapped[str]        = mapped_column(String(512), nullable=False, default="")
    grant:       Mapped[int]        = mapped_column(Integer, nullable=False, default=GRANT_PUBLIC)
    status:      Mapped[str]        = mapped_column(String(16), nullable=False, default=STATUS_PUBLISHED)
    # Set on redirect stubs left behind by a page move
    redirect_to: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    creator_id:  Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at:  Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=_utcnow)

    creator:     Mapped["User | None"]      = relationship(back_populates="pages")
    attachments: Mapped[list["Attachment"]] = relationship(back_populates="page", cascade="all, delete-orphan")

    @property
    def is_trashed(self) -> bool:
        return self.status == STATUS_DELETED


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# attachments
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Attachment(Base):
    __tablename__ = "attachments"

    id:            Mapped[str]        = _uuid_col(primary_key=True)
    page_id:       Mapped[str]        = mapped_column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    original_name: Mapped[str]        = mapped_column(String(255), nullable=False, index=True)
    content_type:  Mapped[str]        = mapped_column(String(128), default="application/octet-stream", nullable=False)
    size_bytes:    Mapped[int]        = mapped_column(BigInteger, default=0, nullable=False)
    storage_path:  Mapped[str]        = mapped_column(String(512), nullable=False, default="")
    creator_id:    Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at:    Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=_utcnow)

    page:    Mapped["Page"]        = relationship(back_populates="attachments")
    creator: Mapped["User | None"] = relationship(back_populates="attachments")
