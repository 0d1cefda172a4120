#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
User service: viewer lookup and the public projection of a creator.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wikirefs.models import User

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

USER_PUBLIC_FIELDS: tuple[str, ...] = ("id", "username", "display_name", "created_at")
USER_IMAGE_FIELD = "image_url"


# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class IdentityProjection:
    """Which user columns may be exposed next to an attachment.

    ``image_field`` is ``None`` for identity stores whose records predate
    avatars; that is a normal configuration, not an error.
    """
    fields: tuple[str, ...]
    image_field: Optional[str] = None

    @property
    def columns(self) -> tuple[str, ...]:
        return self.fields + ((self.image_field,) if self.image_field else ())

    def load_creator(self, relationship):
        """Loader option populating *relationship* with the public columns only."""
        return selectinload(relationship).load_only(
            *(getattr(User, name) for name in self.columns)
        )


def resolve_identity_projection(model=User) -> IdentityProjection:
    """Inspect the identity model once (at startup) for an image column."""
    columns = inspect(model).columns
    image_field = USER_IMAGE_FIELD if USER_IMAGE_FIELD in columns else None
    if image_field is None:
        log.info("identity store has no '%s' column; creators are listed without images",
                 USER_IMAGE_FIELD)
    return IdentityProjection(fields=USER_PUBLIC_FIELDS, image_field=image_field)


# -----------------------------------------------------------------------------

async def find_active_user(db: AsyncSession, user_id: str) -> Optional[User]:
    """Return the active user with *user_id*; unknown or disabled users are anonymous."""
    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    return result.scalar_one_or_none()


# -----------------------------------------------------------------------------
