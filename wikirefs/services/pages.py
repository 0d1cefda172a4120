#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Page service
============
Read-only access to the page tree on behalf of a viewer.

Two visibility rules apply:

* **listing** (subtree / multi-attachment queries): public pages, plus
  owner-only pages the viewer created.  Restricted pages are never listed.
* **direct access** (a single known page): additionally restricted pages,
  which anyone holding the link may read.

``PageQueryBuilder`` composes the listing predicates onto a SQLAlchemy
``Select`` so the caller decides which ones apply.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import posixpath
from typing import Optional

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wikirefs.models import (
    GRANT_OWNER, GRANT_PUBLIC, GRANT_RESTRICTED,
    STATUS_DELETED, Page, User,
)
from .scope import DepthRange, DepthSpec, depth_range_predicate, resolve_depth_predicate

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """'docs//a/' -> '/docs/a'; the root stays '/'."""
    path = "/" + path.strip().strip("/")
    return posixpath.normpath(path) if path != "/" else path


def _viewer_id(viewer: Optional[User]) -> Optional[str]:
    return viewer.id if viewer is not None else None


def _listable_by(viewer: Optional[User]):
    conds = [Page.grant == GRANT_PUBLIC]
    if viewer is not None:
        conds.append(and_(Page.grant == GRANT_OWNER, Page.creator_id == viewer.id))
    return or_(*conds)


def _accessible_by(viewer: Optional[User]):
    conds = [Page.grant.in_((GRANT_PUBLIC, GRANT_RESTRICTED))]
    if viewer is not None:
        conds.append(and_(Page.grant == GRANT_OWNER, Page.creator_id == viewer.id))
    return or_(*conds)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Query builder
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class PageQueryBuilder:
    """Fluent composition of page predicates.  Every method returns ``self``."""

    def __init__(self, query: Optional[Select] = None) -> None:
        self.query: Select = query if query is not None else select(Page)

    def with_path(self, path: str) -> "PageQueryBuilder":
        self.query = self.query.where(Page.path == normalize_path(path))
        return self

    def descendants_of(self, prefix: str) -> "PageQueryBuilder":
        """The page at *prefix* and everything below it."""
        prefix = normalize_path(prefix)
        if prefix == "/":
            self.query = self.query.where(Page.path.startswith("/"))
        else:
            self.query = self.query.where(or_(
                Page.path == prefix,
                Page.path.startswith(prefix + "/", autoescape=True),
            ))
        return self

    def exclude_trashed(self) -> "PageQueryBuilder":
        self.query = self.query.where(Page.status != STATUS_DELETED)
        return self

    def exclude_redirects(self) -> "PageQueryBuilder":
        self.query = self.query.where(Page.redirect_to.is_(None))
        return self

    def filter_by_viewer_visibility(self, viewer: Optional[User]) -> "PageQueryBuilder":
        self.query = self.query.where(_listable_by(viewer))
        return self

    def limit_depth(self, prefix: str, depth: DepthRange | DepthSpec) -> "PageQueryBuilder":
        """Keep pages within *depth* levels of *prefix* (1 = prefix itself)."""
        prefix = normalize_path(prefix)
        if isinstance(depth, DepthRange):
            pattern = depth_range_predicate(prefix, depth)
        else:
            pattern = resolve_depth_predicate(prefix, depth)
        self.query = self.query.where(Page.path.regexp_match(pattern))
        return self

    async def page_ids(self, db: AsyncSession) -> list[str]:
        """Resolve the composed query to page identifiers only."""
        stmt = self.query.with_only_columns(Page.id).order_by(Page.path)
        result = await db.execute(stmt)
        return list(result.scalars().all())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Lookups
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def find_by_path_and_viewer(
    db: AsyncSession,
    path: str,
    viewer: Optional[User],
) -> Optional[Page]:
    """Return the page at *path* if *viewer* may open it, else ``None``."""
    result = await db.execute(
        select(Page).where(Page.path == normalize_path(path), _accessible_by(viewer))
    )
    return result.scalar_one_or_none()


# -----------------------------------------------------------------------------

async def is_accessible_page_by_viewer(
    db: AsyncSession,
    page_id: str,
    viewer: Optional[User],
) -> bool:
    result = await db.execute(
        select(Page.id).where(Page.id == page_id, _accessible_by(viewer))
    )
    accessible = result.scalar_one_or_none() is not None
    if not accessible:
        log.debug("page '%s' is not accessible for viewer '%s'", page_id, _viewer_id(viewer))
    return accessible


# -----------------------------------------------------------------------------

async def ensure_root_page(db: AsyncSession) -> Page:
    """Create the public root page '/' if the tree is empty."""
    result = await db.execute(select(Page).where(Page.path == "/"))
    page = result.scalar_one_or_none()
    if page is None:
        page = Page(path="/", title="Root", grant=GRANT_PUBLIC)
        db.add(page)
        await db.flush()
    return page


# -----------------------------------------------------------------------------
