#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Attachment service: viewer-filtered attachment lookups for refs.

``find_attachment_ref``   one attachment of one page   ($ref / $refimg)
``find_attachment_refs``  attachments of a page set    ($refs / $refsimg)
``build_attachment_query`` the same lookup for a PathScope or an exact path

The multi lookup resolves the visible page set to identifiers first and
then queries attachments by ``page_id IN (...)``.  Caller errors (missing
parameter, bad regex, bad depth) are raised before any query runs.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wikirefs.core.errors import Forbidden, InvalidPattern, MissingParameter, NotFound
from wikirefs.models import Attachment, User
from .pages import (
    PageQueryBuilder, find_by_path_and_viewer, is_accessible_page_by_viewer,
)
from .scope import PathScope, path_scope
from .users import IdentityProjection

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Name patterns
# -----------------------------------------------------------------------------

# /pattern/flags form, e.g. /\.png$/i
_DELIMITED_RE = re.compile(r"^/(.+)/(.*)?$", re.DOTALL)

# Flag letters as written in wiki markup -> Python inline flags
_FLAG_MAP = {"i": "i", "m": "m", "s": "s", "u": "", "g": ""}


@dataclass(frozen=True)
class NamePattern:
    """Filter over attachment original names: a regex or a literal substring."""
    source: str
    regex: Optional[re.Pattern[str]] = None

    @property
    def is_regex(self) -> bool:
        return self.regex is not None

    def condition(self):
        if not self.is_regex:
            return Attachment.original_name.contains(self.source, autoescape=True)
        return Attachment.original_name.regexp_match(self.regex.pattern)


def compile_name_pattern(expression: Any, option: str = "regex") -> NamePattern:
    """Compile a ``regexp=`` / ``regex=`` option value."""
    if not isinstance(expression, str) or not expression:
        raise InvalidPattern(f"the '{option}={expression}' option is invalid as RegExp.")

    m = _DELIMITED_RE.match(expression)
    body, flags = (m.group(1), m.group(2) or "") if m else (expression, "")

    inline = ""
    for flag in flags:
        if flag not in _FLAG_MAP:
            raise InvalidPattern(
                f"the '{option}={expression}' option is invalid as RegExp: unknown flag '{flag}'"
            )
        if _FLAG_MAP[flag] and _FLAG_MAP[flag] not in inline:
            inline += _FLAG_MAP[flag]

    pattern = f"(?{inline}){body}" if inline else body
    try:
        return NamePattern(source=expression, regex=re.compile(pattern))
    except re.error as exc:
        raise InvalidPattern(f"the '{option}={expression}' option is invalid as RegExp: {exc}")


def literal_name_pattern(text: str) -> NamePattern:
    return NamePattern(source=text)


def name_pattern_from_options(options: Mapping[str, Any]) -> Optional[NamePattern]:
    """
    ``regexp`` wins over ``regex``; ``contains`` is a plain substring.

    An empty value counts as absent, so ``regexp=""`` falls through to
    ``regex``.  A bare flag (``regexp`` with no value) is still rejected.
    """
    for key in ("regexp", "regex"):
        if options.get(key) not in (None, ""):
            return compile_name_pattern(options[key], option=key)
    contains = options.get("contains")
    if contains is not None and contains is not True and contains != "":
        return literal_name_pattern(str(contains))
    return None


# -----------------------------------------------------------------------------
# Serialisation
# -----------------------------------------------------------------------------

def attachment_url(att: Attachment, base_url: str = "") -> str:
    return f"{base_url}/api/v1/attachments/{att.id}/{att.original_name}"


def attachment_dict(att: Attachment, projection: IdentityProjection, base_url: str = "") -> dict:
    creator = None
    if att.creator is not None:
        creator = {name: getattr(att.creator, name) for name in projection.columns}
    return {
        "id":            att.id,
        "page_id":       att.page_id,
        "original_name": att.original_name,
        "content_type":  att.content_type,
        "size_bytes":    att.size_bytes,
        "created_at":    att.created_at,
        "url":           attachment_url(att, base_url),
        "creator":       creator,
    }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Lookups
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def find_attachment_ref(
    db: AsyncSession,
    viewer: Optional[User],
    page_path: Optional[str],
    file_name_or_id: Optional[str],
    projection: IdentityProjection,
) -> Attachment:
    """Return the attachment named (or identified by) *file_name_or_id* on *page_path*."""
    if not page_path:
        raise MissingParameter("the param 'pagePath' must be set.")
    if not file_name_or_id:
        raise MissingParameter("the param 'fileNameOrId' must be set.")

    page = await find_by_path_and_viewer(db, page_path, viewer)
    if page is None:
        raise NotFound(f"pagePath: '{page_path}' is not found or forbidden.")

    result = await db.execute(
        select(Attachment)
        .where(
            Attachment.page_id == page.id,
            or_(Attachment.id == file_name_or_id, Attachment.original_name == file_name_or_id),
        )
        .options(projection.load_creator(Attachment.creator))
        .order_by(Attachment.created_at.desc(), Attachment.id)
        .limit(1)
    )
    att = result.scalar_one_or_none()
    if att is None:
        raise NotFound(f"attachment '{file_name_or_id}' is not found.")

    log.debug("attachment '%s' is found from fileNameOrId '%s'", att.id, file_name_or_id)

    # Checked against the attachment's own page, not the one looked up above
    if not await is_accessible_page_by_viewer(db, att.page_id, viewer):
        log.debug("attachment '%s' is forbidden for user '%s'",
                  att.id, viewer.username if viewer else None)
        raise Forbidden(f"page '{att.page_id}' is forbidden.")

    return att


# -----------------------------------------------------------------------------

def build_page_query(
    viewer: Optional[User],
    *,
    prefix: Optional[str] = None,
    page_path: Optional[str] = None,
    depth: Any = None,
) -> PageQueryBuilder:
    """Compose the visible page set for a multi lookup (no I/O)."""
    return _page_query(_scope(prefix, page_path, depth), viewer)


def _scope(prefix: Optional[str], page_path: Optional[str], depth: Any) -> Union[PathScope, str]:
    if prefix is None and page_path is None:
        raise MissingParameter("either the param 'prefix' or 'pagePath' must be set.")
    return path_scope(prefix, depth) if prefix is not None else page_path


def _page_query(scope: Union[PathScope, str], viewer: Optional[User]) -> PageQueryBuilder:
    if isinstance(scope, PathScope):
        builder = (
            PageQueryBuilder()
            .descendants_of(scope.prefix)
            .exclude_trashed()
            .exclude_redirects()
        )
        if scope.depth_range is not None:
            builder.limit_depth(scope.prefix, scope.depth_range)
    else:
        builder = PageQueryBuilder().with_path(scope)
    return builder.filter_by_viewer_visibility(viewer)


# -----------------------------------------------------------------------------

@dataclass
class AttachmentQuery:
    """Attachments of a viewer-filtered page set, optionally name-filtered."""
    pages: PageQueryBuilder
    name_pattern: Optional[NamePattern] = None

    async def run(self, db: AsyncSession, projection: IdentityProjection) -> list[Attachment]:
        page_ids = await self.pages.page_ids(db)
        log.debug("retrieve attachments for pages: %s", page_ids)
        if not page_ids:
            return []

        query = (
            select(Attachment)
            .where(Attachment.page_id.in_(page_ids))
            .options(projection.load_creator(Attachment.creator))
            .order_by(Attachment.created_at, Attachment.id)
        )
        if self.name_pattern is not None:
            query = query.where(self.name_pattern.condition())

        result = await db.execute(query)
        return list(result.scalars().all())


def build_attachment_query(
    scope: Union[PathScope, str],
    viewer: Optional[User],
    name_pattern: Optional[NamePattern] = None,
) -> AttachmentQuery:
    """A :class:`PathScope` selects a subtree; a plain path selects one page."""
    return AttachmentQuery(_page_query(scope, viewer), name_pattern)


async def find_attachment_refs(
    db: AsyncSession,
    viewer: Optional[User],
    projection: IdentityProjection,
    *,
    prefix: Optional[str] = None,
    page_path: Optional[str] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> list[Attachment]:
    """Attachments of every page under *prefix* (or of *page_path*) the viewer may list."""
    options = options or {}

    name_pattern = name_pattern_from_options(options)
    scope = _scope(prefix, page_path, options.get("depth"))
    return await build_attachment_query(scope, viewer, name_pattern).run(db, projection)


# -----------------------------------------------------------------------------

async def get_attachment_for_viewer(
    db: AsyncSession,
    att_id: str,
    filename: str,
    viewer: Optional[User],
) -> Attachment:
    """Attachment by id and name, checked against its page's access rules."""
    result = await db.execute(
        select(Attachment).where(Attachment.id == att_id, Attachment.original_name == filename)
    )
    att = result.scalar_one_or_none()
    if att is None:
        raise NotFound(f"attachment '{filename}' is not found.")
    if not await is_accessible_page_by_viewer(db, att.page_id, viewer):
        raise Forbidden(f"page '{att.page_id}' is forbidden.")
    return att


# -----------------------------------------------------------------------------
