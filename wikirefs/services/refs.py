#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Refs resolution
===============
Turns the context map produced by the tag scanner into attachment lists,
one per placeholder, memoising each result in the render state cache.

Tag arguments
-------------
$ref(file.png)                   attachment of the page being rendered
$ref(/docs/file.png)             attachment of /docs
$ref(/docs, file.png)            same, page and file given separately
$ref(page=/docs, file=<id>)      keyword form; ``id=`` is accepted too
$refs(/docs, depth=2, regexp=/\\.png$/)
$refs(prefix=/docs, contains=report)
$refs(page=/docs)                one page only
$refs()                          attachments of the page being rendered

``refimg`` / ``refsimg`` take the same arguments.  A failing tag records
its status and message; the rest of the render is unaffected.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import posixpath
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wikirefs.core.errors import MissingParameter, RefsError
from wikirefs.models import User
from .attachments import attachment_dict, find_attachment_ref, find_attachment_refs
from .state_cache import StateCacheHandle
from .tags import PlaceholderEntry, TagContextMap, TagMatch
from .users import IdentityProjection

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def ref_target(match: TagMatch, current_page: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """(page path, file name or id) addressed by a ``$ref`` tag."""
    page = _text(match.option("page"))
    file = _text(match.option("file", "id"))
    positional = match.positional

    if page is None and file is None and len(positional) == 1:
        only = positional[0]
        if "/" in only:
            head, tail = posixpath.split(only)
            return head or "/", tail or None
        return current_page, only

    rest = list(positional)
    if page is None and rest and (file is not None or len(rest) > 1):
        page = rest.pop(0)
    if file is None and rest:
        file = rest.pop(0)
    return page or current_page, file


def refs_target(match: TagMatch, current_page: Optional[str]) -> dict[str, Optional[str]]:
    """``prefix`` or ``page_path`` addressed by a ``$refs`` tag."""
    prefix = _text(match.option("prefix"))
    page = _text(match.option("page"))
    positional = match.positional
    if prefix is None and page is None:
        if positional:
            prefix = positional[0]
        else:
            page = current_page
    return {"prefix": prefix, "page_path": page if prefix is None else None}


def tag_options(match: TagMatch) -> dict[str, Any]:
    return {key: value for key, value in match.args if key is not None}


# -----------------------------------------------------------------------------

async def resolve_entry(
    db: AsyncSession,
    viewer: Optional[User],
    entry: PlaceholderEntry,
    projection: IdentityProjection,
    current_page: Optional[str] = None,
    base_url: str = "",
) -> dict:
    match = entry.match
    try:
        if match.is_multiple:
            target = refs_target(match, current_page)
            if target["prefix"] is None and target["page_path"] is None:
                raise MissingParameter("either the param 'prefix' or 'pagePath' must be set.")
            atts = await find_attachment_refs(
                db, viewer, projection, options=tag_options(match), **target,
            )
        else:
            page_path, file_name_or_id = ref_target(match, current_page)
            atts = [await find_attachment_ref(db, viewer, page_path, file_name_or_id, projection)]
    except RefsError as exc:
        log.debug("$%s(%s) failed: %s", match.alias, match.raw_args, exc.message)
        return {"status": exc.status_code, "message": exc.message, "attachments": []}

    return {
        "status": 200,
        "message": "",
        "attachments": [attachment_dict(a, projection, base_url) for a in atts],
    }


# -----------------------------------------------------------------------------

async def resolve_context_map(
    db: AsyncSession,
    viewer: Optional[User],
    context_map: TagContextMap,
    cache: StateCacheHandle,
    projection: IdentityProjection,
    current_page: Optional[str] = None,
    base_url: str = "",
) -> dict[str, dict]:
    """Resolve every placeholder, reusing results cached for the same tag."""
    viewer_id = viewer.id if viewer is not None else None
    resolved: dict[str, dict] = {}
    hits = 0
    generation = cache.generation

    for placeholder_id, entry in context_map.items():
        key = ("refs", viewer_id, current_page) + entry.match.signature
        result = cache.get(key)
        if result is None:
            result = await resolve_entry(
                db, viewer, entry, projection, current_page=current_page, base_url=base_url,
            )
            if not cache.set(key, result, generation):
                log.debug("context '%s' was cleared mid-render, not caching %s",
                          cache.context_id, placeholder_id)
        else:
            hits += 1
        resolved[placeholder_id] = {**entry.match.to_dict(), **result}

    log.debug("resolved %d refs tag(s) for context '%s' (%d cached)",
              len(resolved), cache.context_id, hits)
    return resolved


# -----------------------------------------------------------------------------
