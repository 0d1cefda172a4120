#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""Tests for viewer-filtered page queries."""
# -----------------------------------------------------------------------------

from __future__ import annotations

import pytest
from sqlalchemy import select

from wikirefs.core.errors import InvalidOption, MissingParameter
from wikirefs.models import (
    GRANT_OWNER, GRANT_RESTRICTED, STATUS_DELETED, Page,
)
from wikirefs.services.attachments import (
    build_attachment_query, build_page_query, compile_name_pattern,
)
from wikirefs.services.pages import (
    PageQueryBuilder, find_by_path_and_viewer, is_accessible_page_by_viewer,
    normalize_path,
)
from wikirefs.services.scope import path_scope
from wikirefs.services.users import resolve_identity_projection
from tests.conftest import make_attachment, make_page, make_user


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

async def _paths(db, builder: PageQueryBuilder) -> list[str]:
    ids = await builder.page_ids(db)
    if not ids:
        return []
    result = await db.execute(select(Page.path).where(Page.id.in_(ids)).order_by(Page.path))
    return list(result.scalars().all())


async def _tree(db):
    for path in ("/", "/docs", "/docs/a", "/docs/a/b", "/docs-old", "/other"):
        await make_page(db, path)


# ── Paths ─────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("/docs", "/docs"),
    ("/docs/", "/docs"),
    ("docs//a", "/docs/a"),
    ("/", "/"),
    ("", "/"),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


# ── Builder ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_descendants_include_prefix_but_not_siblings(db_session):
    await _tree(db_session)
    builder = PageQueryBuilder().descendants_of("/docs")
    assert await _paths(db_session, builder) == ["/docs", "/docs/a", "/docs/a/b"]


@pytest.mark.asyncio
async def test_descendants_of_root_is_everything(db_session):
    await _tree(db_session)
    assert len(await _paths(db_session, PageQueryBuilder().descendants_of("/"))) == 6


@pytest.mark.asyncio
async def test_depth_limits_subtree(db_session):
    await _tree(db_session)
    builder = PageQueryBuilder().descendants_of("/docs").limit_depth("/docs", "2")
    assert await _paths(db_session, builder) == ["/docs", "/docs/a"]


@pytest.mark.asyncio
async def test_trashed_and_redirect_pages_excluded(db_session):
    await make_page(db_session, "/docs")
    await make_page(db_session, "/docs/gone", status=STATUS_DELETED)
    await make_page(db_session, "/docs/moved", redirect_to="/elsewhere")
    builder = PageQueryBuilder().descendants_of("/docs").exclude_trashed().exclude_redirects()
    assert await _paths(db_session, builder) == ["/docs"]


@pytest.mark.asyncio
async def test_listing_visibility(db_session):
    alice = await make_user(db_session, "alice")
    bob = await make_user(db_session, "bob")
    await make_page(db_session, "/docs")
    await make_page(db_session, "/docs/link-only", grant=GRANT_RESTRICTED)
    await make_page(db_session, "/docs/alice", grant=GRANT_OWNER, creator=alice)

    def listed(viewer):
        return _paths(db_session, PageQueryBuilder().descendants_of("/docs")
                      .filter_by_viewer_visibility(viewer))

    assert await listed(None) == ["/docs"]
    assert await listed(bob) == ["/docs"]
    assert await listed(alice) == ["/docs", "/docs/alice"]


@pytest.mark.asyncio
async def test_build_page_query_single_page_mode_ignores_depth(db_session):
    await _tree(db_session)
    builder = build_page_query(None, page_path="/docs/a", depth="1")
    assert await _paths(db_session, builder) == ["/docs/a"]


def test_build_page_query_requires_a_scope():
    with pytest.raises(MissingParameter):
        build_page_query(None)


def test_build_page_query_rejects_bad_depth_before_io():
    with pytest.raises(InvalidOption):
        build_page_query(None, prefix="/docs", depth="0")


# ── Direct access ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_restricted_page_is_directly_accessible(db_session):
    page = await make_page(db_session, "/docs/link-only", grant=GRANT_RESTRICTED)
    assert (await find_by_path_and_viewer(db_session, "/docs/link-only", None)).id == page.id
    assert await is_accessible_page_by_viewer(db_session, page.id, None)


@pytest.mark.asyncio
async def test_owner_page_only_for_creator(db_session):
    alice = await make_user(db_session, "alice")
    bob = await make_user(db_session, "bob")
    page = await make_page(db_session, "/private", grant=GRANT_OWNER, creator=alice)
    assert await find_by_path_and_viewer(db_session, "/private", bob) is None
    assert await find_by_path_and_viewer(db_session, "/private", None) is None
    assert await find_by_path_and_viewer(db_session, "/private/", alice) is not None
    assert not await is_accessible_page_by_viewer(db_session, page.id, bob)
    assert await is_accessible_page_by_viewer(db_session, page.id, alice)


# ── Attachment query ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_attachment_query_for_scope_and_exact_path(db_session):
    docs = await make_page(db_session, "/docs")
    sub = await make_page(db_session, "/docs/a")
    deep = await make_page(db_session, "/docs/a/b")
    for page, name in ((docs, "top.png"), (sub, "a.png"), (deep, "b.png"), (sub, "a.txt")):
        await make_attachment(db_session, page, name)
    projection = resolve_identity_projection()

    query = build_attachment_query(path_scope("/docs", "2"), None, compile_name_pattern(r"\.png$"))
    atts = await query.run(db_session, projection)
    assert sorted(a.original_name for a in atts) == ["a.png", "top.png"]

    query = build_attachment_query("/docs/a", None)
    atts = await query.run(db_session, projection)
    assert sorted(a.original_name for a in atts) == ["a.png", "a.txt"]


@pytest.mark.asyncio
async def test_attachment_query_with_no_visible_pages(db_session):
    alice = await make_user(db_session, "alice")
    page = await make_page(db_session, "/private", grant=GRANT_OWNER, creator=alice)
    await make_attachment(db_session, page, "secret.png")
    query = build_attachment_query(path_scope("/private"), None)
    assert await query.run(db_session, resolve_identity_projection()) == []
