#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""Tests for the single-attachment endpoint GET /api/v1/ref."""
# -----------------------------------------------------------------------------

from __future__ import annotations

import pytest

from wikirefs.models import GRANT_OWNER, GRANT_RESTRICTED
from tests.conftest import bearer, make_attachment, make_page, make_user


URL = "/api/v1/ref"


# =============================================================================
# Success
# =============================================================================

@pytest.mark.asyncio
async def test_ref_by_original_name(client, db_session):
    author = await make_user(db_session, "author")
    page = await make_page(db_session, "/docs")
    att = await make_attachment(db_session, page, "image.png", creator=author)

    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"})
    assert resp.status_code == 200, resp.text
    data = resp.json()["attachment"]
    assert data["id"] == att.id
    assert data["page_id"] == page.id
    assert data["original_name"] == "image.png"
    assert data["url"].endswith(f"/api/v1/attachments/{att.id}/image.png")


@pytest.mark.asyncio
async def test_ref_by_id(client, db_session):
    page = await make_page(db_session, "/docs")
    att = await make_attachment(db_session, page, "report.pdf")
    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": att.id})
    assert resp.status_code == 200
    assert resp.json()["attachment"]["original_name"] == "report.pdf"


@pytest.mark.asyncio
async def test_ref_creator_is_public_projection(client, db_session):
    author = await make_user(db_session, "author", image_url="/avatars/author.png")
    page = await make_page(db_session, "/docs")
    await make_attachment(db_session, page, "image.png", creator=author)

    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"})
    creator = resp.json()["attachment"]["creator"]
    assert creator["username"] == "author"
    assert creator["display_name"] == "Author"
    assert creator["image_url"] == "/avatars/author.png"
    assert "email" not in creator
    assert "is_active" not in creator


@pytest.mark.asyncio
async def test_ref_options_are_accepted_and_ignored(client, db_session):
    page = await make_page(db_session, "/docs")
    await make_attachment(db_session, page, "image.png")
    resp = await client.get(URL, params={
        "pagePath": "/docs", "fileNameOrId": "image.png", "options": '{"width": "200"}',
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_ref_on_restricted_page(client, db_session):
    page = await make_page(db_session, "/docs", grant=GRANT_RESTRICTED)
    await make_attachment(db_session, page, "image.png")
    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"})
    assert resp.status_code == 200


# =============================================================================
# Errors
# =============================================================================

@pytest.mark.asyncio
async def test_ref_requires_page_path(client):
    resp = await client.get(URL, params={"fileNameOrId": "image.png"})
    assert resp.status_code == 400
    assert "pagePath" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_ref_requires_file_name_or_id(client, db_session):
    await make_page(db_session, "/docs")
    resp = await client.get(URL, params={"pagePath": "/docs"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_ref_rejects_malformed_options(client):
    resp = await client.get(URL, params={
        "pagePath": "/docs", "fileNameOrId": "a.png", "options": "{not json",
    })
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_ref_missing_page(client):
    resp = await client.get(URL, params={"pagePath": "/nope", "fileNameOrId": "image.png"})
    assert resp.status_code == 404
    assert "/nope" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_ref_missing_attachment_mentions_name(client, db_session):
    page = await make_page(db_session, "/docs")
    await make_attachment(db_session, page, "other.png")
    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"})
    assert resp.status_code == 404
    assert "image.png" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_ref_owner_page_hidden_from_others(client, db_session):
    alice = await make_user(db_session, "alice")
    bob = await make_user(db_session, "bob")
    page = await make_page(db_session, "/private", grant=GRANT_OWNER, creator=alice)
    await make_attachment(db_session, page, "secret.png")
    params = {"pagePath": "/private", "fileNameOrId": "secret.png"}

    assert (await client.get(URL, params=params, headers=bearer(bob))).status_code == 404
    assert (await client.get(URL, params=params)).status_code == 404
    assert (await client.get(URL, params=params, headers=bearer(alice))).status_code == 200


@pytest.mark.asyncio
async def test_ref_forbidden_when_attachment_page_is_not_accessible(client, db_session, monkeypatch):
    page = await make_page(db_session, "/docs")
    await make_attachment(db_session, page, "image.png")

    # The attachment is looked up on a page the viewer already passed, so with
    # consistent data this 403 only fires if the page grant changes between
    # the two queries.  Substituting the access check stands in for that.
    async def deny(db, page_id, viewer):
        return False

    monkeypatch.setattr("wikirefs.services.attachments.is_accessible_page_by_viewer", deny)
    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"})
    assert resp.status_code == 403
    assert page.id in resp.json()["detail"]


@pytest.mark.asyncio
async def test_ref_invalid_token_is_anonymous(client, db_session):
    page = await make_page(db_session, "/docs")
    await make_attachment(db_session, page, "image.png")
    resp = await client.get(URL, params={"pagePath": "/docs", "fileNameOrId": "image.png"},
                            headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 200
