#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Pytest fixtures for WikiRefs tests.
Uses an in-memory SQLite database so no external services are needed.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wikirefs.core.database import Base, get_db
from wikirefs.core.security import create_access_token
from wikirefs.main import create_app
from wikirefs.models import GRANT_PUBLIC, STATUS_PUBLISHED, Attachment, Page, User


# -----------------------------------------------------------------------------

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# -----------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session_factory(db_engine):
    """Shared sessionmaker: both client and db_session use this."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(db_session_factory):
    """Direct DB session for test setup (pages, attachments, users)."""
    async with db_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def app(db_session_factory):
    """Application wired to an isolated in-memory DB."""
    async def override_get_db():
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture(scope="function")
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# -----------------------------------------------------------------------------
# Helper functions for tests
# -----------------------------------------------------------------------------

async def make_user(db: AsyncSession, username: str = "testuser", **kw) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        display_name=kw.pop("display_name", username.title()),
        **kw,
    )
    db.add(user)
    await db.commit()
    return user


async def make_page(db: AsyncSession, path: str, *, grant: int = GRANT_PUBLIC,
                    creator: User | None = None, status: str = STATUS_PUBLISHED,
                    redirect_to: str | None = None) -> Page:
    page = Page(
        path=path,
        title=path.rsplit("/", 1)[-1] or "Root",
        grant=grant,
        status=status,
        redirect_to=redirect_to,
        creator_id=creator.id if creator else None,
    )
    db.add(page)
    await db.commit()
    return page


async def make_attachment(db: AsyncSession, page: Page, name: str,
                          creator: User | None = None, **kw) -> Attachment:
    att = Attachment(
        page_id=page.id,
        original_name=name,
        content_type=kw.pop("content_type", "image/png" if name.endswith(".png") else "application/octet-stream"),
        size_bytes=kw.pop("size_bytes", 123),
        storage_path=kw.pop("storage_path", f"{page.id}/{name}"),
        creator_id=creator.id if creator else None,
        **kw,
    )
    db.add(att)
    await db.commit()
    return att


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def names(attachments: list[dict]) -> list[str]:
    return sorted(a["original_name"] for a in attachments)


# -----------------------------------------------------------------------------
