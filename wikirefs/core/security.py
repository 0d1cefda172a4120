#!/usr/bin/env python
#
#
# ----------------------------------------------------------------------------
"""
Security utilities
==================
- JWT access token creation/verification
- FastAPI dependencies resolving the viewer a request is evaluated for

Issuing tokens (login, registration) belongs to the host wiki; this package
only reads them.  A request without a usable token is served to the
anonymous viewer.
"""
# ----------------------------------------------------------------------------

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession


# -----------------------------------------------------------------------------

from .config import get_settings
from .database import get_db

log = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
# JWT tokens
# ----------------------------------------------------------------------------

_oauth2_optional = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# ----------------------------------------------------------------------------

def create_access_token(subject: str | int, extra: dict | None = None) -> str:
    s = get_settings()
    expire = datetime.now(tz=timezone.utc) + timedelta(minutes=s.access_token_expire_minutes)
    payload: dict[str, Any] = {
        "sub": str(subject),
        "exp": expire,
        "type": "access",
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, s.secret_key, algorithm=s.algorithm)


# ----------------------------------------------------------------------------

def decode_token(token: str) -> dict[str, Any]:
    s = get_settings()
    try:
        payload = jwt.decode(token, s.secret_key, algorithms=[s.algorithm])
        if payload.get("sub") is None:
            raise _credentials_error()
        return payload
    except JWTError:
        raise _credentials_error()


# -----------------------------------------------------------------------------

def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# ----------------------------------------------------------------------------
# FastAPI dependencies: Bearer token or cookie, both optional
# ----------------------------------------------------------------------------

async def get_optional_user_id(
    request: Request,
    token: str | None = Depends(_oauth2_optional),
) -> str | None:
    """Return the user id from a Bearer token or ``access_token`` cookie."""
    for candidate in (token, request.cookies.get("access_token")):
        if not candidate:
            continue
        try:
            payload = decode_token(candidate)
        except HTTPException:
            log.debug("ignoring unusable access token")
            continue
        if payload.get("type") == "access":
            return payload["sub"]
    return None


# ----------------------------------------------------------------------------

async def get_viewer(
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Resolve the viewer (a ``User`` or ``None`` for anonymous)."""
    if user_id is None:
        return None
    from wikirefs.services.users import find_active_user
    return await find_active_user(db, user_id)


# ----------------------------------------------------------------------------
