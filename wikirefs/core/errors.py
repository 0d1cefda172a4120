#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Error kinds raised while resolving attachment refs.

Each kind is an ``HTTPException`` so services can raise it directly and the
API surfaces it as ``{"detail": "..."}`` with the matching status code.

  MissingParameter  400  required query parameter absent
  InvalidOption     400  malformed option (depth range, options JSON)
  InvalidPattern    400  regexp / regex option does not compile
  NotFound          404  page or attachment does not exist
  Forbidden         403  viewer may not see the attachment's page
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import HTTPException, status


# -----------------------------------------------------------------------------

class RefsError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail)

    @property
    def message(self) -> str:
        return str(self.detail)


# ── Caller errors (raised before any lookup) ─────────────────────────────────

class MissingParameter(RefsError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidOption(RefsError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPattern(RefsError):
    status_code = status.HTTP_400_BAD_REQUEST


# ── Lookup errors ────────────────────────────────────────────────────────────

class NotFound(RefsError):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(RefsError):
    status_code = status.HTTP_403_FORBIDDEN


# -----------------------------------------------------------------------------
