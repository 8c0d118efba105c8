"""
Shared API dependencies/state.

Identity comes from the X-User-Id header; the session registry is one
process-wide instance so every router sees the same active sessions.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header

from storereports.core.errors import AuthorizationError
from storereports.db.session import get_db  # noqa: F401  re-exported for routers
from storereports.services.storage import InMemorySessionStore

SESSIONS = InMemorySessionStore()


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    user_id = current_user_id(x_user_id)
    if user_id is None:
        raise AuthorizationError("Send the acting user id in the X-User-Id header.")
    return user_id
