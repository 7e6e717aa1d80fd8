"""Resolve the caller from the session cookie.

The cookie is set by the login flow, which lives outside this service; here
it is only read and checked against the stored users.
"""

from __future__ import annotations

from fastapi import Depends, Request

from app.config import settings
from app.errors import Unauthorized
from app.models import User
from app.state import StateManager, get_state_manager


async def get_session(
    request: Request, store: StateManager = Depends(get_state_manager)
) -> User | None:
    user_id = request.cookies.get(settings.session_cookie)
    if not user_id:
        return None
    return await store.get_user(user_id)


async def require_session(user: User | None = Depends(get_session)) -> User:
    if user is None:
        raise Unauthorized("Unauthorized")
    return user
