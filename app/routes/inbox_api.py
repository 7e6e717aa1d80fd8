"""Inbox routes: conversations started from a match."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.errors import InvalidRequest
from app.models import User, WireModel
from app.session import require_session
from app.state import StateManager, get_state_manager

router = APIRouter(prefix="/api")


class InboxPostRequest(WireModel):
    target_id: str | None = None
    target_type: str | None = None  # "project" or "user"
    content: str | None = None


@router.get("/inbox")
async def list_inbox(
    caller: User = Depends(require_session),
    store: StateManager = Depends(get_state_manager),
):
    sessions = await store.list_sessions(caller.id)
    return [
        {
            **session.model_dump(by_alias=True),
            "messages": [last.model_dump(by_alias=True)] if last else [],
        }
        for session, last in sessions
    ]


@router.post("/inbox")
async def send_message(
    request: InboxPostRequest,
    caller: User = Depends(require_session),
    store: StateManager = Depends(get_state_manager),
):
    if not request.target_id or not request.target_type or not request.content:
        raise InvalidRequest("Missing fields")

    session = await store.find_or_create_session(caller.id, request.target_id, request.target_type)
    message = await store.add_inbox_message(session, request.content)
    return {"success": True, "message": message.model_dump(by_alias=True)}
