"""Match API routes: run a scoring batch for a pivot, or read back the ranking."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.llm import ModelClient, get_model_client
from app.matching import get_ranked_matches, run_matches
from app.models import User, WireModel
from app.session import get_session
from app.state import StateManager, get_state_manager

router = APIRouter(prefix="/api")


class MatchRequest(WireModel):
    type: str | None = None  # "project" or "profile"
    id: str | None = None  # entity id, or "current" for the caller's profile


@router.post("/match")
async def compute_matches(
    request: MatchRequest,
    caller: User | None = Depends(get_session),
    store: StateManager = Depends(get_state_manager),
    client: ModelClient = Depends(get_model_client),
):
    matches = await run_matches(request.type, request.id, caller, store, client)
    return {"success": True, "matches": [m.model_dump(by_alias=True) for m in matches]}


@router.get("/match")
async def list_matches(
    type: str | None = None,
    id: str | None = None,
    caller: User | None = Depends(get_session),
    store: StateManager = Depends(get_state_manager),
):
    matches = await get_ranked_matches(type, id, caller, store)
    return {"success": True, "matches": [m.model_dump(by_alias=True) for m in matches]}
