"""Onboarding assistant routes: chat turns, annotations and revisions."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from app.annotations import build_revision_message, create_annotation
from app.errors import InvalidRequest
from app.llm import ModelClient, get_model_client
from app.models import (
    Annotation,
    Attachment,
    ChatMessage,
    ChatRole,
    DraftKind,
    ProfileDraft,
    ProjectDraft,
    User,
    WireModel,
)
from app.onboarding import DRAFT_TYPES, ChatTurn, new_draft, run_chat_turn, welcome_message
from app.session import get_session
from app.state import StateManager, get_state_manager

router = APIRouter(prefix="/api")


# --- Request models ---


class ChatRequest(WireModel):
    kind: DraftKind = DraftKind.PROJECT
    messages: list[ChatMessage]
    attachment: Attachment | None = None
    draft: dict | None = None


class AnnotationRequest(WireModel):
    kind: DraftKind = DraftKind.PROJECT
    draft: dict = {}
    field: str
    selected_text: str
    comment: str = ""


class ReviseRequest(WireModel):
    kind: DraftKind = DraftKind.PROJECT
    messages: list[ChatMessage] = []
    draft: dict = {}
    annotations: list[Annotation] = []


def _load_draft(kind: DraftKind, data: dict) -> ProfileDraft | ProjectDraft:
    try:
        return DRAFT_TYPES[kind].model_validate(data)
    except ValidationError as e:
        raise InvalidRequest(f"Malformed {kind} draft: {e.error_count()} invalid fields")


def _turn_payload(turn: ChatTurn) -> dict:
    payload = {"reply": turn.reply, "updates": turn.updates, "degraded": turn.degraded}
    if turn.draft is not None:
        payload["draft"] = turn.draft.model_dump(by_alias=True)
    return payload


# --- Routes ---


@router.get("/onboarding/{kind}")
async def start_onboarding(
    kind: DraftKind,
    caller: User | None = Depends(get_session),
    store: StateManager = Depends(get_state_manager),
):
    """Fresh draft plus the assistant's greeting; talent drafts resume the published profile."""
    seed = None
    if kind == DraftKind.PROFILE and caller is not None:
        seed = await store.get_profile(caller.id)

    draft = new_draft(kind, seed)
    if isinstance(draft, ProfileDraft) and caller is not None:
        draft = draft.model_copy(
            update={
                "name": draft.name or caller.name,
                "avatar": draft.avatar or caller.avatar,
                "bio": draft.bio or caller.bio,
            }
        )

    greeting = welcome_message(kind, name=draft.name if seed else "")
    return {
        "draft": draft.model_dump(by_alias=True),
        "messages": [greeting.model_dump(by_alias=True)],
    }


@router.post("/ai/chat")
async def chat(
    request: ChatRequest,
    client: ModelClient = Depends(get_model_client),
):
    draft = _load_draft(request.kind, request.draft) if request.draft is not None else None
    turn = await run_chat_turn(
        request.kind,
        request.messages,
        client,
        attachment=request.attachment,
        draft=draft,
    )
    return _turn_payload(turn)


@router.post("/ai/annotations")
async def annotate(request: AnnotationRequest):
    draft = _load_draft(request.kind, request.draft)
    annotation = create_annotation(draft, request.field, request.selected_text, request.comment)
    return {"ok": True, "annotation": annotation.model_dump(by_alias=True)}


@router.post("/ai/revise")
async def revise(
    request: ReviseRequest,
    client: ModelClient = Depends(get_model_client),
):
    draft = _load_draft(request.kind, request.draft)
    feedback = build_revision_message(request.annotations, draft)
    messages = [*request.messages, ChatMessage(role=ChatRole.USER, text=feedback)]

    turn = await run_chat_turn(request.kind, messages, client, draft=draft)
    return {"message": feedback, **_turn_payload(turn)}
