"""Conversational onboarding: the chat contract that fills a profile or project draft.

Each turn sends the persona instruction, the repaired history and the newest
user content (optionally one attachment) and expects `{reply, updates}` back.
`updates` is a sparse patch merged field by field into the draft.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel

from app.config import settings
from app.errors import InvalidRequest, ModelInvocationError, ResponseParseError
from app.llm import ModelClient, ModelContent, invoke_with_timeout
from app.models import (
    Attachment,
    ChatMessage,
    ChatRole,
    DraftKind,
    ProfileDraft,
    ProjectDraft,
)
from app.normalizer import as_str_list, coerce_chat_reply, log_parse_failure, parse_model_json
from app.prompts import (
    ATTACHMENT_DEFAULT_TEXT,
    FILLER_USER_TURN,
    JSON_DIRECTIVE,
    PROFILE_SYSTEM_INSTRUCTION,
    PROJECT_SYSTEM_INSTRUCTION,
    canned,
)

logger = logging.getLogger(__name__)

Draft = TypeVar("Draft", ProfileDraft, ProjectDraft)

SYSTEM_INSTRUCTIONS = {
    DraftKind.PROFILE: PROFILE_SYSTEM_INSTRUCTION,
    DraftKind.PROJECT: PROJECT_SYSTEM_INSTRUCTION,
}

DRAFT_TYPES: dict[DraftKind, type[BaseModel]] = {
    DraftKind.PROFILE: ProfileDraft,
    DraftKind.PROJECT: ProjectDraft,
}


class ChatTurn(BaseModel):
    reply: str
    updates: dict = {}
    draft: ProfileDraft | ProjectDraft | None = None
    degraded: bool = False


# --- Drafts ---


def draft_fields(draft_cls: type[BaseModel]) -> dict[str, str]:
    """Map both wire names (oneLiner) and Python names (one_liner) to field names."""
    fields: dict[str, str] = {}
    for name, info in draft_cls.model_fields.items():
        fields[name] = name
        if info.alias:
            fields[info.alias] = name
    return fields


def new_draft(kind: DraftKind | str, seed: BaseModel | None = None) -> ProfileDraft | ProjectDraft:
    """Empty draft, optionally pre-filled from a published profile or project."""
    draft_cls = DRAFT_TYPES[DraftKind(kind)]
    if seed is None:
        return draft_cls()
    return draft_cls.model_validate(seed.model_dump(include=set(draft_cls.model_fields)))


def welcome_message(
    kind: DraftKind | str, name: str = "", locale: str | None = None
) -> ChatMessage:
    locale = locale or settings.locale
    if name:
        text = canned("welcome_back", locale).format(name=name)
    else:
        text = canned(f"welcome_{DraftKind(kind)}", locale)
    return ChatMessage(role=ChatRole.MODEL, text=text)


def _coerce_field(current: Any, value: Any) -> Any:
    if isinstance(current, list):
        return as_str_list(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def clean_updates(draft: BaseModel, updates: dict) -> dict[str, Any]:
    """Keep only known fields, coerced to the draft's types. Keys are Python names."""
    fields = draft_fields(type(draft))
    clean: dict[str, Any] = {}
    for key, value in updates.items():
        name = fields.get(key)
        if name is None or value is None:
            continue
        clean[name] = _coerce_field(getattr(draft, name), value)
    return clean


def merge_updates(draft: Draft, updates: dict) -> Draft:
    """Shallow merge: fields absent from `updates` keep their current value."""
    return draft.model_copy(update=clean_updates(draft, updates))


# --- History shaping ---


def shape_history(
    history: list[ChatMessage], new_text: str = ""
) -> tuple[list[ChatMessage], str]:
    """Repair stored history into strict user/model alternation.

    Returns the shaped history and the text of the new user turn. The shaped
    history starts with a user turn and ends with a model turn (or is empty):
    leading model turns are dropped, back-to-back model turns get a filler
    user turn between them, back-to-back user turns are merged, and a trailing
    unanswered user turn is folded into the new user text.
    """
    shaped: list[ChatMessage] = []
    for msg in history:
        if not msg.text.strip():
            continue
        if not shaped:
            if msg.role == ChatRole.MODEL:
                continue
            shaped.append(ChatMessage(role=ChatRole.USER, text=msg.text))
            continue

        prev = shaped[-1]
        if msg.role != prev.role:
            shaped.append(ChatMessage(role=msg.role, text=msg.text))
        elif msg.role == ChatRole.USER:
            shaped[-1] = ChatMessage(role=ChatRole.USER, text=f"{prev.text}\n\n{msg.text}")
        else:
            shaped.append(ChatMessage(role=ChatRole.USER, text=FILLER_USER_TURN))
            shaped.append(ChatMessage(role=ChatRole.MODEL, text=msg.text))

    if shaped and shaped[-1].role == ChatRole.USER:
        dangling = shaped.pop()
        new_text = f"{dangling.text}\n\n{new_text}" if new_text.strip() else dangling.text

    return shaped, new_text


# --- Turns ---


async def run_chat_turn(
    kind: DraftKind | str,
    messages: list[ChatMessage],
    client: ModelClient,
    *,
    attachment: Attachment | None = None,
    draft: ProfileDraft | ProjectDraft | None = None,
    locale: str | None = None,
) -> ChatTurn:
    """Run one onboarding turn. The last message is the new user turn.

    Model and parse failures come back as an apology reply with empty
    updates (`degraded=True`), never as an exception.
    """
    kind = DraftKind(kind)
    locale = locale or settings.locale
    if not messages or messages[-1].role != ChatRole.USER:
        raise InvalidRequest("The last message must be a user turn")

    history, text = shape_history(messages[:-1], messages[-1].text)
    if attachment is not None and not text.strip():
        text = ATTACHMENT_DEFAULT_TEXT

    system_instruction = f"{SYSTEM_INSTRUCTIONS[kind]}\n\n{JSON_DIRECTIVE}"
    logger.info(
        f"Onboarding chat ({kind}): {len(history)} history turns, attachment: {attachment is not None}"
    )

    try:
        raw = await invoke_with_timeout(
            client,
            system_instruction,
            history,
            ModelContent(text=text, attachment=attachment),
        )
    except ModelInvocationError as e:
        logger.warning(f"Onboarding chat ({kind}) model call failed: {e.message}")
        return ChatTurn(reply=canned("unavailable", locale), draft=draft, degraded=True)

    try:
        parsed = coerce_chat_reply(parse_model_json(raw, expected="object"))
    except ResponseParseError as e:
        log_parse_failure(f"Onboarding chat ({kind})", e)
        return ChatTurn(reply=canned("format_error", locale), draft=draft, degraded=True)

    target = draft if draft is not None else new_draft(kind)
    clean = clean_updates(target, parsed.updates)
    fields = type(target).model_fields
    return ChatTurn(
        reply=parsed.reply,
        updates={fields[name].alias or name: value for name, value in clean.items()},
        draft=target.model_copy(update=clean) if draft is not None else None,
    )
