from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in model output."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DraftKind(StrEnum):
    PROFILE = "profile"
    PROJECT = "project"


class MatchDirection(StrEnum):
    TALENT_TO_PROJECT = "talent_to_project"
    PROJECT_TO_TALENT = "project_to_talent"


class MatchStatus(StrEnum):
    CALCULATED = "calculated"
    FAILED = "failed"


class ChatRole(StrEnum):
    USER = "user"
    MODEL = "model"


class User(WireModel):
    id: str
    name: str = ""
    avatar: str = ""
    bio: str = ""


# --- Drafts: every field independently empty until the assistant fills it ---


class ProjectDraft(WireModel):
    name: str = ""
    one_liner: str = ""
    sector: str = ""
    location: str = ""
    stage: str = ""
    vision: str = ""
    problem: str = ""
    solution: str = ""
    talent_needs: list[str] = []
    product_highlights: str = ""
    target_audience: str = ""
    business_model: str = ""
    differentiation: str = ""
    market_size: str = ""
    team_members: str = ""
    why_now: str = ""
    long_term_moat: str = ""
    roadmap_finance: str = ""
    others: str = ""


class ProfileDraft(WireModel):
    name: str = ""
    title: str = ""
    location: str = ""
    bio: str = ""
    skills: list[str] = []
    experience_highlights: str = ""
    education: str = ""
    looking_for: str = ""
    superpower: str = ""
    others: str = ""
    avatar: str = ""


class Project(ProjectDraft):
    id: str
    owner_id: str
    published: bool = True
    created_at: str = ""


class Profile(ProfileDraft):
    user_id: str
    created_at: str = ""


# --- Matching ---


class MatchVerdict(WireModel):
    score: int = 0
    reason: str = ""
    pros: list[str] = []
    cons: list[str] = []
    status: MatchStatus = MatchStatus.CALCULATED


class MatchResult(WireModel):
    project_id: str
    user_id: str
    score: int = 0
    reason: str = ""
    pros: list[str] = []
    cons: list[str] = []
    status: MatchStatus = MatchStatus.CALCULATED
    computed_at: str = ""


class MatchEntry(WireModel):
    target_id: str
    name: str = ""
    sector: str | None = None
    title: str | None = None
    score: int = 0
    reason: str = ""
    pros: list[str] = []
    cons: list[str] = []
    status: MatchStatus = MatchStatus.CALCULATED


# --- Conversation ---


class ChatMessage(WireModel):
    role: ChatRole
    text: str = ""


class Attachment(WireModel):
    name: str = ""
    mime_type: str
    data: str  # base64


class ChatReply(WireModel):
    reply: str = ""
    updates: dict = {}


class Annotation(WireModel):
    id: str
    field: str
    selected_text: str
    comment: str = ""
    timestamp: int = 0  # epoch milliseconds
    offset: int | None = None  # None: anchor at the first occurrence


# --- Inbox ---


class InboxSession(WireModel):
    id: str
    user_id: str
    target_id: str
    target_type: str
    created_at: str = ""
    updated_at: str = ""


class InboxMessage(WireModel):
    id: str
    session_id: str
    role: str = "user"
    content: str
    created_at: str = ""
