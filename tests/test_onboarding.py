"""Tests for the onboarding chat contract, draft merging and revision annotations."""

from __future__ import annotations

import base64
import json

import pytest

from app.annotations import build_revision_message, create_annotation, field_text, locate
from app.errors import InvalidRequest, ModelInvocationError
from app.llm import ClaudeClient, ModelContent
from app.models import (
    Annotation,
    Attachment,
    ChatMessage,
    ChatRole,
    DraftKind,
    ProfileDraft,
    ProjectDraft,
)
from app.onboarding import (
    clean_updates,
    merge_updates,
    new_draft,
    run_chat_turn,
    shape_history,
    welcome_message,
)
from app.prompts import (
    ATTACHMENT_DEFAULT_TEXT,
    FILLER_USER_TURN,
    JSON_DIRECTIVE,
    PROFILE_SYSTEM_INSTRUCTION,
    PROJECT_SYSTEM_INSTRUCTION,
    canned,
)
from tests.conftest import FakeModelClient

pytestmark = pytest.mark.asyncio


def user(text: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.USER, text=text)


def model(text: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.MODEL, text=text)


def reply_json(reply: str, updates: dict | None = None) -> str:
    return json.dumps({"reply": reply, "updates": updates or {}}, ensure_ascii=False)


# ---------------------------------------------------------------------------
# History shaping
# ---------------------------------------------------------------------------


class TestShapeHistory:
    async def test_leading_model_turn_dropped(self):
        shaped, text = shape_history([model("Welcome!"), user("I'm building X"), model("Tell me more")], "It's climate")
        assert [m.role for m in shaped] == [ChatRole.USER, ChatRole.MODEL]
        assert shaped[0].text == "I'm building X"
        assert text == "It's climate"

    async def test_only_greeting(self):
        shaped, text = shape_history([model("Welcome!")], "Hello")
        assert shaped == []
        assert text == "Hello"

    async def test_consecutive_model_turns_get_filler(self):
        shaped, _ = shape_history([user("hi"), model("one"), model("two")], "next")
        assert [(m.role, m.text) for m in shaped] == [
            (ChatRole.USER, "hi"),
            (ChatRole.MODEL, "one"),
            (ChatRole.USER, FILLER_USER_TURN),
            (ChatRole.MODEL, "two"),
        ]

    async def test_consecutive_user_turns_merged(self):
        shaped, _ = shape_history([user("a"), user("b"), model("c")], "d")
        assert [(m.role, m.text) for m in shaped] == [
            (ChatRole.USER, "a\n\nb"),
            (ChatRole.MODEL, "c"),
        ]

    async def test_trailing_user_turn_folded_into_new_text(self):
        shaped, text = shape_history([user("a"), model("b"), user("unanswered")], "new")
        assert [m.text for m in shaped] == ["a", "b"]
        assert text == "unanswered\n\nnew"

    async def test_blank_turns_skipped(self):
        shaped, _ = shape_history([user("a"), model("  "), model("b")], "c")
        assert [m.text for m in shaped] == ["a", "b"]

    async def test_alternation_holds(self):
        history = [model("w"), model("x"), user("a"), user("b"), model("c"), model("d"), user("e")]
        shaped, _ = shape_history(history, "f")
        assert shaped[0].role == ChatRole.USER
        assert shaped[-1].role == ChatRole.MODEL
        for prev, cur in zip(shaped, shaped[1:]):
            assert prev.role != cur.role


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


class TestDrafts:
    async def test_sparse_merge(self):
        draft = ProjectDraft(name="A", vision="")
        merged = merge_updates(draft, {"vision": "B"})
        assert merged.name == "A"
        assert merged.vision == "B"
        assert draft.vision == ""

    async def test_wire_names_accepted(self):
        merged = merge_updates(ProjectDraft(), {"oneLiner": "Carbon market", "talentNeeds": ["CTO"]})
        assert merged.one_liner == "Carbon market"
        assert merged.talent_needs == ["CTO"]

    async def test_unknown_and_null_fields_ignored(self):
        assert clean_updates(ProjectDraft(), {"color": "blue", "name": None}) == {}

    async def test_values_coerced_to_field_types(self):
        clean = clean_updates(
            ProfileDraft(), {"skills": "Python", "bio": ["Founder", "Engineer"], "title": 7}
        )
        assert clean == {"skills": ["Python"], "bio": "Founder, Engineer", "title": "7"}

    async def test_new_draft_seeded(self):
        seed = ProfileDraft(name="Lin", skills=["Go"])
        draft = new_draft("profile", seed)
        assert isinstance(draft, ProfileDraft)
        assert draft.skills == ["Go"]
        assert isinstance(new_draft(DraftKind.PROJECT), ProjectDraft)

    async def test_welcome_messages(self):
        assert welcome_message("project", locale="en").text == canned("welcome_project", "en")
        back = welcome_message("profile", name="Lin", locale="en")
        assert back.role == ChatRole.MODEL
        assert "Lin" in back.text
        assert welcome_message("profile", locale="zh").text == canned("welcome_profile", "zh")


# ---------------------------------------------------------------------------
# Chat turns
# ---------------------------------------------------------------------------


class TestChatTurn:
    async def test_reply_and_updates(self):
        client = FakeModelClient(
            responses=[reply_json("What problem are you solving?", {"name": "GreenChain", "oneLiner": "Carbon"})]
        )
        turn = await run_chat_turn("project", [model("Hi"), user("It's GreenChain")], client)

        assert turn.reply == "What problem are you solving?"
        assert turn.updates == {"name": "GreenChain", "oneLiner": "Carbon"}
        assert turn.degraded is False
        assert turn.draft is None

        system, history, content = client.calls[0]
        assert system.startswith(PROJECT_SYSTEM_INSTRUCTION)
        assert system.endswith(JSON_DIRECTIVE)
        assert history == []
        assert content.text == "It's GreenChain"

    async def test_profile_persona(self):
        client = FakeModelClient(responses=[reply_json("ok")])
        await run_chat_turn("profile", [user("hi")], client)
        assert client.calls[0][0].startswith(PROFILE_SYSTEM_INSTRUCTION)

    async def test_draft_merged(self):
        client = FakeModelClient(responses=[reply_json("Great", {"vision": "B"})])
        turn = await run_chat_turn(
            "project", [user("vision is B")], client, draft=ProjectDraft(name="A")
        )
        assert turn.draft.name == "A"
        assert turn.draft.vision == "B"

    async def test_fenced_reply(self):
        client = FakeModelClient(responses=["```json\n" + reply_json("Hi there") + "\n```"])
        turn = await run_chat_turn("project", [user("hello")], client)
        assert turn.reply == "Hi there"

    async def test_parse_failure_apologizes(self):
        client = FakeModelClient(responses=["Sure! Your project sounds great."])
        draft = ProjectDraft(name="A")
        turn = await run_chat_turn("project", [user("hello")], client, draft=draft, locale="zh")
        assert turn.degraded is True
        assert turn.reply == canned("format_error", "zh")
        assert turn.updates == {}
        assert turn.draft == draft

    async def test_model_failure_apologizes(self):
        def boom(*_):
            raise ConnectionError("offline")

        turn = await run_chat_turn("profile", [user("hi")], FakeModelClient(responder=boom), locale="en")
        assert turn.degraded is True
        assert turn.reply == canned("unavailable", "en")
        assert turn.updates == {}

    async def test_last_message_must_be_user(self):
        with pytest.raises(InvalidRequest):
            await run_chat_turn("project", [user("a"), model("b")], FakeModelClient())
        with pytest.raises(InvalidRequest):
            await run_chat_turn("project", [], FakeModelClient())

    async def test_attachment_without_text_gets_default_prompt(self):
        client = FakeModelClient(responses=[reply_json("Read your deck", {"name": "RoboFarm"})])
        attachment = Attachment(
            name="deck.pdf",
            mime_type="application/pdf",
            data=base64.b64encode(b"%PDF-1.4").decode(),
        )
        turn = await run_chat_turn("project", [user("")], client, attachment=attachment)

        content = client.calls[0][2]
        assert content.text == ATTACHMENT_DEFAULT_TEXT
        assert content.attachment.mime_type == "application/pdf"
        assert turn.updates == {"name": "RoboFarm"}

    async def test_text_attachment_decoded_inline(self):
        client = ClaudeClient(api_key="test-key")
        attachment = Attachment(
            name="notes.txt", mime_type="text/plain", data=base64.b64encode(b"Ten years in ML").decode()
        )
        blocks = client._content_blocks(ModelContent(text="Summarize", attachment=attachment))
        assert blocks[0]["text"] == "[Attachment: notes.txt]\nTen years in ML"
        assert blocks[-1] == {"type": "text", "text": "Summarize"}
        await client.aclose()

    async def test_corrupt_text_attachment_rejected(self):
        client = ClaudeClient(api_key="test-key")
        attachment = Attachment(name="notes.txt", mime_type="text/plain", data="VGVu!!IHllYXJz")
        with pytest.raises(ModelInvocationError):
            client._content_blocks(ModelContent(text="Summarize", attachment=attachment))
        await client.aclose()

    async def test_unknown_update_keys_dropped(self):
        client = FakeModelClient(responses=[reply_json("ok", {"name": "X", "favoriteColor": "red"})])
        turn = await run_chat_turn("project", [user("hi")], client)
        assert turn.updates == {"name": "X"}


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


class TestAnnotations:
    async def test_create_records_first_offset(self):
        draft = ProjectDraft(vision="Make carbon markets trustworthy. Make them fast.")
        ann = create_annotation(draft, "vision", "Make", "Too vague")
        assert ann.offset == 0
        assert ann.field == "vision"
        assert ann.timestamp > 0
        assert locate(ann, draft) == (0, 4)

    async def test_wire_field_names(self):
        draft = ProjectDraft(one_liner="Carbon market for SMEs")
        ann = create_annotation(draft, "oneLiner", "SMEs", "Which countries?")
        assert locate(ann, draft) == (18, 22)

    async def test_list_field_text(self):
        draft = ProjectDraft(talent_needs=["CTO", "Designer"])
        assert field_text(draft, "talentNeeds") == "CTO, Designer"
        ann = create_annotation(draft, "talent_needs", "Designer", "Which kind?")
        assert ann.offset == 5

    async def test_selection_must_exist(self):
        draft = ProjectDraft(vision="Net zero")
        with pytest.raises(InvalidRequest):
            create_annotation(draft, "vision", "carbon", "?")
        with pytest.raises(InvalidRequest):
            create_annotation(draft, "vision", "", "?")
        with pytest.raises(InvalidRequest):
            create_annotation(draft, "mascot", "Net", "?")

    async def test_stale_after_edit(self):
        draft = ProjectDraft(vision="Make carbon markets trustworthy")
        ann = create_annotation(draft, "vision", "carbon", "Be specific")
        edited = draft.model_copy(update={"vision": "We make carbon markets trustworthy"})
        # Same text elsewhere does not re-anchor
        assert locate(ann, edited) is None

    async def test_revision_message(self):
        draft = ProjectDraft(name="GreenChain", vision="Net zero by 2040")
        anns = [
            create_annotation(draft, "name", "Green", "Sounds generic"),
            create_annotation(draft, "vision", "2040", "Too late"),
        ]
        message = build_revision_message(anns, draft)
        assert message == (
            "Feedback based on annotations:\n"
            "1. In name (Green): Sounds generic\n"
            "2. In vision (2040): Too late"
        )

    async def test_revision_marks_stale(self):
        draft = ProjectDraft(vision="Net zero by 2040")
        ann = create_annotation(draft, "vision", "2040", "Too late")
        edited = ProjectDraft(vision="Net zero by 2035")
        assert build_revision_message([ann], edited).endswith("1. In vision (2040) (stale): Too late")

    async def test_annotation_without_offset_anchors_at_first_occurrence(self):
        draft = ProjectDraft(vision="We decarbonize global shipping")
        ann = Annotation(id="a1", field="vision", selected_text="global shipping", comment="Too broad")
        assert ann.offset is None
        assert locate(ann, draft) == (15, 30)
        assert build_revision_message([ann], draft) == (
            "Feedback based on annotations:\n1. In vision (global shipping): Too broad"
        )

    async def test_annotation_without_offset_stale_when_text_gone(self):
        ann = Annotation(id="a1", field="vision", selected_text="shipping", comment="?")
        assert locate(ann, ProjectDraft(vision="We decarbonize aviation")) is None

    async def test_revision_requires_annotations(self):
        with pytest.raises(InvalidRequest):
            build_revision_message([])
