"""Revision annotations anchored to text inside a rendered draft.

Anchoring policy: an annotation records the offset of the first occurrence of
its selected text at creation time. It stays anchored only while the field
still holds that exact text at that offset; after an edit it is stale and is
never re-anchored to some other occurrence. Annotations that arrive without
an offset anchor at the first occurrence in the current text.
"""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel

from app.errors import InvalidRequest
from app.models import Annotation
from app.onboarding import draft_fields
from app.prompts import REVISION_HEADER


def field_text(draft: BaseModel, field: str) -> str:
    """Current text of a draft field; list fields are joined with ", "."""
    name = draft_fields(type(draft)).get(field)
    if name is None:
        raise InvalidRequest(f"Unknown field: {field}")
    value = getattr(draft, name)
    if isinstance(value, list):
        return ", ".join(value)
    return value or ""


def create_annotation(
    draft: BaseModel, field: str, selected_text: str, comment: str
) -> Annotation:
    if not selected_text:
        raise InvalidRequest("Selected text is empty")
    text = field_text(draft, field)
    offset = text.find(selected_text)
    if offset < 0:
        raise InvalidRequest(f"Selected text is not part of {field}")

    return Annotation(
        id=uuid.uuid4().hex[:12],
        field=field,
        selected_text=selected_text,
        comment=comment,
        timestamp=int(time.time() * 1000),
        offset=offset,
    )


def locate(annotation: Annotation, draft: BaseModel) -> tuple[int, int] | None:
    """Span of the annotation in the current draft, or None once stale."""
    try:
        text = field_text(draft, annotation.field)
    except InvalidRequest:
        return None
    if not annotation.selected_text:
        return None
    start = annotation.offset
    if start is None:
        # Created elsewhere without a snapshot
        start = text.find(annotation.selected_text)
    end = start + len(annotation.selected_text)
    if start < 0 or text[start:end] != annotation.selected_text:
        return None
    return start, end


def build_revision_message(
    annotations: list[Annotation], draft: BaseModel | None = None
) -> str:
    """Fold all annotations into one feedback message for the assistant."""
    if not annotations:
        raise InvalidRequest("Please add annotations first")

    lines = [REVISION_HEADER]
    for i, ann in enumerate(annotations, start=1):
        stale = draft is not None and locate(ann, draft) is None
        marker = " (stale)" if stale else ""
        lines.append(f"{i}. In {ann.field} ({ann.selected_text}){marker}: {ann.comment}")
    return "\n".join(lines)
