"""Coerce raw model text into the structured records the pipeline expects.

Model output is treated as untrusted text: it may be wrapped in Markdown
fences, surrounded by prose, or not JSON at all. Parsing failures raise
`ResponseParseError`; callers decide on the fallback.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from app.errors import ResponseParseError
from app.models import ChatReply, MatchStatus, MatchVerdict

logger = logging.getLogger(__name__)

_OPEN_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?[ \t]*```$")

_SHAPES: dict[str, type | None] = {"object": dict, "array": list, "any": None}


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence."""
    text = text.strip()
    if text.startswith("```"):
        text = _OPEN_FENCE.sub("", text)
        text = _CLOSE_FENCE.sub("", text)
    return text.strip()


def parse_model_json(raw: str | None, expected: str = "object") -> Any:
    """Parse a model response as JSON.

    Args:
        raw: Raw response text.
        expected: Top-level shape to accept: "object", "array" or "any".

    Raises:
        ResponseParseError: if no JSON value of the expected shape is found.
    """
    if not raw or not raw.strip():
        raise ResponseParseError("Empty model response", raw or "")

    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Fall back to the outermost {...} span when prose surrounds the object
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if not match:
            raise ResponseParseError("No JSON found in model response", raw)
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Malformed JSON in model response: {e}", raw)

    shape = _SHAPES.get(expected)
    if shape is not None and not isinstance(data, shape):
        raise ResponseParseError(
            f"Expected a JSON {expected}, got {type(data).__name__}", raw
        )
    return data


def as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return [str(value)]


def _as_score(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        score = round(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, score))


def coerce_verdict(data: dict) -> MatchVerdict:
    """Fit a parsed scoring response into the score/reason/pros/cons contract."""
    return MatchVerdict(
        score=_as_score(data.get("score")),
        reason=str(data.get("reason") or ""),
        pros=as_str_list(data.get("pros")),
        cons=as_str_list(data.get("cons")),
        status=MatchStatus.CALCULATED,
    )


def coerce_chat_reply(data: dict) -> ChatReply:
    updates = data.get("updates")
    return ChatReply(
        reply=str(data.get("reply") or ""),
        updates=updates if isinstance(updates, dict) else {},
    )


def log_parse_failure(context: str, error: ResponseParseError) -> None:
    logger.warning(f"{context}: {error.message} (raw text: {error.raw_text!r})")
