"""Model-backed compatibility scoring between a talent profile and a project."""

from __future__ import annotations

import json
import logging

from pydantic import BaseModel

from app.errors import ModelInvocationError, ResponseParseError
from app.llm import ModelClient, ModelContent, invoke_with_timeout
from app.models import MatchDirection, MatchStatus, MatchVerdict
from app.normalizer import coerce_verdict, log_parse_failure, parse_model_json
from app.prompts import (
    PROJECT_TO_TALENT_PROMPT,
    SCORING_SYSTEM_INSTRUCTION,
    TALENT_TO_PROJECT_PROMPT,
)

logger = logging.getLogger(__name__)

FALLBACK_REASON = "Analysis failed"

_TEMPLATES = {
    MatchDirection.TALENT_TO_PROJECT: TALENT_TO_PROJECT_PROMPT,
    MatchDirection.PROJECT_TO_TALENT: PROJECT_TO_TALENT_PROMPT,
}


def make_pair_key(project_id: str, user_id: str) -> str:
    """Directional: project first, whichever side the run pivoted on."""
    return f"{project_id}:{user_id}"


def fallback_verdict(reason: str = FALLBACK_REASON) -> MatchVerdict:
    return MatchVerdict(score=0, reason=reason, pros=[], cons=[], status=MatchStatus.FAILED)


def serialize_entity(entity: BaseModel) -> str:
    """Opaque JSON text handed to the model; empty fields dropped."""
    data = entity.model_dump(by_alias=True, mode="json")
    return json.dumps(
        {k: v for k, v in data.items() if v not in ("", [], None)},
        ensure_ascii=False,
        indent=2,
    )


def build_match_prompt(source: str, target: str, direction: MatchDirection) -> str:
    template = _TEMPLATES[MatchDirection(direction)]
    return template.format(source=source, target=target)


async def score_compatibility(
    source: str,
    target: str,
    direction: MatchDirection,
    client: ModelClient,
    *,
    timeout: float | None = None,
) -> MatchVerdict:
    """Score `target` against `source` in the given direction.

    Never raises: any model, timeout or parse failure yields the fallback
    verdict (score 0, status "failed").
    """
    prompt = build_match_prompt(source, target, direction)

    try:
        raw = await invoke_with_timeout(
            client,
            SCORING_SYSTEM_INSTRUCTION,
            [],
            ModelContent(text=prompt),
            timeout=timeout,
        )
    except ModelInvocationError as e:
        logger.warning(f"Match scoring ({direction}) model call failed: {e.message}")
        return fallback_verdict()

    try:
        data = parse_model_json(raw, expected="object")
    except ResponseParseError as e:
        log_parse_failure(f"Match scoring ({direction})", e)
        return fallback_verdict()

    return coerce_verdict(data)
