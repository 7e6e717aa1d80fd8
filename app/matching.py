"""Match orchestration: score a pivot entity against a bounded candidate pool."""

from __future__ import annotations

import asyncio
import logging

from app.config import settings
from app.errors import InvalidRequest, NotFound, Unauthorized
from app.llm import ModelClient
from app.models import (
    MatchDirection,
    MatchEntry,
    MatchResult,
    MatchStatus,
    MatchVerdict,
    Profile,
    Project,
    User,
)
from app.scoring import score_compatibility, serialize_entity
from app.state import StateManager, utcnow_iso

logger = logging.getLogger(__name__)

PIVOT_PROJECT = "project"
PIVOT_PROFILE = "profile"
CURRENT_PROFILE = "current"


def rank_entries(entries: list[MatchEntry]) -> list[MatchEntry]:
    """Highest score first; ties keep their incoming order."""
    return sorted(entries, key=lambda e: e.score, reverse=True)


def _validate_pivot(pivot_type: str | None, pivot_id: str | None, caller: User | None) -> None:
    if caller is None:
        raise Unauthorized("Unauthorized")
    if not pivot_type or not pivot_id:
        raise InvalidRequest("Missing type or id")
    if pivot_type not in (PIVOT_PROJECT, PIVOT_PROFILE):
        raise InvalidRequest(f"Unknown pivot type: {pivot_type}")


def _resolve_user_id(pivot_id: str, caller: User) -> str:
    return caller.id if pivot_id == CURRENT_PROFILE else pivot_id


async def _talent_entry(
    store: StateManager, profile: Profile, result: MatchResult | MatchVerdict
) -> MatchEntry:
    user = await store.get_user(profile.user_id)
    return MatchEntry(
        target_id=profile.user_id,
        name=(user.name if user and user.name else profile.name),
        title=profile.title,
        score=result.score,
        reason=result.reason,
        pros=result.pros,
        cons=result.cons,
        status=result.status,
    )


def _project_entry(project: Project, result: MatchResult | MatchVerdict) -> MatchEntry:
    return MatchEntry(
        target_id=project.id,
        name=project.name,
        sector=project.sector,
        score=result.score,
        reason=result.reason,
        pros=result.pros,
        cons=result.cons,
        status=result.status,
    )


async def _persist(
    store: StateManager, project_id: str, user_id: str, verdict: MatchVerdict
) -> None:
    await store.upsert_match(
        MatchResult(
            project_id=project_id,
            user_id=user_id,
            score=verdict.score,
            reason=verdict.reason,
            pros=verdict.pros,
            cons=verdict.cons,
            status=verdict.status,
            computed_at=utcnow_iso(),
        )
    )


async def run_matches(
    pivot_type: str | None,
    pivot_id: str | None,
    caller: User | None,
    store: StateManager,
    client: ModelClient,
    *,
    limit: int | None = None,
    concurrency: int | None = None,
) -> list[MatchEntry]:
    """Score the pivot against its candidates, persist each result, return the ranking.

    Args:
        pivot_type: "project" (rank talent for a project) or "profile" (rank
            published projects for a talent).
        pivot_id: Project id, user id, or "current" for the caller's own profile.
        caller: Resolved session user; None means unauthenticated.
        store: Data-access handle.
        client: Model client used for every candidate.
        limit: Candidate pool size. Defaults to settings.match_candidate_limit.
        concurrency: Model calls in flight at once. Defaults to
            settings.match_concurrency (1 = sequential).

    A failed model call only degrades its own candidate to a fallback entry.
    Storage failures raise PersistenceError.
    """
    _validate_pivot(pivot_type, pivot_id, caller)
    if limit is None:
        limit = settings.match_candidate_limit
    semaphore = asyncio.Semaphore(max(1, concurrency or settings.match_concurrency))

    if pivot_type == PIVOT_PROJECT:
        project = await store.get_project(pivot_id)
        if not project:
            raise NotFound("Project not found")

        candidates = await store.recent_profiles(limit, exclude_user_id=project.owner_id)
        source = serialize_entity(project)

        async def evaluate_talent(profile: Profile) -> MatchEntry:
            async with semaphore:
                verdict = await score_compatibility(
                    source,
                    serialize_entity(profile),
                    MatchDirection.PROJECT_TO_TALENT,
                    client,
                )
            await _persist(store, project.id, profile.user_id, verdict)
            return await _talent_entry(store, profile, verdict)

        jobs = [evaluate_talent(p) for p in candidates]

    else:
        user_id = _resolve_user_id(pivot_id, caller)
        profile = await store.get_profile(user_id)
        if not profile:
            raise NotFound("Profile not found")

        candidates = await store.recent_published_projects(limit, exclude_owner_id=user_id)
        source = serialize_entity(profile)

        async def evaluate_project(project: Project) -> MatchEntry:
            async with semaphore:
                verdict = await score_compatibility(
                    source,
                    serialize_entity(project),
                    MatchDirection.TALENT_TO_PROJECT,
                    client,
                )
            await _persist(store, project.id, user_id, verdict)
            return _project_entry(project, verdict)

        jobs = [evaluate_project(p) for p in candidates]

    logger.info(f"Match run for {pivot_type} {pivot_id}: {len(jobs)} candidates")
    # A storage failure cancels the rest of the batch
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(job) for job in jobs]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    entries = [task.result() for task in tasks]

    failed = sum(1 for e in entries if e.status == MatchStatus.FAILED)
    if failed:
        logger.warning(f"Match run for {pivot_type} {pivot_id}: {failed} candidates fell back")

    return rank_entries(entries)


async def get_ranked_matches(
    pivot_type: str | None,
    pivot_id: str | None,
    caller: User | None,
    store: StateManager,
) -> list[MatchEntry]:
    """Ranking from previously persisted results; no model calls."""
    _validate_pivot(pivot_type, pivot_id, caller)

    entries: list[MatchEntry] = []
    if pivot_type == PIVOT_PROJECT:
        if not await store.get_project(pivot_id):
            raise NotFound("Project not found")
        for result in await store.matches_for_project(pivot_id):
            profile = await store.get_profile(result.user_id)
            if profile:
                entries.append(await _talent_entry(store, profile, result))
    else:
        user_id = _resolve_user_id(pivot_id, caller)
        if not await store.get_profile(user_id):
            raise NotFound("Profile not found")
        for result in await store.matches_for_user(user_id):
            project = await store.get_project(result.project_id)
            if project and project.published:
                entries.append(_project_entry(project, result))

    return rank_entries(entries)
