"""Data-access layer wrapping Redis for users, profiles, projects, matches and inbox."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings
from app.errors import PersistenceError
from app.models import (
    InboxMessage,
    InboxSession,
    MatchResult,
    Profile,
    Project,
    User,
)
from app.redis_client import get_redis
from app.scoring import make_pair_key

logger = logging.getLogger(__name__)


def _key(*parts: str) -> str:
    return ":".join([settings.key_prefix, *parts])


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _timestamp(iso: str) -> float:
    return datetime.fromisoformat(iso).timestamp()


@contextmanager
def _persistence(operation: str):
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis failure during {operation}: {e}")
        raise PersistenceError(f"Storage unavailable during {operation}") from e


class StateManager:
    """Explicit data-access handle.

    Pass a client to pin it (scripts, tests); otherwise each call borrows a
    connection from the process-wide pool.
    """

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    def _r(self) -> redis.Redis:
        return self._client if self._client is not None else get_redis()

    # --- Users ---

    async def get_user(self, user_id: str) -> User | None:
        with _persistence("get_user"):
            raw = await self._r().hget(_key("users"), user_id)
        return User.model_validate_json(raw) if raw else None

    async def save_user(self, user: User) -> None:
        with _persistence("save_user"):
            await self._r().hset(_key("users"), user.id, user.model_dump_json())

    # --- Profiles ---

    async def get_profile(self, user_id: str) -> Profile | None:
        with _persistence("get_profile"):
            raw = await self._r().hget(_key("profiles"), user_id)
        return Profile.model_validate_json(raw) if raw else None

    async def save_profile(self, profile: Profile) -> Profile:
        """Insert or update the profile for `profile.user_id`; creation time is kept."""
        existing = await self.get_profile(profile.user_id)
        if existing and existing.created_at:
            profile.created_at = existing.created_at
        elif not profile.created_at:
            profile.created_at = utcnow_iso()

        with _persistence("save_profile"):
            async with self._r().pipeline(transaction=True) as pipe:
                pipe.hset(_key("profiles"), profile.user_id, profile.model_dump_json())
                pipe.zadd(
                    _key("profiles", "recent"),
                    {profile.user_id: _timestamp(profile.created_at)},
                )
                await pipe.execute()
        return profile

    async def recent_profiles(
        self, limit: int, exclude_user_id: str | None = None
    ) -> list[Profile]:
        """Newest profiles first, at most `limit` of them."""
        with _persistence("recent_profiles"):
            r = self._r()
            ids = await r.zrevrange(_key("profiles", "recent"), 0, limit)
            ids = [uid for uid in ids if uid != exclude_user_id][:limit]
            if not ids:
                return []
            raw_list = await r.hmget(_key("profiles"), ids)
        return [Profile.model_validate_json(raw) for raw in raw_list if raw]

    # --- Projects ---

    async def get_project(self, project_id: str) -> Project | None:
        with _persistence("get_project"):
            raw = await self._r().hget(_key("projects"), project_id)
        return Project.model_validate_json(raw) if raw else None

    async def save_project(self, project: Project) -> Project:
        if not project.created_at:
            project.created_at = utcnow_iso()

        with _persistence("save_project"):
            async with self._r().pipeline(transaction=True) as pipe:
                pipe.hset(_key("projects"), project.id, project.model_dump_json())
                if project.published:
                    pipe.zadd(
                        _key("projects", "published"),
                        {project.id: _timestamp(project.created_at)},
                    )
                else:
                    pipe.zrem(_key("projects", "published"), project.id)
                await pipe.execute()
        return project

    async def recent_published_projects(
        self, limit: int, exclude_owner_id: str | None = None
    ) -> list[Project]:
        """Newest published projects first, skipping those owned by `exclude_owner_id`."""
        projects: list[Project] = []
        if limit <= 0:
            return projects
        page_size = limit * 2
        with _persistence("recent_published_projects"):
            r = self._r()
            # Owners rarely have more than a handful of projects; read in small pages
            start = 0
            while True:
                page = await r.zrevrange(
                    _key("projects", "published"), start, start + page_size - 1
                )
                if not page:
                    return projects
                start += page_size
                for raw in await r.hmget(_key("projects"), page):
                    if not raw:
                        continue
                    project = Project.model_validate_json(raw)
                    if exclude_owner_id and project.owner_id == exclude_owner_id:
                        continue
                    projects.append(project)
                    if len(projects) >= limit:
                        return projects

    async def all_published_projects(self) -> list[Project]:
        with _persistence("all_published_projects"):
            r = self._r()
            ids = await r.zrevrange(_key("projects", "published"), 0, -1)
            if not ids:
                return []
            raw_list = await r.hmget(_key("projects"), ids)
        return [Project.model_validate_json(raw) for raw in raw_list if raw]

    # --- Match results ---

    async def upsert_match(self, result: MatchResult) -> None:
        """One record per (project, user): later runs overwrite earlier ones."""
        pair_key = make_pair_key(result.project_id, result.user_id)
        with _persistence("upsert_match"):
            async with self._r().pipeline(transaction=True) as pipe:
                pipe.hset(_key("matches"), pair_key, result.model_dump_json())
                pipe.sadd(_key("matches", "project", result.project_id), result.user_id)
                pipe.sadd(_key("matches", "user", result.user_id), result.project_id)
                await pipe.execute()

    async def get_match(self, project_id: str, user_id: str) -> MatchResult | None:
        with _persistence("get_match"):
            raw = await self._r().hget(_key("matches"), make_pair_key(project_id, user_id))
        return MatchResult.model_validate_json(raw) if raw else None

    async def matches_for_project(self, project_id: str) -> list[MatchResult]:
        with _persistence("matches_for_project"):
            r = self._r()
            user_ids = sorted(await r.smembers(_key("matches", "project", project_id)))
            if not user_ids:
                return []
            raw_list = await r.hmget(
                _key("matches"), [make_pair_key(project_id, uid) for uid in user_ids]
            )
        return [MatchResult.model_validate_json(raw) for raw in raw_list if raw]

    async def matches_for_user(self, user_id: str) -> list[MatchResult]:
        with _persistence("matches_for_user"):
            r = self._r()
            project_ids = sorted(await r.smembers(_key("matches", "user", user_id)))
            if not project_ids:
                return []
            raw_list = await r.hmget(
                _key("matches"), [make_pair_key(pid, user_id) for pid in project_ids]
            )
        return [MatchResult.model_validate_json(raw) for raw in raw_list if raw]

    async def match_count(self) -> int:
        with _persistence("match_count"):
            return await self._r().hlen(_key("matches"))

    # --- Inbox ---

    async def find_or_create_session(
        self, user_id: str, target_id: str, target_type: str
    ) -> InboxSession:
        """One conversation per (user, target type, target id)."""
        lookup_field = f"{target_type}:{target_id}"
        with _persistence("find_or_create_session"):
            r = self._r()
            candidate_id = uuid.uuid4().hex[:12]
            created = await r.hsetnx(_key("inbox", "lookup", user_id), lookup_field, candidate_id)
            if not created:
                session_id = await r.hget(_key("inbox", "lookup", user_id), lookup_field)
                raw = await r.hget(_key("inbox", "sessions"), session_id)
                if raw:
                    return InboxSession.model_validate_json(raw)

            now = utcnow_iso()
            session = InboxSession(
                id=candidate_id if created else session_id,
                user_id=user_id,
                target_id=target_id,
                target_type=target_type,
                created_at=now,
                updated_at=now,
            )
            async with r.pipeline(transaction=True) as pipe:
                pipe.hset(_key("inbox", "sessions"), session.id, session.model_dump_json())
                pipe.zadd(_key("inbox", "user", user_id), {session.id: _timestamp(now)})
                await pipe.execute()
        return session

    async def add_inbox_message(
        self, session: InboxSession, content: str, role: str = "user"
    ) -> InboxMessage:
        now = utcnow_iso()
        message = InboxMessage(
            id=uuid.uuid4().hex[:12],
            session_id=session.id,
            role=role,
            content=content,
            created_at=now,
        )
        session.updated_at = now
        with _persistence("add_inbox_message"):
            async with self._r().pipeline(transaction=True) as pipe:
                pipe.rpush(_key("inbox", "messages", session.id), message.model_dump_json())
                pipe.hset(_key("inbox", "sessions"), session.id, session.model_dump_json())
                pipe.zadd(_key("inbox", "user", session.user_id), {session.id: _timestamp(now)})
                await pipe.execute()
        return message

    async def list_sessions(
        self, user_id: str
    ) -> list[tuple[InboxSession, InboxMessage | None]]:
        """The user's conversations, most recently active first, with their latest message."""
        results: list[tuple[InboxSession, InboxMessage | None]] = []
        with _persistence("list_sessions"):
            r = self._r()
            session_ids = await r.zrevrange(_key("inbox", "user", user_id), 0, -1)
            for session_id in session_ids:
                raw = await r.hget(_key("inbox", "sessions"), session_id)
                if not raw:
                    continue
                last_raw = await r.lindex(_key("inbox", "messages", session_id), -1)
                results.append(
                    (
                        InboxSession.model_validate_json(raw),
                        InboxMessage.model_validate_json(last_raw) if last_raw else None,
                    )
                )
        return results


state_manager = StateManager()


def get_state_manager() -> StateManager:
    return state_manager
