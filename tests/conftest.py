"""Shared test fixtures: fakeredis, scripted model client, test client, entity seeding."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Callable
from unittest.mock import AsyncMock, patch

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.llm import ModelClient, ModelContent, get_model_client
from app.models import ChatMessage, Profile, Project, User
from app.state import StateManager

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _test_settings():
    """Ensure test-safe settings for every test."""
    original = (
        settings.key_prefix,
        settings.anthropic_api_key,
        settings.llm_provider,
        settings.locale,
        settings.match_candidate_limit,
        settings.match_concurrency,
        settings.model_timeout_seconds,
    )
    settings.key_prefix = "test"
    settings.anthropic_api_key = ""
    settings.llm_provider = "none"
    settings.locale = "en"
    settings.match_candidate_limit = 5
    settings.match_concurrency = 1
    settings.model_timeout_seconds = 2.0
    yield
    (
        settings.key_prefix,
        settings.anthropic_api_key,
        settings.llm_provider,
        settings.locale,
        settings.match_candidate_limit,
        settings.match_concurrency,
        settings.model_timeout_seconds,
    ) = original


class FakeModelClient(ModelClient):
    """Scripted stand-in for a provider.

    `responder` gets (system_instruction, history, content) and returns the raw
    text, or raises to simulate a provider failure. Without one, queued
    `responses` are handed out in order. Every call is recorded.
    """

    name = "fake"

    def __init__(
        self,
        responses: list[str] | None = None,
        responder: Callable[[str, list[ChatMessage], ModelContent], str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.responses = list(responses or [])
        self.responder = responder
        self.delay = delay
        self.calls: list[tuple[str, list[ChatMessage], ModelContent]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def invoke_model(self, system_instruction, history, content) -> str:
        self.calls.append((system_instruction, list(history), content))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.responder is not None:
                return self.responder(system_instruction, history, content)
            if not self.responses:
                raise RuntimeError("No scripted response left")
            return self.responses.pop(0)
        finally:
            self.in_flight -= 1


def verdict_json(score: int, reason: str = "Good fit", fenced: bool = False) -> str:
    body = json.dumps(
        {"score": score, "reason": reason, "pros": ["Relevant skills"], "cons": ["Time zone"]}
    )
    return f"```json\n{body}\n```" if fenced else body


def score_by_name(scores: dict[str, int | Exception]) -> Callable:
    """Responder that scores a candidate by the name quoted in the prompt.

    Keys must be candidate names only; the pivot's own name never matches.
    """

    def responder(system_instruction, history, content):
        for name, outcome in scores.items():
            if f'"{name}"' in content.text:
                if isinstance(outcome, Exception):
                    raise outcome
                return verdict_json(outcome, reason=f"Scored {name}")
        raise RuntimeError("Unknown candidate")

    return responder


@pytest.fixture
def fake_redis():
    """Fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(fake_redis):
    return StateManager(fake_redis)


@pytest.fixture
def fake_model():
    return FakeModelClient()


@pytest_asyncio.fixture
async def client(fake_redis, fake_model):
    """FastAPI async test client backed by fakeredis and the scripted model."""
    with (
        patch("app.state.get_redis", return_value=fake_redis),
        patch("app.redis_client.get_redis", return_value=fake_redis),
        patch("app.redis_client.close_pool", new_callable=AsyncMock),
    ):
        from app.main import app

        app.dependency_overrides[get_model_client] = lambda: fake_model
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                yield ac
        finally:
            app.dependency_overrides.clear()

    await fake_redis.flushall()


def login(client: AsyncClient, user_id: str) -> None:
    client.cookies.set(settings.session_cookie, user_id)


async def seed_users(store: StateManager, count: int = 3, prefix: str = "user") -> list[User]:
    users = []
    for i in range(count):
        user = User(id=f"{prefix}-{i}", name=f"Person {i}")
        await store.save_user(user)
        users.append(user)
    return users


async def seed_profiles(store: StateManager, users: list[User]) -> list[Profile]:
    """One talent profile per user; later users are newer."""
    profiles = []
    for i, user in enumerate(users):
        profile = Profile(
            user_id=user.id,
            name=f"Talent {chr(65 + i)}",
            title="Engineer" if i % 2 == 0 else "Designer",
            skills=["Python", "Product"],
            looking_for="Early-stage climate startup",
            created_at=(BASE_TIME + timedelta(minutes=i)).isoformat(),
        )
        await store.save_profile(profile)
        profiles.append(profile)
    return profiles


async def seed_projects(store: StateManager, owner: User, count: int = 3) -> list[Project]:
    """Published projects owned by `owner`; later projects are newer."""
    projects = []
    for i in range(count):
        project = Project(
            id=f"proj-{owner.id}-{i}",
            owner_id=owner.id,
            name=f"Venture {chr(65 + i)}",
            sector="Climate Tech",
            vision="Decarbonize logistics",
            talent_needs=["Backend Engineer"],
            created_at=(BASE_TIME + timedelta(minutes=i)).isoformat(),
        )
        await store.save_project(project)
        projects.append(project)
    return projects
