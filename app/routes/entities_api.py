"""Publishing routes: a finished draft becomes a durable project or profile."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from app.errors import InvalidRequest
from app.models import Profile, ProfileDraft, Project, ProjectDraft, User
from app.session import get_session, require_session
from app.state import StateManager, get_state_manager

router = APIRouter(prefix="/api")


@router.post("/projects")
async def publish_project(
    draft: ProjectDraft,
    caller: User = Depends(require_session),
    store: StateManager = Depends(get_state_manager),
):
    if not draft.name or not draft.vision:
        raise InvalidRequest("Missing required fields")

    project = Project(
        id=str(uuid.uuid4())[:8],
        owner_id=caller.id,
        published=True,
        **draft.model_dump(),
    )
    await store.save_project(project)
    return {"success": True, "projectId": project.id}


@router.get("/projects")
async def list_projects(store: StateManager = Depends(get_state_manager)):
    projects = await store.all_published_projects()
    return [p.model_dump(by_alias=True) for p in projects]


@router.get("/profiles")
async def get_own_profile(
    caller: User | None = Depends(get_session),
    store: StateManager = Depends(get_state_manager),
):
    """The caller's published profile, or an empty draft when there is none."""
    if caller is None:
        return ProfileDraft().model_dump(by_alias=True)

    profile = await store.get_profile(caller.id)
    draft = ProfileDraft.model_validate(
        profile.model_dump(include=set(ProfileDraft.model_fields)) if profile else {}
    )
    return draft.model_copy(
        update={
            "name": caller.name or draft.name,
            "avatar": caller.avatar or draft.avatar,
            "bio": caller.bio or draft.bio,
        }
    ).model_dump(by_alias=True)


@router.post("/profiles")
async def publish_profile(
    draft: ProfileDraft,
    caller: User = Depends(require_session),
    store: StateManager = Depends(get_state_manager),
):
    user = caller.model_copy(
        update={
            "name": draft.name or caller.name,
            "avatar": draft.avatar or caller.avatar,
            "bio": draft.bio or caller.bio,
        }
    )
    await store.save_user(user)
    await store.save_profile(Profile(user_id=caller.id, **draft.model_dump()))
    return {"success": True}
