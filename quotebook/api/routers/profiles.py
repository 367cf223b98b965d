"""Profiles router — per-user account details."""

from __future__ import annotations

from fastapi import APIRouter

from quotebook.api.deps import get_store
from quotebook.api.models import ProfileUpdate
from quotebook.engine.preferences import Profile, load_profile, save_profile

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/{user_id}")
async def get_profile(user_id: str):
    profile = await load_profile(get_store(), user_id)
    return profile.to_dict()


@router.put("/{user_id}")
async def put_profile(user_id: str, req: ProfileUpdate):
    """Update only the given fields and save."""
    store = get_store()
    current = await load_profile(store, user_id)
    merged = {**current.to_dict(), **req.model_dump(exclude_none=True), "id": user_id}
    profile = await save_profile(store, Profile(**merged))
    return profile.to_dict()
