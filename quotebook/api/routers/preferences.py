"""Preferences router — per-user appearance settings."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from quotebook.api.deps import get_store
from quotebook.api.models import ThemeSettingsRequest
from quotebook.engine.preferences import ThemeSettings

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


def _payload(settings: ThemeSettings, system_scheme: Optional[str]):
    return {
        **settings.to_dict(),
        "is_dark": settings.is_dark(system_scheme),
        "colors": settings.colors(system_scheme),
    }


@router.get("/{user_id}")
async def get_preferences(user_id: str, system_scheme: Optional[str] = Query(None)):
    settings = await ThemeSettings.load(get_store(), user_id)
    return _payload(settings, system_scheme)


@router.put("/{user_id}")
async def put_preferences(
    user_id: str,
    req: ThemeSettingsRequest,
    system_scheme: Optional[str] = Query(None),
):
    """Update only the given fields, validate, and save."""
    store = get_store()
    current = await ThemeSettings.load(store, user_id)
    merged = {**current.to_dict(), **req.model_dump(exclude_none=True)}
    try:
        settings = ThemeSettings(**merged)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await settings.save(store, user_id)
    return _payload(settings, system_scheme)
