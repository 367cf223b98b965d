"""Notifications router — daily reminder preferences and the active schedule."""

from __future__ import annotations

from fastapi import APIRouter

from quotebook.api.deps import get_scheduler, get_selector, get_store
from quotebook.api.models import NotificationSettingsRequest
from quotebook.engine.preferences import (
    apply_notification_settings,
    load_notification_preferences,
    to_12h,
    to_24h,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("/permission")
async def request_permission():
    """Ask for notification permission (prompts only the first time)."""
    granted = await get_scheduler().schedule_permission()
    return {"granted": granted}


@router.get("/scheduled")
async def get_scheduled():
    schedules = await get_scheduler().scheduled()
    return {"scheduled": [s.to_dict() for s in schedules], "count": len(schedules)}


@router.delete("/scheduled")
async def cancel_scheduled():
    await get_scheduler().cancel_all()
    return {"status": "ok"}


@router.get("/{user_id}")
async def get_notification_settings(user_id: str):
    prefs = await load_notification_preferences(get_store(), user_id)
    hour12, is_am = to_12h(prefs.hour)
    return {
        **prefs.to_dict(),
        "hour": prefs.hour,
        "minute": prefs.minute,
        "hour12": hour12,
        "is_am": is_am,
    }


@router.put("/{user_id}")
async def put_notification_settings(user_id: str, req: NotificationSettingsRequest):
    """Save reminder settings and reschedule (or cancel) the daily reminder."""
    hour = to_24h(req.hour, req.is_am) if req.is_am is not None else req.hour
    return await apply_notification_settings(
        get_store(),
        get_selector(),
        get_scheduler(),
        user_id,
        enabled=req.daily_quote_enabled,
        hour=hour,
        minute=req.minute,
        timezone=req.timezone,
        today=req.date,
    )
