"""Pydantic request models for the quotebook API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


# --------------------------------------------------------------------------- #
# Favorites
# --------------------------------------------------------------------------- #

class FavoriteRequest(BaseModel):
    """Body for POST /api/favorites."""
    user_id: str
    quote_id: str


# --------------------------------------------------------------------------- #
# Collections
# --------------------------------------------------------------------------- #

class CollectionCreate(BaseModel):
    """Body for POST /api/collections."""
    user_id: str
    name: str
    icon: str = "📚"
    color: str = "#0F766E"


class CollectionQuoteRequest(BaseModel):
    """Body for POST /api/collections/{user_id}/{collection_id}/quotes."""
    quote_id: str


# --------------------------------------------------------------------------- #
# Notifications
# --------------------------------------------------------------------------- #

class NotificationSettingsRequest(BaseModel):
    """Body for PUT /api/notifications/{user_id}.

    ``hour`` is 0-23, unless ``is_am`` is given, in which case it is a 1-12
    clock hour.
    """
    daily_quote_enabled: bool = True
    hour: int = 8
    minute: int = 0
    is_am: Optional[bool] = None
    timezone: Optional[str] = None
    date: Optional[str] = None


# --------------------------------------------------------------------------- #
# Appearance
# --------------------------------------------------------------------------- #

class ThemeSettingsRequest(BaseModel):
    """Body for PUT /api/preferences/{user_id} — only given fields change."""
    theme: Optional[str] = None
    accent_color: Optional[str] = None
    font_size: Optional[int] = None


# --------------------------------------------------------------------------- #
# Profile
# --------------------------------------------------------------------------- #

class ProfileUpdate(BaseModel):
    """Body for PUT /api/profiles/{user_id} — only given fields change."""
    username: Optional[str] = None
    website: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
