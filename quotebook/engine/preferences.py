"""User preferences — notification reminder settings, profile details and theme settings."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

from quotebook.engine.daily_quote import DailyQuoteSelector, DateLike
from quotebook.engine.errors import InvalidTimeError, TableMissing
from quotebook.engine.quote_store import QuoteStore, utc_now_iso
from quotebook.engine.reminders import ReminderScheduler, validate_time

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_TIME = "08:00:00"


# --------------------------------------------------------------------------- #
# Time helpers
# --------------------------------------------------------------------------- #

def to_24h(hour12: int, is_am: bool) -> int:
    """Convert a 1-12 clock hour to 0-23."""
    if isinstance(hour12, bool) or not isinstance(hour12, int) or not 1 <= hour12 <= 12:
        raise InvalidTimeError(f"12-hour clock hour must be in [1, 12], got {hour12!r}")
    if is_am:
        return 0 if hour12 == 12 else hour12
    return 12 if hour12 == 12 else hour12 + 12


def to_12h(hour24: int) -> Tuple[int, bool]:
    """Convert 0-23 to (1-12 hour, is_am)."""
    validate_time(hour24, 0)
    return (hour24 % 12 or 12, hour24 < 12)


def format_time(hour: int, minute: int) -> str:
    validate_time(hour, minute)
    return f"{hour:02d}:{minute:02d}:00"


def parse_time(value: str) -> Tuple[int, int]:
    """Parse 'HH:MM' or 'HH:MM:SS' into (hour, minute)."""
    parts = (value or "").split(":")
    if len(parts) not in (2, 3):
        raise InvalidTimeError(f"Invalid time string: {value!r}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidTimeError(f"Invalid time string: {value!r}") from None
    validate_time(hour, minute)
    return hour, minute


# --------------------------------------------------------------------------- #
# Notification preferences
# --------------------------------------------------------------------------- #

@dataclass
class NotificationPreferences:
    user_id: str
    daily_quote_enabled: bool = True
    notification_time: str = DEFAULT_NOTIFICATION_TIME
    timezone: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def hour(self) -> int:
        return parse_time(self.notification_time)[0]

    @property
    def minute(self) -> int:
        return parse_time(self.notification_time)[1]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def load_notification_preferences(store: QuoteStore, user_id: str) -> NotificationPreferences:
    rows = await store.select("notification_preferences", user_id=user_id, limit=1)
    if not rows:
        return NotificationPreferences(user_id=user_id)
    row = rows[0]
    return NotificationPreferences(
        user_id=user_id,
        daily_quote_enabled=bool(row.get("daily_quote_enabled", True)),
        notification_time=row.get("notification_time") or DEFAULT_NOTIFICATION_TIME,
        timezone=row.get("timezone"),
        updated_at=row.get("updated_at"),
    )


async def save_notification_preferences(store: QuoteStore, prefs: NotificationPreferences) -> NotificationPreferences:
    parse_time(prefs.notification_time)
    prefs.updated_at = utc_now_iso()
    await store.upsert("notification_preferences", prefs.to_dict(), on_conflict=("user_id",))
    return prefs


async def apply_notification_settings(
    store: QuoteStore,
    selector: DailyQuoteSelector,
    scheduler: ReminderScheduler,
    user_id: str,
    enabled: bool,
    hour: int,
    minute: int,
    timezone: Optional[str] = None,
    today: Optional[DateLike] = None,
) -> Dict[str, Any]:
    """Save reminder settings, then schedule today's quote or cancel reminders.

    Scheduling happens only when the reminder is enabled and permission is
    granted; otherwise every pending reminder is cancelled.
    """
    prefs = NotificationPreferences(
        user_id=user_id,
        daily_quote_enabled=enabled,
        notification_time=format_time(hour, minute),
        timezone=timezone,
    )
    await save_notification_preferences(store, prefs)

    granted = await scheduler.schedule_permission()
    schedule_id = None
    if enabled and granted:
        quote = await selector.get_daily_quote(user_id, today if today is not None else date.today())
        if quote is not None:
            schedule_id = await scheduler.schedule_quote(hour, minute, quote)
        else:
            logger.warning("No daily quote for user=%s; reminder not scheduled", user_id)
    else:
        await scheduler.cancel_all()

    return {
        "saved": prefs.to_dict(),
        "scheduled": schedule_id is not None,
        "schedule_id": schedule_id,
        "permission_granted": granted,
    }


# --------------------------------------------------------------------------- #
# Profile
# --------------------------------------------------------------------------- #

@dataclass
class Profile:
    """Row of the ``profiles`` table; ``id`` is the user id."""

    id: str
    username: str = ""
    website: str = ""
    full_name: str = ""
    avatar_url: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def load_profile(store: QuoteStore, user_id: str) -> Profile:
    """The stored profile, or an empty one for a user who never saved."""
    try:
        rows = await store.select("profiles", id=user_id, limit=1)
    except TableMissing:
        logger.warning("profiles table not found; using an empty profile for user=%s", user_id)
        rows = []
    if not rows:
        return Profile(id=user_id)
    row = rows[0]
    return Profile(
        id=user_id,
        username=row.get("username") or "",
        website=row.get("website") or "",
        full_name=row.get("full_name") or "",
        avatar_url=row.get("avatar_url"),
        updated_at=row.get("updated_at"),
    )


async def save_profile(store: QuoteStore, profile: Profile) -> Profile:
    if not profile.id:
        raise ValueError("profile id is required")
    profile.updated_at = utc_now_iso()
    await store.upsert("profiles", profile.to_dict(), on_conflict=("id",))
    return profile


# --------------------------------------------------------------------------- #
# Theme settings
# --------------------------------------------------------------------------- #

THEME_MODES = ("light", "dark", "system")

ACCENT_COLORS: Dict[str, Dict[str, str]] = {
    "gold": {"light": "#F59E0B", "dark": "#FBBF24"},
    "ocean": {"light": "#3B82F6", "dark": "#60A5FA"},
    "forest": {"light": "#10B981", "dark": "#34D399"},
    "teal": {"light": "#0F766E", "dark": "#14B8A6"},
}

LIGHT_COLORS = {
    "primary": "#111827",
    "secondary": "#6B7280",
    "background": "#FFFFFF",
    "surface": "#F3F4F6",
    "text": "#111827",
    "textSecondary": "#6B7280",
    "border": "#E5E7EB",
}

DARK_COLORS = {
    "primary": "#F9FAFB",
    "secondary": "#9CA3AF",
    "background": "#111827",
    "surface": "#1F2937",
    "text": "#F9FAFB",
    "textSecondary": "#9CA3AF",
    "border": "#374151",
}

FONT_SIZE_RANGE = (12, 28)


@dataclass
class ThemeSettings:
    """Per-user appearance settings with an explicit load/save lifecycle."""

    theme: str = "system"
    accent_color: str = "teal"
    font_size: int = 16

    def __post_init__(self):
        if self.theme not in THEME_MODES:
            raise ValueError(f"Invalid theme: {self.theme} (expected one of {THEME_MODES})")
        if self.accent_color not in ACCENT_COLORS:
            raise ValueError(f"Invalid accent_color: {self.accent_color}")
        lo, hi = FONT_SIZE_RANGE
        if isinstance(self.font_size, bool) or not isinstance(self.font_size, int) or not lo <= self.font_size <= hi:
            raise ValueError(f"font_size must be an integer in [{lo}, {hi}], got {self.font_size!r}")

    def is_dark(self, system_scheme: Optional[str] = None) -> bool:
        return self.theme == "dark" or (self.theme == "system" and system_scheme == "dark")

    def colors(self, system_scheme: Optional[str] = None) -> Dict[str, str]:
        dark = self.is_dark(system_scheme)
        palette = dict(DARK_COLORS if dark else LIGHT_COLORS)
        palette["accent"] = ACCENT_COLORS[self.accent_color]["dark" if dark else "light"]
        return palette

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    async def load(cls, store: QuoteStore, user_id: str) -> "ThemeSettings":
        rows = await store.select("user_preferences", user_id=user_id, limit=1)
        if not rows:
            return cls()
        row = rows[0]
        defaults = cls()
        return cls(
            theme=row.get("theme") or defaults.theme,
            accent_color=row.get("accent_color") or defaults.accent_color,
            font_size=row.get("font_size") or defaults.font_size,
        )

    async def save(self, store: QuoteStore, user_id: str) -> None:
        row = {"user_id": user_id, **self.to_dict()}
        await store.upsert("user_preferences", row, on_conflict=("user_id",))
