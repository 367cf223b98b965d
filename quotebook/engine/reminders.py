"""Daily reminder scheduling — at most one repeating local notification at a time."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from quotebook.engine.errors import InvalidTimeError, PermissionDenied
from quotebook.engine.quote_store import Quote

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Daily Inspiration"


class PermissionStatus(str, Enum):
    UNDETERMINED = "undetermined"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass(frozen=True)
class ReminderSchedule:
    id: str
    hour: int
    minute: int
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    repeats: bool = True

    def next_fire_after(self, now: datetime) -> datetime:
        """Next local datetime strictly after *now* at which this trigger fires."""
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hour": self.hour,
            "minute": self.minute,
            "title": self.title,
            "body": self.body,
            "data": dict(self.data),
            "repeats": self.repeats,
        }


def validate_time(hour: Any, minute: Any) -> None:
    """Raise InvalidTimeError unless 0 <= hour <= 23 and 0 <= minute <= 59."""
    for name, value, upper in (("hour", hour, 23), ("minute", minute, 59)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidTimeError(f"{name} must be an integer, got {value!r}")
        if not 0 <= value <= upper:
            raise InvalidTimeError(f"{name} must be in [0, {upper}], got {value}")


def format_reminder_body(text: str, author: str) -> str:
    return f"{text} — {author}"


def reminder_data(text: str, author: str) -> Dict[str, Any]:
    return {"type": "daily_quote", "quote_text": text, "quote_author": author}


class NotificationService(Protocol):
    """OS-level local notification capability."""

    async def get_permission_status(self) -> PermissionStatus:
        ...

    async def request_permission(self) -> PermissionStatus:
        ...

    async def cancel_all_scheduled(self) -> None:
        ...

    async def schedule_repeating(
        self,
        hour: int,
        minute: int,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...

    async def list_scheduled(self) -> List[ReminderSchedule]:
        ...


class LocalNotificationService:
    """In-process notification service.

    *prompt_answer* is what the user answers the first time permission is
    requested; later requests return the remembered status without prompting.
    """

    def __init__(self, prompt_answer: bool = True):
        self.prompt_answer = prompt_answer
        self.prompt_count = 0
        self._status = PermissionStatus.UNDETERMINED
        self._scheduled: Dict[str, ReminderSchedule] = {}

    async def get_permission_status(self) -> PermissionStatus:
        return self._status

    async def request_permission(self) -> PermissionStatus:
        if self._status == PermissionStatus.UNDETERMINED:
            self.prompt_count += 1
            self._status = PermissionStatus.GRANTED if self.prompt_answer else PermissionStatus.DENIED
        return self._status

    async def cancel_all_scheduled(self) -> None:
        self._scheduled.clear()

    async def schedule_repeating(
        self,
        hour: int,
        minute: int,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        schedule = ReminderSchedule(
            id=f"notif_{uuid.uuid4().hex[:8]}",
            hour=hour,
            minute=minute,
            title=title,
            body=body,
            data=dict(data or {}),
        )
        self._scheduled[schedule.id] = schedule
        return schedule.id

    async def list_scheduled(self) -> List[ReminderSchedule]:
        return list(self._scheduled.values())


class ReminderScheduler:
    """Registers the daily quote reminder, replacing any previous one."""

    def __init__(self, service: NotificationService):
        self.service = service

    async def schedule_permission(self) -> bool:
        """Ask for notification permission once; afterwards report the stored answer."""
        status = await self.service.get_permission_status()
        if status == PermissionStatus.UNDETERMINED:
            status = await self.service.request_permission()
        granted = status == PermissionStatus.GRANTED
        if not granted:
            logger.warning("Notification permission %s", status.value)
        return granted

    async def require_permission(self) -> None:
        if not await self.schedule_permission():
            raise PermissionDenied("Notification permission denied")

    async def schedule_daily(
        self,
        hour: int,
        minute: int,
        body_text: str,
        title: str = DEFAULT_TITLE,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Replace the active reminder with one firing daily at hour:minute.

        Returns the schedule id, or None when permission has not been granted.
        The body is fixed now; it is not recomputed when the reminder fires.
        """
        validate_time(hour, minute)
        status = await self.service.get_permission_status()
        if status != PermissionStatus.GRANTED:
            logger.warning("Reminder not scheduled: notification permission %s", status.value)
            return None

        await self.service.cancel_all_scheduled()
        schedule_id = await self.service.schedule_repeating(hour, minute, title, body_text, data)
        logger.info("Scheduled daily reminder %s at %02d:%02d", schedule_id, hour, minute)
        return schedule_id

    async def schedule_quote(self, hour: int, minute: int, quote: Quote) -> Optional[str]:
        return await self.schedule_daily(
            hour,
            minute,
            format_reminder_body(quote.text, quote.author),
            data=reminder_data(quote.text, quote.author),
        )

    async def cancel_all(self) -> None:
        await self.service.cancel_all_scheduled()

    async def scheduled(self) -> List[ReminderSchedule]:
        return await self.service.list_scheduled()
