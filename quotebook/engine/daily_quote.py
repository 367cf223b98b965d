"""Daily quote engine — deterministic, date-seeded quote selection per user."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar, Union

from quotebook.engine.errors import (
    DataAccessError,
    NoQuotesAvailable,
    PersistenceSkipped,
    QuotebookError,
)
from quotebook.engine.quote_store import InsertOutcome, Quote, QuoteStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POOL_LIMIT = 1000
DEFAULT_TIMEOUT_SECONDS = 5.0

_EPOCH = date(1970, 1, 1)
_MS_PER_DAY = 86_400_000

DateLike = Union[date, datetime, str]


def date_key(today: DateLike) -> str:
    """Normalize *today* to a 'YYYY-MM-DD' key. Datetimes keep only their calendar day."""
    if isinstance(today, datetime):
        return today.date().isoformat()
    if isinstance(today, date):
        return today.isoformat()
    if isinstance(today, str):
        try:
            return datetime.strptime(today.strip()[:10], "%Y-%m-%d").date().isoformat()
        except ValueError:
            raise ValueError(f"Invalid date: {today!r} (expected YYYY-MM-DD)") from None
    raise TypeError(f"Unsupported date value: {today!r}")


def date_seed(key: str) -> int:
    """Epoch milliseconds of midnight UTC for the date *key*."""
    d = datetime.strptime(key, "%Y-%m-%d").date()
    return (d - _EPOCH).days * _MS_PER_DAY


def pick_index(key: str, pool_size: int) -> int:
    """Deterministic index in [0, pool_size) for the date *key*."""
    if pool_size < 1:
        raise ValueError(f"pool_size must be >= 1, got {pool_size}")
    return date_seed(key) % pool_size


@dataclass
class DailyQuoteResult:
    """Selected quote plus the warning conditions hit while selecting it."""

    quote: Optional[Quote]
    date: str
    persisted: bool = False
    warnings: List[QuotebookError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote": self.quote.to_dict() if self.quote else None,
            "date": self.date,
            "persisted": self.persisted,
            "warnings": [w.to_dict() for w in self.warnings],
        }


class DailyQuoteSelector:
    """Picks (or reuses) one quote per user per calendar day.

    The index is derived only from the date, so every user asking on the same
    day against the same pool gets the same quote; the assignment row is still
    stored per user. Concurrent requests for the same (user, date) share one
    in-flight selection, and a lost insert race returns the stored winner.
    """

    def __init__(
        self,
        store: QuoteStore,
        *,
        pool_limit: int = DEFAULT_POOL_LIMIT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.pool_limit = pool_limit
        self.timeout_seconds = timeout_seconds
        self._inflight: Dict[Tuple[str, str], "asyncio.Future[DailyQuoteResult]"] = {}

    async def get_daily_quote(self, user_id: str, today: Optional[DateLike] = None) -> Optional[Quote]:
        """Today's quote for *user_id*, or None when the pool is empty."""
        result = await self.select(user_id, today)
        return result.quote

    async def select(self, user_id: str, today: Optional[DateLike] = None) -> DailyQuoteResult:
        if not user_id:
            raise ValueError("user_id is required")
        key = date_key(today if today is not None else date.today())
        flight_key = (user_id, key)

        task = self._inflight.get(flight_key)
        if task is None:
            task = asyncio.ensure_future(self._select(user_id, key))
            self._inflight[flight_key] = task
            task.add_done_callback(lambda t: self._forget(flight_key, t))
        # Callers that give up do not cancel the shared selection.
        return await asyncio.shield(task)

    def _forget(self, flight_key: Tuple[str, str], task: "asyncio.Future[DailyQuoteResult]") -> None:
        if self._inflight.get(flight_key) is task:
            del self._inflight[flight_key]

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise DataAccessError(f"{what} timed out after {self.timeout_seconds}s") from e
        except OSError as e:
            raise DataAccessError(f"{what} failed: {e}") from e

    async def _resolve_assignment(self, user_id: str, key: str) -> Optional[Quote]:
        existing = await self._call(self.store.find_assignment(user_id, key), "find_assignment")
        if not existing:
            return None
        quote = await self._call(self.store.get_quote_by_id(existing["quote_id"]), "get_quote_by_id")
        if quote is None:
            logger.warning(
                "Assigned quote %s missing for user=%s date=%s", existing["quote_id"], user_id, key
            )
        return quote

    async def _select(self, user_id: str, key: str) -> DailyQuoteResult:
        stored = await self._resolve_assignment(user_id, key)
        if stored is not None:
            return DailyQuoteResult(quote=stored, date=key, persisted=True)

        pool = await self._call(self.store.list_quotes(self.pool_limit), "list_quotes")
        if not pool:
            logger.warning("No quotes available for user=%s date=%s", user_id, key)
            return DailyQuoteResult(
                quote=None,
                date=key,
                warnings=[NoQuotesAvailable("No quotes available")],
            )

        selected = pool[pick_index(key, len(pool))]

        try:
            outcome = await self._call(
                self.store.insert_assignment(user_id, key, selected.id), "insert_assignment"
            )
        except DataAccessError as e:
            logger.warning("Daily quote not saved for user=%s date=%s: %s", user_id, key, e)
            outcome = InsertOutcome.UNAVAILABLE

        if outcome == InsertOutcome.SUCCESS:
            return DailyQuoteResult(quote=selected, date=key, persisted=True)

        if outcome == InsertOutcome.CONFLICT:
            winner = await self._resolve_assignment(user_id, key)
            if winner is not None:
                return DailyQuoteResult(quote=winner, date=key, persisted=True)

        return DailyQuoteResult(
            quote=selected,
            date=key,
            warnings=[PersistenceSkipped(f"Daily quote for {key} was not saved ({outcome.value})")],
        )
