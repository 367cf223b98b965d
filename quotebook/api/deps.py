"""Shared dependencies for the quotebook API."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

from quotebook.engine.daily_quote import DEFAULT_POOL_LIMIT, DEFAULT_TIMEOUT_SECONDS, DailyQuoteSelector
from quotebook.engine.quote_store import QuoteStore, load_catalog
from quotebook.engine.reminders import LocalNotificationService, ReminderScheduler

REPO_ROOT = Path(__file__).resolve().parents[2]
STORE_PATH = Path(os.environ.get("QUOTEBOOK_STORE_PATH", REPO_ROOT / "quotebook" / "data" / "store.json"))
CATALOG_PATH = REPO_ROOT / "quotebook" / "catalog" / "quotes" / "v1" / "quotes_catalog_v1.json"
DATA_TIMEOUT_SECONDS = float(os.environ.get("QUOTEBOOK_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
POOL_LIMIT = int(os.environ.get("QUOTEBOOK_POOL_LIMIT", DEFAULT_POOL_LIMIT))
# Answer the local notification service gives to the first permission prompt.
NOTIFICATIONS_GRANTED = os.environ.get("QUOTEBOOK_NOTIFICATIONS", "grant").lower() != "deny"

_cache: Dict[str, Any] = {}


def reset_cache() -> None:
    """Drop the cached store, selector and notification service."""
    _cache.clear()


def get_store() -> QuoteStore:
    """Store at STORE_PATH, seeded from the catalog when the file is first created."""
    path = Path(STORE_PATH)
    store = _cache.get("store")
    if store is None or store.path != path:
        seed = load_catalog(CATALOG_PATH) if Path(CATALOG_PATH).exists() else []
        store = QuoteStore(path, seed_quotes=seed)
        _cache["store"] = store
        _cache.pop("selector", None)
    return store


def get_selector() -> DailyQuoteSelector:
    """Shared selector so concurrent requests join the same in-flight selection."""
    store = get_store()
    selector = _cache.get("selector")
    if selector is None or selector.store is not store:
        selector = DailyQuoteSelector(store, pool_limit=POOL_LIMIT, timeout_seconds=DATA_TIMEOUT_SECONDS)
        _cache["selector"] = selector
    return selector


def get_notification_service() -> LocalNotificationService:
    service = _cache.get("notifications")
    if service is None:
        service = LocalNotificationService(prompt_answer=NOTIFICATIONS_GRANTED)
        _cache["notifications"] = service
    return service


def get_scheduler() -> ReminderScheduler:
    return ReminderScheduler(get_notification_service())
