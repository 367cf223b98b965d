"""Quote store — JSON-file backed relational tables for quotes and user data.

The file holds one object whose keys are table names and whose values are
lists of rows. Reads and writes are whole-file; every read-modify-write runs
under a lock so conditional inserts are atomic. The file work itself runs
on a worker thread, so a stuck read never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import jsonschema

from quotebook.engine.errors import DataAccessError, TableMissing, UniqueViolation

logger = logging.getLogger(__name__)

TABLES = (
    "quotes",
    "daily_quotes",
    "favorites",
    "collections",
    "collection_quotes",
    "recent_searches",
    "notification_preferences",
    "user_preferences",
    "profiles",
)

EMPTY_TABLES: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}

UNIQUE_KEYS: Dict[str, Tuple[str, ...]] = {
    "daily_quotes": ("user_id", "date"),
    "favorites": ("user_id", "quote_id"),
    "collection_quotes": ("collection_id", "quote_id"),
    "notification_preferences": ("user_id",),
    "user_preferences": ("user_id",),
    "profiles": ("id",),
}

QUOTE_ROW_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["text", "author"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "text": {"type": "string", "minLength": 1},
        "author": {"type": "string", "minLength": 1},
        "category": {"type": ["string", "null"]},
        "tags": {
            "type": ["array", "null"],
            "items": {"type": "string"},
        },
    },
}

@dataclass(frozen=True)
class Quote:
    id: str
    text: str
    author: str
    category: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Quote":
        tags = row.get("tags")
        return cls(
            id=str(row["id"]),
            text=row["text"],
            author=row["author"],
            category=row.get("category"),
            tags=tuple(tags) if tags is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "author": self.author,
            "category": self.category,
            "tags": list(self.tags) if self.tags is not None else None,
        }

class InsertOutcome(str, Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"

def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def validate_quote_row(row: Dict[str, Any]) -> List[str]:
    """Validate a quote row against QUOTE_ROW_SCHEMA. Returns error strings (empty = valid)."""
    validator = jsonschema.Draft7Validator(QUOTE_ROW_SCHEMA)
    errors: List[str] = []
    for err in sorted(validator.iter_errors(row), key=lambda e: list(e.path)):
        loc = ".".join([str(x) for x in err.path]) if err.path else "<root>"
        errors.append(f"{loc}: {err.message}")
    return errors

def load_catalog(path: Path) -> List[Dict[str, Any]]:
    """Load quote rows from a catalog file ({"quotes": [...]})."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return list(data.get("quotes", []))

def _matches(row: Dict[str, Any], eq: Dict[str, Any]) -> bool:
    return all(row.get(k) == v for k, v in eq.items())

class QuoteStore:
    """Async facade over a JSON file of tables.

    ``seed_quotes`` populates the ``quotes`` table the first time the file is
    created. ``tables`` restricts which tables exist in a fresh file, which is
    how an unprovisioned table (e.g. a missing ``daily_quotes`` migration) is
    represented.
    """

    def __init__(
        self,
        path: Path,
        seed_quotes: Optional[Iterable[Dict[str, Any]]] = None,
        tables: Sequence[str] = TABLES,
    ):
        self.path = Path(path)
        self._seed_quotes = [dict(q) for q in seed_quotes or []]
        self._tables = tuple(tables)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # File I/O
    # ------------------------------------------------------------------ #

    def _template(self) -> Dict[str, List[Dict[str, Any]]]:
        data = {name: [] for name in self._tables}
        if "quotes" in data:
            data["quotes"] = [_prepare_quote(q) for q in self._seed_quotes]
        return data

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            data = self._template()
            self._save(data)
            return data
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DataAccessError(f"Store unreadable at {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise DataAccessError(f"Store at {self.path} is not a table mapping")
        return data

    def _save(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise DataAccessError(f"Store not writable at {self.path}: {e}") from e

    @staticmethod
    def _table(data: Dict[str, List[Dict[str, Any]]], name: str) -> List[Dict[str, Any]]:
        if name not in data:
            raise TableMissing(f"Table '{name}' not found")
        return data[name]

    # ------------------------------------------------------------------ #
    # Generic table operations
    # ------------------------------------------------------------------ #

    async def select(
        self,
        table: str,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
        **eq: Any,
    ) -> List[Dict[str, Any]]:
        """Rows of *table* matching every ``column=value`` in *eq*.

        Rows come back in insertion order, or reversed with newest_first.
        """
        rows = await asyncio.to_thread(self._select_locked, table, eq)
        if newest_first:
            rows.reverse()
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert *row*, filling ``id`` and ``created_at``. Raises UniqueViolation."""
        new_row = dict(row)
        new_row.setdefault("id", new_id())
        new_row.setdefault("created_at", utc_now_iso())
        return await asyncio.to_thread(self._insert_locked, table, new_row)

    async def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        """Insert *row* or merge it into the row sharing the *on_conflict* columns."""
        return await asyncio.to_thread(self._upsert_locked, table, dict(row), tuple(on_conflict))

    async def delete(self, table: str, **eq: Any) -> int:
        """Delete rows matching *eq*. Returns the number removed."""
        if not eq:
            raise ValueError("delete requires at least one filter")
        return await asyncio.to_thread(self._delete_locked, table, eq)

    # Blocking bodies. They run on a worker thread via asyncio.to_thread.

    def _select_locked(self, table: str, eq: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            return [deepcopy(r) for r in self._table(self._load(), table) if _matches(r, eq)]

    def _insert_locked(self, table: str, new_row: Dict[str, Any]) -> Dict[str, Any]:
        keys = UNIQUE_KEYS.get(table)
        with self._lock:
            data = self._load()
            rows = self._table(data, table)
            if any(r.get("id") == new_row["id"] for r in rows):
                raise UniqueViolation(f"Duplicate id in '{table}': {new_row['id']}")
            if keys and any(all(r.get(k) == new_row.get(k) for k in keys) for r in rows):
                raise UniqueViolation(f"Duplicate key {keys} in '{table}'")
            rows.append(new_row)
            self._save(data)
        return deepcopy(new_row)

    def _upsert_locked(self, table: str, row: Dict[str, Any], on_conflict: Tuple[str, ...]) -> Dict[str, Any]:
        with self._lock:
            data = self._load()
            rows = self._table(data, table)
            for existing in rows:
                if all(existing.get(k) == row.get(k) for k in on_conflict):
                    existing.update(row)
                    merged = deepcopy(existing)
                    break
            else:
                merged = dict(row)
                merged.setdefault("id", new_id())
                merged.setdefault("created_at", utc_now_iso())
                rows.append(merged)
                merged = deepcopy(merged)
            self._save(data)
        return merged

    def _delete_locked(self, table: str, eq: Dict[str, Any]) -> int:
        with self._lock:
            data = self._load()
            rows = self._table(data, table)
            kept = [r for r in rows if not _matches(r, eq)]
            removed = len(rows) - len(kept)
            if removed:
                data[table] = kept
                self._save(data)
        return removed

    # ------------------------------------------------------------------ #
    # Quotes
    # ------------------------------------------------------------------ #

    async def list_quotes(self, limit: int = 1000) -> List[Quote]:
        """First *limit* quotes in creation order."""
        try:
            rows = await self.select("quotes", limit=limit)
        except TableMissing:
            logger.warning("quotes table not found; treating pool as empty")
            return []
        return [Quote.from_row(r) for r in rows]

    async def get_quote_by_id(self, quote_id: str) -> Optional[Quote]:
        try:
            rows = await self.select("quotes", id=quote_id, limit=1)
        except TableMissing:
            logger.warning("quotes table not found; quote %s unavailable", quote_id)
            return None
        return Quote.from_row(rows[0]) if rows else None

    async def add_quotes(self, rows: Iterable[Dict[str, Any]]) -> List[Quote]:
        """Validate and append quote rows. Raises ValueError listing schema errors."""
        prepared = []
        for i, row in enumerate(rows):
            errors = validate_quote_row(row)
            if errors:
                raise ValueError(f"quotes[{i}] invalid: {'; '.join(errors)}")
            prepared.append(_prepare_quote(row))
        added = []
        for row in prepared:
            added.append(Quote.from_row(await self.insert("quotes", row)))
        return added

    # ------------------------------------------------------------------ #
    # Daily assignments
    # ------------------------------------------------------------------ #

    async def find_assignment(self, user_id: str, date: str) -> Optional[Dict[str, Any]]:
        try:
            rows = await self.select("daily_quotes", user_id=user_id, date=date, limit=1)
        except TableMissing:
            return None
        return rows[0] if rows else None

    async def insert_assignment(self, user_id: str, date: str, quote_id: str) -> InsertOutcome:
        """Insert the (user_id, date) assignment unless one already exists."""
        try:
            await self.insert("daily_quotes", {"user_id": user_id, "date": date, "quote_id": quote_id})
        except UniqueViolation:
            return InsertOutcome.CONFLICT
        except TableMissing:
            logger.warning("daily_quotes table not found; run the store migration. Assignment not saved.")
            return InsertOutcome.UNAVAILABLE
        except DataAccessError as e:
            logger.error("Error saving daily quote: %s", e)
            return InsertOutcome.UNAVAILABLE
        return InsertOutcome.SUCCESS

def _prepare_quote(row: Dict[str, Any]) -> Dict[str, Any]:
    prepared = dict(row)
    prepared.setdefault("id", new_id("q_"))
    prepared.setdefault("category", None)
    prepared.setdefault("tags", None)
    prepared.setdefault("created_at", utc_now_iso())
    return prepared
