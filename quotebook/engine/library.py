"""Favorites, collections, search and recent searches over the quote store."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from quotebook.engine.errors import UniqueViolation
from quotebook.engine.quote_store import Quote, QuoteStore


DEFAULT_COLLECTION_ICON = "📚"
DEFAULT_COLLECTION_COLOR = "#0F766E"
FACET_SAMPLE_SIZE = 1000
RECENT_SEARCH_LIMIT = 10


# --------------------------------------------------------------------------- #
# Favorites
# --------------------------------------------------------------------------- #

async def add_to_favorites(store: QuoteStore, user_id: str, quote: Quote) -> bool:
    """Favorite *quote* for *user_id*. False if it was already a favorite."""
    try:
        await store.insert("favorites", {
            "user_id": user_id,
            "quote_id": quote.id,
            "quote_text": quote.text,
            "quote_author": quote.author,
        })
    except UniqueViolation:
        return False
    return True


async def remove_from_favorites(store: QuoteStore, user_id: str, favorite_id: str) -> bool:
    removed = await store.delete("favorites", id=favorite_id, user_id=user_id)
    return removed > 0


async def is_favorited(store: QuoteStore, user_id: str, quote_id: str) -> bool:
    rows = await store.select("favorites", user_id=user_id, quote_id=quote_id, limit=1)
    return bool(rows)


async def list_favorites(store: QuoteStore, user_id: str) -> List[Dict[str, Any]]:
    return await store.select("favorites", user_id=user_id, newest_first=True)


# --------------------------------------------------------------------------- #
# Collections
# --------------------------------------------------------------------------- #

async def create_collection(
    store: QuoteStore,
    user_id: str,
    name: str,
    icon: str = DEFAULT_COLLECTION_ICON,
    color: str = DEFAULT_COLLECTION_COLOR,
) -> str:
    """Create a collection and return its id."""
    if not name or not name.strip():
        raise ValueError("Collection name is required")
    row = await store.insert("collections", {
        "user_id": user_id,
        "name": name.strip(),
        "icon": icon,
        "color": color,
    })
    return row["id"]


async def list_collections(store: QuoteStore, user_id: str) -> List[Dict[str, Any]]:
    """User's collections, newest first, each with a ``quote_count``."""
    collections = await store.select("collections", user_id=user_id, newest_first=True)
    counts = Counter(r["collection_id"] for r in await store.select("collection_quotes"))
    for c in collections:
        c["quote_count"] = counts.get(c["id"], 0)
    return collections


async def get_collection(store: QuoteStore, user_id: str, collection_id: str) -> Optional[Dict[str, Any]]:
    rows = await store.select("collections", id=collection_id, user_id=user_id, limit=1)
    if not rows:
        return None
    collection = rows[0]
    collection["quotes"] = await store.select(
        "collection_quotes", collection_id=collection_id, newest_first=True
    )
    return collection


async def add_to_collection(store: QuoteStore, collection_id: str, quote: Quote) -> bool:
    """Add *quote* to a collection. False if it is already there."""
    try:
        await store.insert("collection_quotes", {
            "collection_id": collection_id,
            "quote_id": quote.id,
            "quote_text": quote.text,
            "quote_author": quote.author,
        })
    except UniqueViolation:
        return False
    return True


async def remove_from_collection(store: QuoteStore, collection_id: str, quote_id: str) -> bool:
    removed = await store.delete("collection_quotes", collection_id=collection_id, quote_id=quote_id)
    return removed > 0


async def delete_collection(store: QuoteStore, user_id: str, collection_id: str) -> bool:
    removed = await store.delete("collections", id=collection_id, user_id=user_id)
    if removed:
        await store.delete("collection_quotes", collection_id=collection_id)
    return removed > 0


# --------------------------------------------------------------------------- #
# Browsing and search
# --------------------------------------------------------------------------- #

def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


async def search_quotes(store: QuoteStore, query: str, limit: int = 50) -> List[Quote]:
    """Case-insensitive substring match on text, author or category."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    results: List[Quote] = []
    for quote in await store.list_quotes(limit=FACET_SAMPLE_SIZE):
        if _contains(quote.text, needle) or _contains(quote.author, needle) or _contains(quote.category, needle):
            results.append(quote)
            if len(results) >= limit:
                break
    return results


async def recent_quotes(store: QuoteStore, limit: int = 10) -> List[Quote]:
    rows = await store.select("quotes", newest_first=True, limit=limit)
    return [Quote.from_row(r) for r in rows]


async def quotes_by_category(
    store: QuoteStore,
    category: str,
    tag: Optional[str] = None,
    limit: int = 20,
) -> List[Quote]:
    """Newest quotes whose category contains *category*, optionally with *tag*."""
    needle = category.strip().lower()
    wanted_tag = None
    if tag:
        wanted_tag = tag if tag.startswith("#") else f"#{tag}"
    results: List[Quote] = []
    for row in await store.select("quotes", newest_first=True):
        quote = Quote.from_row(row)
        if not _contains(quote.category, needle):
            continue
        if wanted_tag and wanted_tag not in (quote.tags or ()):
            continue
        results.append(quote)
        if len(results) >= limit:
            break
    return results


def _ranked(counter: Counter, limit: Optional[int]) -> List[Tuple[str, int]]:
    ranked = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked[:limit] if limit is not None else ranked


async def category_counts(store: QuoteStore) -> List[Tuple[str, int]]:
    quotes = await store.list_quotes(limit=FACET_SAMPLE_SIZE)
    return _ranked(Counter(q.category for q in quotes if q.category), None)


async def top_authors(store: QuoteStore, limit: int = 10) -> List[Tuple[str, int]]:
    quotes = await store.list_quotes(limit=FACET_SAMPLE_SIZE)
    return _ranked(Counter(q.author for q in quotes), limit)


async def top_tags(store: QuoteStore, limit: int = 10) -> List[Tuple[str, int]]:
    quotes = await store.list_quotes(limit=FACET_SAMPLE_SIZE)
    return _ranked(Counter(t for q in quotes for t in (q.tags or ())), limit)


# --------------------------------------------------------------------------- #
# Recent searches
# --------------------------------------------------------------------------- #

async def record_search(store: QuoteStore, user_id: str, query: str) -> Optional[Dict[str, Any]]:
    """Remember a search for *user_id*. Blank queries are ignored."""
    text = (query or "").strip()
    if not text:
        return None
    return await store.insert("recent_searches", {"user_id": user_id, "search_query": text})


async def list_recent_searches(
    store: QuoteStore, user_id: str, limit: int = RECENT_SEARCH_LIMIT
) -> List[Dict[str, Any]]:
    return await store.select("recent_searches", user_id=user_id, newest_first=True, limit=limit)


async def clear_recent_search(store: QuoteStore, user_id: str, search_id: str) -> bool:
    return await store.delete("recent_searches", id=search_id, user_id=user_id) > 0


async def clear_recent_searches(store: QuoteStore, user_id: str) -> int:
    return await store.delete("recent_searches", user_id=user_id)


# --------------------------------------------------------------------------- #
# Sharing
# --------------------------------------------------------------------------- #

def format_share_text(text: str, author: str) -> str:
    return f'"{text}"\n— {author}'
