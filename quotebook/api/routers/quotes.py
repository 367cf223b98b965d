"""Quotes router — daily quote, browsing, search and facets."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from quotebook.api.deps import get_selector, get_store
from quotebook.engine import library

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


@router.get("/daily")
async def get_daily_quote(
    user_id: str = Query(..., min_length=1),
    date: Optional[str] = Query(None, description="YYYY-MM-DD; defaults to today"),
):
    """Today's quote for the user, with any warnings hit while selecting it."""
    try:
        result = await get_selector().select(user_id, date)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    payload = result.to_dict()
    if result.quote is not None:
        payload["share_text"] = library.format_share_text(result.quote.text, result.quote.author)
    return payload


@router.get("/recent")
async def get_recent_quotes(limit: int = Query(10, ge=1, le=100)):
    quotes = await library.recent_quotes(get_store(), limit=limit)
    return {"quotes": [q.to_dict() for q in quotes], "count": len(quotes)}


@router.get("/search")
async def search(
    q: str = Query(""),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
):
    """Search text, author and category. Remembers the query for *user_id*."""
    store = get_store()
    results = await library.search_quotes(store, q, limit=limit)
    if user_id:
        await library.record_search(store, user_id, q)
    return {"query": q.strip(), "quotes": [r.to_dict() for r in results], "count": len(results)}


@router.get("/categories")
async def get_categories():
    counts = await library.category_counts(get_store())
    return {"categories": [{"name": name, "count": count} for name, count in counts]}


@router.get("/category/{name}")
async def get_category_feed(
    name: str,
    tag: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
):
    quotes = await library.quotes_by_category(get_store(), name, tag=tag, limit=limit)
    return {
        "category": name,
        "tag": tag,
        "featured": quotes[0].to_dict() if quotes else None,
        "quotes": [q.to_dict() for q in quotes],
    }


@router.get("/authors")
async def get_top_authors(limit: int = Query(10, ge=1, le=100)):
    ranked = await library.top_authors(get_store(), limit=limit)
    return {"authors": [{"name": name, "count": count} for name, count in ranked]}


@router.get("/tags")
async def get_top_tags(limit: int = Query(10, ge=1, le=100)):
    ranked = await library.top_tags(get_store(), limit=limit)
    return {"tags": [{"name": name, "count": count} for name, count in ranked]}


@router.get("/{quote_id}")
async def get_quote(quote_id: str):
    quote = await get_store().get_quote_by_id(quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"Quote '{quote_id}' not found")
    payload = quote.to_dict()
    payload["share_text"] = library.format_share_text(quote.text, quote.author)
    return payload
