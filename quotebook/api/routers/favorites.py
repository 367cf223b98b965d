"""Favorites router — list, add, check and remove favorite quotes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from quotebook.api.deps import get_store
from quotebook.api.models import FavoriteRequest
from quotebook.engine import library

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


@router.get("/{user_id}")
async def get_favorites(user_id: str):
    favorites = await library.list_favorites(get_store(), user_id)
    return {"favorites": favorites, "count": len(favorites)}


@router.post("")
async def add_favorite(req: FavoriteRequest):
    """Favorite a quote. Favoriting twice is not an error; ``added`` is False."""
    store = get_store()
    quote = await store.get_quote_by_id(req.quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"Quote '{req.quote_id}' not found")
    added = await library.add_to_favorites(store, req.user_id, quote)
    return {"status": "ok", "added": added}


@router.get("/{user_id}/{quote_id}")
async def check_favorite(user_id: str, quote_id: str):
    favorited = await library.is_favorited(get_store(), user_id, quote_id)
    return {"quote_id": quote_id, "favorited": favorited}


@router.delete("/{user_id}/entries/{favorite_id}")
async def delete_favorite(user_id: str, favorite_id: str):
    removed = await library.remove_from_favorites(get_store(), user_id, favorite_id)
    if not removed:
        raise HTTPException(status_code=404, detail=f"Favorite '{favorite_id}' not found")
    return {"status": "ok"}
