"""Recent searches router."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from quotebook.api.deps import get_store
from quotebook.engine import library

router = APIRouter(prefix="/api/searches", tags=["searches"])


@router.get("/{user_id}")
async def get_recent_searches(user_id: str, limit: int = Query(library.RECENT_SEARCH_LIMIT, ge=1, le=50)):
    searches = await library.list_recent_searches(get_store(), user_id, limit=limit)
    return {"searches": searches}


@router.delete("/{user_id}/{search_id}")
async def delete_recent_search(user_id: str, search_id: str):
    if not await library.clear_recent_search(get_store(), user_id, search_id):
        raise HTTPException(status_code=404, detail=f"Search '{search_id}' not found")
    return {"status": "ok"}


@router.delete("/{user_id}")
async def delete_all_recent_searches(user_id: str):
    removed = await library.clear_recent_searches(get_store(), user_id)
    return {"status": "ok", "removed": removed}
