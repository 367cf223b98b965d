"""Collections router — user-named groups of quotes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from quotebook.api.deps import get_store
from quotebook.api.models import CollectionCreate, CollectionQuoteRequest
from quotebook.engine import library

router = APIRouter(prefix="/api/collections", tags=["collections"])


async def _owned_collection(user_id: str, collection_id: str):
    collection = await library.get_collection(get_store(), user_id, collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")
    return collection


@router.get("/{user_id}")
async def get_collections(user_id: str):
    collections = await library.list_collections(get_store(), user_id)
    return {"collections": collections, "count": len(collections)}


@router.post("")
async def create_collection(req: CollectionCreate):
    try:
        collection_id = await library.create_collection(
            get_store(), req.user_id, req.name, icon=req.icon, color=req.color
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "ok", "id": collection_id}


@router.get("/{user_id}/{collection_id}")
async def get_collection(user_id: str, collection_id: str):
    return await _owned_collection(user_id, collection_id)


@router.delete("/{user_id}/{collection_id}")
async def delete_collection(user_id: str, collection_id: str):
    removed = await library.delete_collection(get_store(), user_id, collection_id)
    if not removed:
        raise HTTPException(status_code=404, detail=f"Collection '{collection_id}' not found")
    return {"status": "ok"}


@router.post("/{user_id}/{collection_id}/quotes")
async def add_collection_quote(user_id: str, collection_id: str, req: CollectionQuoteRequest):
    """Add a quote to a collection. Adding it twice returns ``added: false``."""
    await _owned_collection(user_id, collection_id)
    store = get_store()
    quote = await store.get_quote_by_id(req.quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"Quote '{req.quote_id}' not found")
    added = await library.add_to_collection(store, collection_id, quote)
    return {"status": "ok", "added": added}


@router.delete("/{user_id}/{collection_id}/quotes/{quote_id}")
async def remove_collection_quote(user_id: str, collection_id: str, quote_id: str):
    await _owned_collection(user_id, collection_id)
    removed = await library.remove_from_collection(get_store(), collection_id, quote_id)
    if not removed:
        raise HTTPException(status_code=404, detail=f"Quote '{quote_id}' not in collection")
    return {"status": "ok"}
