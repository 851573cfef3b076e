from typing import List

from fastapi import APIRouter, Depends, Query, status

from brandpulse import errors
from brandpulse.routes.deps import get_storage
from brandpulse.routes.mentions import DeletedOut
from brandpulse.schemas import SearchQuery, SearchQueryCreate, SearchQueryUpdate
from brandpulse.storage.base import Storage

router = APIRouter(prefix="/search-queries", tags=["search-queries"])


@router.get("", response_model=List[SearchQuery])
async def list_search_queries(
    active: bool = Query(False, description="Only active queries"),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_search_queries(active_only=active)


@router.post("", response_model=SearchQuery, status_code=status.HTTP_201_CREATED)
async def create_search_query(payload: SearchQueryCreate, storage: Storage = Depends(get_storage)):
    return await storage.create_search_query(payload)


@router.patch("/{query_id}", response_model=SearchQuery)
async def update_search_query(query_id: int, payload: SearchQueryUpdate, storage: Storage = Depends(get_storage)):
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "query" in changes and not changes["query"].strip():
        raise errors.ValidationError.for_field("query", "must not be blank")
    return await storage.update_search_query(query_id, changes)


@router.delete("/{query_id}", response_model=DeletedOut)
async def delete_search_query(query_id: int, storage: Storage = Depends(get_storage)):
    if not await storage.delete_search_query(query_id):
        raise errors.NotFoundError(f"Search query {query_id} not found")
    return DeletedOut(deleted=True)
