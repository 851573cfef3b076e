from typing import List

from fastapi import APIRouter, Depends, status

from brandpulse import errors
from brandpulse.routes.deps import get_storage
from brandpulse.routes.mentions import DeletedOut
from brandpulse.schemas import Tag, TagCreate, TagUpdate
from brandpulse.storage.base import Storage

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=List[Tag])
async def list_tags(storage: Storage = Depends(get_storage)):
    return await storage.list_tags()


@router.post("", response_model=Tag, status_code=status.HTTP_201_CREATED)
async def create_tag(payload: TagCreate, storage: Storage = Depends(get_storage)):
    return await storage.create_tag(payload)


@router.patch("/{tag_id}", response_model=Tag)
async def update_tag(tag_id: int, payload: TagUpdate, storage: Storage = Depends(get_storage)):
    return await storage.update_tag(tag_id, payload.model_dump(exclude_unset=True))


@router.delete("/{tag_id}", response_model=DeletedOut)
async def delete_tag(tag_id: int, storage: Storage = Depends(get_storage)):
    if not await storage.delete_tag(tag_id):
        raise errors.NotFoundError(f"Tag {tag_id} not found")
    return DeletedOut(deleted=True)
