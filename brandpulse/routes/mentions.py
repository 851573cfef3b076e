from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from brandpulse import errors
from brandpulse.routes.deps import get_classifier, get_storage
from brandpulse.schemas import (
    CamelModel,
    Mention,
    MentionCreate,
    MentionFilters,
    MentionUpdate,
    Sentiment,
    TagSuggestion,
)
from brandpulse.services.collector import analyze_mention
from brandpulse.services.llm import SentimentClassifier
from brandpulse.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mentions", tags=["mentions"])


# ---------- Schemas ----------
class AnalyzeBatchIn(CamelModel):
    mention_ids: List[int] = Field(default_factory=list)


class AnalyzeBatchOut(CamelModel):
    processed: int = 0
    failed: List[int] = Field(default_factory=list)
    skipped: List[int] = Field(default_factory=list)
    mentions: List[Mention] = Field(default_factory=list)


class DeletedOut(CamelModel):
    deleted: bool


def split_tags(raw: Optional[str]) -> Optional[List[str]]:
    """`tags=a,b` query parameter -> ["a", "b"]."""
    if not raw:
        return None
    names = [t.strip() for t in raw.split(",") if t.strip()]
    return names or None


async def _get_or_404(storage: Storage, mention_id: int) -> Mention:
    row = await storage.get_mention(mention_id)
    if not row:
        raise errors.NotFoundError(f"Mention {mention_id} not found")
    return row


# ---------- Routes ----------
@router.get("", response_model=List[Mention])
async def list_mentions(
    sentiment: Optional[Sentiment] = Query(None),
    source: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated; matches any"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate", description="A bare date includes that whole day"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    storage: Storage = Depends(get_storage),
):
    try:
        filters = MentionFilters(
            sentiment=sentiment,
            source=source or None,
            tags=split_tags(tags),
            start_date=start_date,
            end_date=end_date or None,
            limit=limit,
            offset=offset,
        )
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e
    return await storage.list_mentions(filters)


@router.get("/recent", response_model=List[Mention])
async def recent_mentions(
    limit: int = Query(10, ge=1, le=100),
    storage: Storage = Depends(get_storage),
):
    return await storage.recent_mentions(limit)


@router.post("", response_model=Mention, status_code=status.HTTP_201_CREATED)
async def create_mention(payload: MentionCreate, storage: Storage = Depends(get_storage)):
    row = await storage.create_mention(payload)
    for name in row.tags:
        await storage.increment_tag_usage(name)
    return row


@router.post("/analyze-batch", response_model=AnalyzeBatchOut)
async def analyze_batch(
    payload: AnalyzeBatchIn,
    storage: Storage = Depends(get_storage),
    classifier: SentimentClassifier = Depends(get_classifier),
):
    out = AnalyzeBatchOut()
    for mention_id in dict.fromkeys(payload.mention_ids):
        row = await storage.get_mention(mention_id)
        if not row or row.is_processed:
            out.skipped.append(mention_id)
            continue
        try:
            out.mentions.append(await analyze_mention(storage, classifier, row))
        except errors.ClassificationError as e:
            logger.warning("analysis of mention %s failed: %s", mention_id, e.message)
            out.failed.append(mention_id)
    out.processed = len(out.mentions)
    return out


@router.get("/{mention_id}", response_model=Mention)
async def get_mention(mention_id: int, storage: Storage = Depends(get_storage)):
    return await _get_or_404(storage, mention_id)


@router.patch("/{mention_id}", response_model=Mention)
async def update_mention(mention_id: int, payload: MentionUpdate, storage: Storage = Depends(get_storage)):
    before = await _get_or_404(storage, mention_id)
    row = await storage.update_mention(mention_id, payload.model_dump(exclude_unset=True))
    for name in row.tags:
        if name not in before.tags:
            await storage.increment_tag_usage(name)
    return row


@router.delete("/{mention_id}", response_model=DeletedOut)
async def delete_mention(mention_id: int, storage: Storage = Depends(get_storage)):
    if not await storage.delete_mention(mention_id):
        raise errors.NotFoundError(f"Mention {mention_id} not found")
    return DeletedOut(deleted=True)


@router.post("/{mention_id}/analyze", response_model=Mention)
async def analyze(
    mention_id: int,
    storage: Storage = Depends(get_storage),
    classifier: SentimentClassifier = Depends(get_classifier),
):
    row = await _get_or_404(storage, mention_id)
    return await analyze_mention(storage, classifier, row)


@router.post("/{mention_id}/suggest-tags", response_model=List[TagSuggestion])
async def suggest_tags(
    mention_id: int,
    storage: Storage = Depends(get_storage),
    classifier: SentimentClassifier = Depends(get_classifier),
):
    row = await _get_or_404(storage, mention_id)
    existing = [t.name for t in await storage.list_tags()]
    return await classifier.suggest_tags(row.content, existing)
