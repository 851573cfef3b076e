from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import Field, field_validator

from brandpulse.routes.deps import get_classifier, get_storage, get_synthesizer
from brandpulse.schemas import CamelModel, Mention, MentionDraft
from brandpulse.services.collector import collect
from brandpulse.services.llm import SentimentClassifier
from brandpulse.services.synthesizer import MentionSynthesizer
from brandpulse.storage.base import Storage

router = APIRouter(tags=["collect"])


# ---------- Schemas ----------
class CollectIn(CamelModel):
    # falls back to the active saved search queries when empty
    queries: Optional[List[str]] = None
    analyze: bool = Field(False, description="Classify sentiment before storing")


class CollectOut(CamelModel):
    message: str
    collected: int
    mentions: List[Mention] = Field(default_factory=list)


class SearchPreviewIn(CamelModel):
    query: str

    @field_validator("query")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


# ---------- Routes ----------
@router.post("/collect", response_model=CollectOut)
async def collect_mentions(
    payload: Optional[CollectIn] = Body(None),
    storage: Storage = Depends(get_storage),
    synthesizer: MentionSynthesizer = Depends(get_synthesizer),
    classifier: SentimentClassifier = Depends(get_classifier),
):
    payload = payload or CollectIn()
    result = await collect(
        storage,
        synthesizer,
        queries=payload.queries,
        classifier=classifier if payload.analyze else None,
    )
    return CollectOut(
        message="Collection finished",
        collected=result.collected,
        mentions=result.mentions,
    )


@router.post("/search-preview", response_model=List[MentionDraft])
async def search_preview(
    payload: SearchPreviewIn,
    synthesizer: MentionSynthesizer = Depends(get_synthesizer),
):
    # preview only, nothing is stored
    return synthesizer.search(payload.query)
