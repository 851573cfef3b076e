from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator

from brandpulse import errors
from brandpulse.routes.deps import get_storage
from brandpulse.routes.mentions import DeletedOut
from brandpulse.schemas import CamelModel, MentionFilters, Report, ReportCreate, Sentiment, as_utc, end_of_day, unique_tags
from brandpulse.services.metrics import sentiment_counts
from brandpulse.storage.base import Storage

router = APIRouter(prefix="/reports", tags=["reports"])


# ---------- Schemas ----------
class ReportFilters(CamelModel):
    sentiment: Optional[Sentiment] = None
    source: Optional[str] = None
    tags: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    normalize_dates = field_validator("start_date", "end_date")(as_utc)
    expand_end_date = field_validator("end_date", mode="before")(end_of_day)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return unique_tags(v) or None


class ReportGenerateIn(CamelModel):
    title: str
    date_range: str
    filters: ReportFilters = Field(default_factory=ReportFilters)

    @field_validator("title", "date_range")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


# ---------- Routes ----------
@router.get("", response_model=List[Report])
async def list_reports(storage: Storage = Depends(get_storage)):
    return await storage.list_reports()


@router.post("/generate", response_model=Report, status_code=status.HTTP_201_CREATED)
async def generate_report(payload: ReportGenerateIn, storage: Storage = Depends(get_storage)):
    mentions = await storage.list_mentions(MentionFilters(**payload.filters.model_dump()))
    counts = sentiment_counts(mentions)
    return await storage.create_report(
        ReportCreate(
            title=payload.title,
            date_range=payload.date_range,
            filters=json.dumps(payload.filters.model_dump(mode="json", by_alias=True, exclude_none=True)),
            total_mentions=counts.total,
            positive_count=counts.positive,
            neutral_count=counts.neutral,
            negative_count=counts.negative,
        )
    )


@router.get("/{report_id}", response_model=Report)
async def get_report(report_id: int, storage: Storage = Depends(get_storage)):
    row = await storage.get_report(report_id)
    if not row:
        raise errors.NotFoundError(f"Report {report_id} not found")
    return row


@router.delete("/{report_id}", response_model=DeletedOut)
async def delete_report(report_id: int, storage: Storage = Depends(get_storage)):
    if not await storage.delete_report(report_id):
        raise errors.NotFoundError(f"Report {report_id} not found")
    return DeletedOut(deleted=True)
