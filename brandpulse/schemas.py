"""
Records exchanged between storage, services and routes.

Attributes are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Sentiment = Literal["positive", "negative", "neutral"]
SENTIMENTS = ("positive", "negative", "neutral")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def end_of_day(value):
    """A bare date used as an upper bound covers the whole of that UTC day."""
    if isinstance(value, str) and len(value) == 10:
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.max, tzinfo=timezone.utc)
    return value


def unique_tags(tags: Optional[List[str]]) -> List[str]:
    out: List[str] = []
    for t in tags or []:
        name = (t or "").strip()
        if name and name not in out:
            out.append(name)
    return out


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------- Mentions ----------
class MentionDraft(CamelModel):
    """A mention as produced by the synthesizer, before it is stored."""
    content: str
    source: str
    source_url: Optional[str] = None
    author: Optional[str] = None
    published_at: datetime

    normalize_dates = field_validator("published_at")(as_utc)


class MentionCreate(CamelModel):
    content: str
    source: str
    source_url: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    sentiment: Optional[Sentiment] = None
    sentiment_score: Optional[float] = Field(default=None, ge=0, le=1)
    tags: List[str] = Field(default_factory=list)
    is_processed: bool = False
    is_starred: bool = False

    @field_validator("content", "source")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    normalize_dates = field_validator("published_at")(as_utc)
    normalize_tags = field_validator("tags")(unique_tags)

    @model_validator(mode="after")
    def score_iff_sentiment(self) -> "MentionCreate":
        if self.sentiment is not None and self.sentiment_score is None:
            raise ValueError("sentimentScore is required when sentiment is set")
        if self.sentiment is None and self.sentiment_score is not None:
            raise ValueError("sentimentScore requires a sentiment")
        return self

    @classmethod
    def from_draft(cls, draft: MentionDraft) -> "MentionCreate":
        return cls(**draft.model_dump())


class MentionUpdate(CamelModel):
    content: Optional[str] = None
    source: Optional[str] = None
    source_url: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    sentiment: Optional[Sentiment] = None
    sentiment_score: Optional[float] = Field(default=None, ge=0, le=1)
    tags: Optional[List[str]] = None
    is_processed: Optional[bool] = None
    is_starred: Optional[bool] = None

    @field_validator("content", "source")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else v.strip()

    normalize_dates = field_validator("published_at")(as_utc)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else unique_tags(v)

    @model_validator(mode="after")
    def check_fields(self) -> "MentionUpdate":
        sent = self.model_fields_set
        for name in ("content", "source", "published_at", "tags", "is_processed", "is_starred"):
            if name in sent and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        for name in ("content", "source"):
            if name in sent and not getattr(self, name).strip():
                raise ValueError(f"{name} must not be blank")
        if ("sentiment" in sent) != ("sentiment_score" in sent):
            raise ValueError("sentiment and sentimentScore must be updated together")
        if (self.sentiment is None) != (self.sentiment_score is None):
            raise ValueError("sentimentScore is required when sentiment is set")
        return self


class Mention(CamelModel):
    id: int
    content: str
    source: str
    source_url: Optional[str] = None
    author: Optional[str] = None
    published_at: datetime
    collected_at: datetime
    sentiment: Optional[Sentiment] = None
    sentiment_score: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    is_processed: bool = False
    is_starred: bool = False

    normalize_dates = field_validator("published_at", "collected_at")(as_utc)

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags(cls, v):
        return v or []


class MentionFilters(CamelModel):
    sentiment: Optional[Sentiment] = None
    source: Optional[str] = None
    # any-of
    tags: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    normalize_dates = field_validator("start_date", "end_date")(as_utc)
    expand_end_date = field_validator("end_date", mode="before")(end_of_day)

    def matches(self, m: Mention) -> bool:
        if self.sentiment is not None and m.sentiment != self.sentiment:
            return False
        if self.source is not None and m.source != self.source:
            return False
        if self.tags and not any(t in m.tags for t in self.tags):
            return False
        if self.start_date is not None and m.published_at < self.start_date:
            return False
        if self.end_date is not None and m.published_at > self.end_date:
            return False
        return True

    def paginate(self, items: List[Mention]) -> List[Mention]:
        end = None if self.limit is None else self.offset + self.limit
        return items[self.offset:end]


# ---------- Tags ----------
class TagCreate(CamelModel):
    name: str
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class TagUpdate(CamelModel):
    name: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v.strip() if v else v


class Tag(CamelModel):
    id: int
    name: str
    color: str
    created_at: datetime
    usage_count: int = 0

    normalize_dates = field_validator("created_at")(as_utc)


# ---------- Search queries ----------
class SearchQueryCreate(CamelModel):
    query: str
    is_active: bool = True

    @field_validator("query")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class SearchQueryUpdate(CamelModel):
    query: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else v.strip()


class SearchQuery(CamelModel):
    id: int
    query: str
    is_active: bool = True
    created_at: datetime
    last_executed: Optional[datetime] = None

    normalize_dates = field_validator("created_at", "last_executed")(as_utc)


# ---------- Reports ----------
class SentimentCounts(CamelModel):
    total: int = 0
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class ReportCreate(CamelModel):
    title: str
    date_range: str
    filters: Optional[str] = None
    total_mentions: int = 0
    positive_count: int = 0
    neutral_count: int = 0
    negative_count: int = 0


class Report(ReportCreate):
    id: int
    generated_at: datetime

    normalize_dates = field_validator("generated_at")(as_utc)


# ---------- Dashboard ----------
class DashboardMetrics(CamelModel):
    total_mentions: int
    total_growth: Optional[str] = None
    positive: int
    positive_growth: Optional[str] = None
    negative: int
    negative_growth: Optional[str] = None
    neutral: int
    engagement: int
    engagement_growth: Optional[str] = None


class SentimentTrendPoint(CamelModel):
    date: str
    positive: int
    neutral: int
    negative: int


class SourceVolume(CamelModel):
    source: str
    count: int
    percentage: int


# ---------- Classifier ----------
class SentimentResult(CamelModel):
    sentiment: Sentiment
    confidence: float = Field(ge=0, le=1)
    reasoning: Optional[str] = None


class TagSuggestion(CamelModel):
    tag: str
    confidence: float = Field(ge=0, le=1)
