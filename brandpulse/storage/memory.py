from __future__ import annotations

from itertools import count
from typing import Any, Dict, List, Optional

from brandpulse import errors
from brandpulse.schemas import (
    Mention,
    MentionCreate,
    MentionFilters,
    Report,
    ReportCreate,
    SearchQuery,
    SearchQueryCreate,
    Tag,
    TagCreate,
    utcnow,
)
from brandpulse.storage.base import Storage
from brandpulse.utils.config import DEFAULT_TAG_COLOR

_IMMUTABLE = {"id", "collected_at", "created_at", "generated_at"}


def _merge(record, changes: Dict[str, Any]):
    data = record.model_dump()
    data.update({k: v for k, v in changes.items() if k not in _IMMUTABLE})
    return type(record).model_validate(data)


class MemoryStorage(Storage):
    """Dict-backed storage for tests and database-less runs."""

    def __init__(self):
        self._mentions: Dict[int, Mention] = {}
        self._tags: Dict[int, Tag] = {}
        self._queries: Dict[int, SearchQuery] = {}
        self._reports: Dict[int, Report] = {}
        self._mention_ids = count(1)
        self._tag_ids = count(1)
        self._query_ids = count(1)
        self._report_ids = count(1)

    # ---------- Mentions ----------
    async def create_mention(self, data: MentionCreate) -> Mention:
        now = utcnow()
        fields = data.model_dump()
        if fields.get("published_at") is None:
            fields["published_at"] = now
        row = Mention(id=next(self._mention_ids), collected_at=now, **fields)
        self._mentions[row.id] = row
        return row.model_copy(deep=True)

    async def get_mention(self, mention_id: int) -> Optional[Mention]:
        row = self._mentions.get(mention_id)
        return row.model_copy(deep=True) if row else None

    async def list_mentions(self, filters: Optional[MentionFilters] = None) -> List[Mention]:
        filters = filters or MentionFilters()
        rows = [m for m in self._mentions.values() if filters.matches(m)]
        rows.sort(key=lambda m: (m.collected_at, m.id), reverse=True)
        return [m.model_copy(deep=True) for m in filters.paginate(rows)]

    async def update_mention(self, mention_id: int, changes: Dict[str, Any]) -> Mention:
        row = self._mentions.get(mention_id)
        if row is None:
            raise errors.NotFoundError(f"Mention {mention_id} not found")
        row = _merge(row, changes)
        self._mentions[mention_id] = row
        return row.model_copy(deep=True)

    async def delete_mention(self, mention_id: int) -> bool:
        return self._mentions.pop(mention_id, None) is not None

    # ---------- Tags ----------
    async def list_tags(self) -> List[Tag]:
        rows = sorted(self._tags.values(), key=lambda t: (-t.usage_count, t.name))
        return [t.model_copy() for t in rows]

    async def get_tag(self, tag_id: int) -> Optional[Tag]:
        row = self._tags.get(tag_id)
        return row.model_copy() if row else None

    async def get_tag_by_name(self, name: str) -> Optional[Tag]:
        for t in self._tags.values():
            if t.name == name:
                return t.model_copy()
        return None

    async def create_tag(self, data: TagCreate) -> Tag:
        if await self.get_tag_by_name(data.name):
            raise errors.ValidationError.for_field("name", f"Tag '{data.name}' already exists")
        row = Tag(
            id=next(self._tag_ids),
            name=data.name,
            color=data.color or DEFAULT_TAG_COLOR,
            created_at=utcnow(),
            usage_count=0,
        )
        self._tags[row.id] = row
        return row.model_copy()

    async def update_tag(self, tag_id: int, changes: Dict[str, Any]) -> Tag:
        row = self._tags.get(tag_id)
        if row is None:
            raise errors.NotFoundError(f"Tag {tag_id} not found")
        name = changes.get("name")
        if name and name != row.name and await self.get_tag_by_name(name):
            raise errors.ValidationError.for_field("name", f"Tag '{name}' already exists")
        row = _merge(row, {k: v for k, v in changes.items() if v is not None})
        self._tags[tag_id] = row
        return row.model_copy()

    async def delete_tag(self, tag_id: int) -> bool:
        return self._tags.pop(tag_id, None) is not None

    async def increment_tag_usage(self, name: str) -> None:
        for tag_id, t in self._tags.items():
            if t.name == name:
                self._tags[tag_id] = t.model_copy(update={"usage_count": t.usage_count + 1})
                return

    # ---------- Search queries ----------
    async def list_search_queries(self, active_only: bool = False) -> List[SearchQuery]:
        rows = [q for q in self._queries.values() if q.is_active or not active_only]
        return [q.model_copy() for q in sorted(rows, key=lambda q: q.id)]

    async def get_search_query(self, query_id: int) -> Optional[SearchQuery]:
        row = self._queries.get(query_id)
        return row.model_copy() if row else None

    async def create_search_query(self, data: SearchQueryCreate) -> SearchQuery:
        row = SearchQuery(
            id=next(self._query_ids),
            query=data.query,
            is_active=data.is_active,
            created_at=utcnow(),
            last_executed=None,
        )
        self._queries[row.id] = row
        return row.model_copy()

    async def update_search_query(self, query_id: int, changes: Dict[str, Any]) -> SearchQuery:
        row = self._queries.get(query_id)
        if row is None:
            raise errors.NotFoundError(f"Search query {query_id} not found")
        row = _merge(row, changes)
        self._queries[query_id] = row
        return row.model_copy()

    async def delete_search_query(self, query_id: int) -> bool:
        return self._queries.pop(query_id, None) is not None

    # ---------- Reports ----------
    async def list_reports(self) -> List[Report]:
        rows = sorted(self._reports.values(), key=lambda r: (r.generated_at, r.id), reverse=True)
        return [r.model_copy() for r in rows]

    async def get_report(self, report_id: int) -> Optional[Report]:
        row = self._reports.get(report_id)
        return row.model_copy() if row else None

    async def create_report(self, data: ReportCreate) -> Report:
        row = Report(id=next(self._report_ids), generated_at=utcnow(), **data.model_dump())
        self._reports[row.id] = row
        return row.model_copy()

    async def delete_report(self, report_id: int) -> bool:
        return self._reports.pop(report_id, None) is not None
