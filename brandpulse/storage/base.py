"""
Storage interface shared by every backend.

Backends own their records exclusively and hand out copies, so callers
can never mutate stored state except through these methods.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

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
)


class Storage(ABC):
    async def init(self) -> None:
        """Prepare the backend (create tables, ...)."""

    async def close(self) -> None:
        """Release backend resources."""

    # ---------- Mentions ----------
    @abstractmethod
    async def create_mention(self, data: MentionCreate) -> Mention:
        """Store a mention; id and collectedAt are assigned here."""

    @abstractmethod
    async def get_mention(self, mention_id: int) -> Optional[Mention]:
        ...

    @abstractmethod
    async def list_mentions(self, filters: Optional[MentionFilters] = None) -> List[Mention]:
        """Matching mentions, most recently collected first."""

    async def recent_mentions(self, limit: int = 10) -> List[Mention]:
        return await self.list_mentions(MentionFilters(limit=limit))

    @abstractmethod
    async def update_mention(self, mention_id: int, changes: Dict[str, Any]) -> Mention:
        """Merge changes into a mention. Raises NotFoundError."""

    @abstractmethod
    async def delete_mention(self, mention_id: int) -> bool:
        ...

    # ---------- Tags ----------
    @abstractmethod
    async def list_tags(self) -> List[Tag]:
        """Most used first, then by name."""

    @abstractmethod
    async def get_tag(self, tag_id: int) -> Optional[Tag]:
        ...

    @abstractmethod
    async def get_tag_by_name(self, name: str) -> Optional[Tag]:
        ...

    @abstractmethod
    async def create_tag(self, data: TagCreate) -> Tag:
        """Raises ValidationError if the name is taken."""

    @abstractmethod
    async def update_tag(self, tag_id: int, changes: Dict[str, Any]) -> Tag:
        ...

    @abstractmethod
    async def delete_tag(self, tag_id: int) -> bool:
        ...

    @abstractmethod
    async def increment_tag_usage(self, name: str) -> None:
        """Bump usageCount; unknown names are ignored."""

    # ---------- Search queries ----------
    @abstractmethod
    async def list_search_queries(self, active_only: bool = False) -> List[SearchQuery]:
        ...

    @abstractmethod
    async def get_search_query(self, query_id: int) -> Optional[SearchQuery]:
        ...

    @abstractmethod
    async def create_search_query(self, data: SearchQueryCreate) -> SearchQuery:
        ...

    @abstractmethod
    async def update_search_query(self, query_id: int, changes: Dict[str, Any]) -> SearchQuery:
        ...

    @abstractmethod
    async def delete_search_query(self, query_id: int) -> bool:
        ...

    # ---------- Reports ----------
    @abstractmethod
    async def list_reports(self) -> List[Report]:
        """Newest first."""

    @abstractmethod
    async def get_report(self, report_id: int) -> Optional[Report]:
        ...

    @abstractmethod
    async def create_report(self, data: ReportCreate) -> Report:
        ...

    @abstractmethod
    async def delete_report(self, report_id: int) -> bool:
        ...


def build_storage(database_url: str = "") -> Storage:
    """In-memory when no database URL is configured, SQLAlchemy otherwise."""
    if not database_url:
        from brandpulse.storage.memory import MemoryStorage
        return MemoryStorage()
    from brandpulse.storage.sql import SqlStorage
    return SqlStorage(database_url)
