from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import asc, delete, desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brandpulse import errors
from brandpulse.db import Base, build_engine, build_sessionmaker
from brandpulse.models.mention import MentionRow
from brandpulse.models.report import ReportRow
from brandpulse.models.search_query import SearchQueryRow
from brandpulse.models.tag import TagRow
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

logger = logging.getLogger(__name__)

_IMMUTABLE = {"id", "collected_at", "created_at", "generated_at"}


class SqlStorage(Storage):
    """SQLAlchemy async backend (asyncpg in production, aiosqlite in tests)."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = build_engine(database_url, echo=echo)
        self._sessions = build_sessionmaker(self.engine)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._sessions() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.exception("storage operation failed")
                raise errors.StorageError(f"Storage failure: {e.__class__.__name__}") from e

    async def _update(self, session: AsyncSession, row, changes: Dict[str, Any]):
        for k, v in changes.items():
            if k not in _IMMUTABLE:
                setattr(row, k, v)
        await session.commit()
        await session.refresh(row)
        return row

    # ---------- Mentions ----------
    async def create_mention(self, data: MentionCreate) -> Mention:
        now = utcnow()
        fields = data.model_dump()
        if fields.get("published_at") is None:
            fields["published_at"] = now
        async with self._session() as db:
            row = MentionRow(collected_at=now, **fields)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return Mention.model_validate(row)

    async def get_mention(self, mention_id: int) -> Optional[Mention]:
        async with self._session() as db:
            row = await db.get(MentionRow, mention_id)
            return Mention.model_validate(row) if row else None

    async def list_mentions(self, filters: Optional[MentionFilters] = None) -> List[Mention]:
        f = filters or MentionFilters()
        stmt = select(MentionRow)
        if f.sentiment is not None:
            stmt = stmt.where(MentionRow.sentiment == f.sentiment)
        if f.source is not None:
            stmt = stmt.where(MentionRow.source == f.source)
        if f.start_date is not None:
            stmt = stmt.where(MentionRow.published_at >= f.start_date)
        if f.end_date is not None:
            stmt = stmt.where(MentionRow.published_at <= f.end_date)
        stmt = stmt.order_by(desc(MentionRow.collected_at), desc(MentionRow.id))

        # tag membership is checked in Python (JSON column), so paginate after it
        if not f.tags:
            if f.offset:
                stmt = stmt.offset(f.offset)
            if f.limit is not None:
                stmt = stmt.limit(f.limit)

        async with self._session() as db:
            rows = (await db.execute(stmt)).scalars().all()
        items = [Mention.model_validate(r) for r in rows]
        if f.tags:
            items = f.paginate([m for m in items if f.matches(m)])
        return items

    async def update_mention(self, mention_id: int, changes: Dict[str, Any]) -> Mention:
        async with self._session() as db:
            row = await db.get(MentionRow, mention_id)
            if not row:
                raise errors.NotFoundError(f"Mention {mention_id} not found")
            row = await self._update(db, row, changes)
            return Mention.model_validate(row)

    async def delete_mention(self, mention_id: int) -> bool:
        async with self._session() as db:
            res = await db.execute(delete(MentionRow).where(MentionRow.id == mention_id))
            await db.commit()
            return res.rowcount > 0

    # ---------- Tags ----------
    async def list_tags(self) -> List[Tag]:
        stmt = select(TagRow).order_by(desc(TagRow.usage_count), asc(TagRow.name))
        async with self._session() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return [Tag.model_validate(r) for r in rows]

    async def get_tag(self, tag_id: int) -> Optional[Tag]:
        async with self._session() as db:
            row = await db.get(TagRow, tag_id)
            return Tag.model_validate(row) if row else None

    async def get_tag_by_name(self, name: str) -> Optional[Tag]:
        async with self._session() as db:
            row = (await db.execute(select(TagRow).where(TagRow.name == name))).scalar_one_or_none()
            return Tag.model_validate(row) if row else None

    async def create_tag(self, data: TagCreate) -> Tag:
        if await self.get_tag_by_name(data.name):
            raise errors.ValidationError.for_field("name", f"Tag '{data.name}' already exists")
        async with self._session() as db:
            row = TagRow(
                name=data.name,
                color=data.color or DEFAULT_TAG_COLOR,
                created_at=utcnow(),
                usage_count=0,
            )
            db.add(row)
            try:
                await db.commit()
            except IntegrityError:
                # lost a race with a concurrent insert of the same name
                await db.rollback()
                raise errors.ValidationError.for_field("name", f"Tag '{data.name}' already exists")
            await db.refresh(row)
            return Tag.model_validate(row)

    async def update_tag(self, tag_id: int, changes: Dict[str, Any]) -> Tag:
        changes = {k: v for k, v in changes.items() if v is not None}
        async with self._session() as db:
            row = await db.get(TagRow, tag_id)
            if not row:
                raise errors.NotFoundError(f"Tag {tag_id} not found")
            name = changes.get("name")
            if name and name != row.name:
                taken = (await db.execute(select(TagRow.id).where(TagRow.name == name))).first()
                if taken:
                    raise errors.ValidationError.for_field("name", f"Tag '{name}' already exists")
            row = await self._update(db, row, changes)
            return Tag.model_validate(row)

    async def delete_tag(self, tag_id: int) -> bool:
        async with self._session() as db:
            res = await db.execute(delete(TagRow).where(TagRow.id == tag_id))
            await db.commit()
            return res.rowcount > 0

    async def increment_tag_usage(self, name: str) -> None:
        stmt = update(TagRow).where(TagRow.name == name).values(usage_count=TagRow.usage_count + 1)
        async with self._session() as db:
            await db.execute(stmt)
            await db.commit()

    # ---------- Search queries ----------
    async def list_search_queries(self, active_only: bool = False) -> List[SearchQuery]:
        stmt = select(SearchQueryRow).order_by(asc(SearchQueryRow.id))
        if active_only:
            stmt = stmt.where(SearchQueryRow.is_active.is_(True))
        async with self._session() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return [SearchQuery.model_validate(r) for r in rows]

    async def get_search_query(self, query_id: int) -> Optional[SearchQuery]:
        async with self._session() as db:
            row = await db.get(SearchQueryRow, query_id)
            return SearchQuery.model_validate(row) if row else None

    async def create_search_query(self, data: SearchQueryCreate) -> SearchQuery:
        async with self._session() as db:
            row = SearchQueryRow(
                query=data.query,
                is_active=data.is_active,
                created_at=utcnow(),
                last_executed=None,
            )
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return SearchQuery.model_validate(row)

    async def update_search_query(self, query_id: int, changes: Dict[str, Any]) -> SearchQuery:
        async with self._session() as db:
            row = await db.get(SearchQueryRow, query_id)
            if not row:
                raise errors.NotFoundError(f"Search query {query_id} not found")
            row = await self._update(db, row, changes)
            return SearchQuery.model_validate(row)

    async def delete_search_query(self, query_id: int) -> bool:
        async with self._session() as db:
            res = await db.execute(delete(SearchQueryRow).where(SearchQueryRow.id == query_id))
            await db.commit()
            return res.rowcount > 0

    # ---------- Reports ----------
    async def list_reports(self) -> List[Report]:
        stmt = select(ReportRow).order_by(desc(ReportRow.generated_at), desc(ReportRow.id))
        async with self._session() as db:
            rows = (await db.execute(stmt)).scalars().all()
        return [Report.model_validate(r) for r in rows]

    async def get_report(self, report_id: int) -> Optional[Report]:
        async with self._session() as db:
            row = await db.get(ReportRow, report_id)
            return Report.model_validate(row) if row else None

    async def create_report(self, data: ReportCreate) -> Report:
        async with self._session() as db:
            row = ReportRow(generated_at=utcnow(), **data.model_dump())
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return Report.model_validate(row)

    async def delete_report(self, report_id: int) -> bool:
        async with self._session() as db:
            res = await db.execute(delete(ReportRow).where(ReportRow.id == report_id))
            await db.commit()
            return res.rowcount > 0
