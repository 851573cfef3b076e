from datetime import timedelta

import pytest

from brandpulse import errors
from brandpulse.schemas import (
    MentionCreate,
    MentionFilters,
    ReportCreate,
    SearchQueryCreate,
    TagCreate,
    utcnow,
)


# ---------- Mentions ----------
async def test_create_assigns_id_collected_at_and_defaults(storage, make_mention):
    before = utcnow()
    first = await storage.create_mention(make_mention("one"))
    second = await storage.create_mention(make_mention("two"))

    assert second.id > first.id
    assert first.collected_at >= before
    assert first.source_url is None and first.author is None
    assert first.tags == []
    assert first.is_processed is False and first.is_starred is False
    assert first.sentiment is None and first.sentiment_score is None

    # deleting the newest mention does not free its id
    assert await storage.delete_mention(second.id)
    third = await storage.create_mention(make_mention("three"))
    assert third.id > second.id


async def test_create_then_get_round_trips(storage, make_mention):
    created = await storage.create_mention(
        make_mention("tagged", tags=["price", "support"], sentiment="negative", sentiment_score=0.7)
    )
    assert await storage.get_mention(created.id) == created


async def test_published_at_defaults_to_now(storage):
    before = utcnow()
    row = await storage.create_mention(MentionCreate(content="no date", source="Blog"))
    assert row.published_at >= before


async def test_get_unknown_mention_is_none(storage):
    assert await storage.get_mention(999) is None


async def test_list_is_newest_collected_first(storage, make_mention):
    for i in range(5):
        await storage.create_mention(make_mention(f"m{i}"))

    rows = await storage.list_mentions()
    assert [r.content for r in rows] == ["m4", "m3", "m2", "m1", "m0"]
    for a, b in zip(rows, rows[1:]):
        assert a.collected_at >= b.collected_at


async def test_list_filters_are_conjunctive(storage, make_mention, now):
    await storage.create_mention(make_mention("a", source="Twitter", tags=["price"], sentiment="positive", sentiment_score=0.9))
    await storage.create_mention(make_mention("b", source="Twitter", tags=["delivery"], sentiment="negative", sentiment_score=0.6))
    await storage.create_mention(make_mention("c", source="Facebook", tags=["price"], sentiment="positive", sentiment_score=0.8))
    await storage.create_mention(make_mention("d", source="Twitter", published_at=now - timedelta(days=10)))

    rows = await storage.list_mentions(MentionFilters(source="Twitter", sentiment="positive"))
    assert [r.content for r in rows] == ["a"]

    rows = await storage.list_mentions(MentionFilters(tags=["delivery", "price"]))
    assert {r.content for r in rows} == {"a", "b", "c"}

    rows = await storage.list_mentions(MentionFilters(tags=["price"], source="Facebook"))
    assert [r.content for r in rows] == ["c"]

    rows = await storage.list_mentions(
        MentionFilters(start_date=now - timedelta(days=11), end_date=now - timedelta(days=9))
    )
    assert [r.content for r in rows] == ["d"]


async def test_list_pagination(storage, make_mention):
    for i in range(5):
        await storage.create_mention(make_mention(f"m{i}", tags=["x"]))

    page = await storage.list_mentions(MentionFilters(limit=2, offset=1))
    assert [r.content for r in page] == ["m3", "m2"]

    # pagination also applies after the tag filter
    page = await storage.list_mentions(MentionFilters(tags=["x"], limit=2, offset=3))
    assert [r.content for r in page] == ["m1", "m0"]


async def test_recent_mentions_limit(storage, make_mention):
    for i in range(4):
        await storage.create_mention(make_mention(f"m{i}"))
    rows = await storage.recent_mentions(2)
    assert [r.content for r in rows] == ["m3", "m2"]


async def test_update_merges_and_empty_patch_is_identity(storage, make_mention):
    row = await storage.create_mention(make_mention("x"))

    assert await storage.update_mention(row.id, {}) == row

    updated = await storage.update_mention(row.id, {"is_starred": True, "tags": ["vip"]})
    assert updated.is_starred is True
    assert updated.tags == ["vip"]
    assert updated.content == "x"
    assert updated.collected_at == row.collected_at


async def test_update_ignores_immutable_fields(storage, make_mention):
    row = await storage.create_mention(make_mention("x"))
    updated = await storage.update_mention(row.id, {"collected_at": utcnow() + timedelta(days=1)})
    assert updated.collected_at == row.collected_at


async def test_update_unknown_mention_raises(storage):
    with pytest.raises(errors.NotFoundError):
        await storage.update_mention(42, {"is_starred": True})


async def test_delete_mention(storage, make_mention):
    row = await storage.create_mention(make_mention())
    assert await storage.delete_mention(row.id) is True
    assert await storage.delete_mention(row.id) is False
    assert await storage.get_mention(row.id) is None


# ---------- Tags ----------
async def test_tag_defaults_and_unique_name(storage):
    tag = await storage.create_tag(TagCreate(name="price"))
    assert tag.color == "#3B82F6"
    assert tag.usage_count == 0

    with pytest.raises(errors.ValidationError):
        await storage.create_tag(TagCreate(name="price", color="#000000"))


async def test_tags_ordered_by_usage_then_name(storage):
    for name in ("beta", "alpha", "gamma"):
        await storage.create_tag(TagCreate(name=name))
    await storage.increment_tag_usage("gamma")
    await storage.increment_tag_usage("gamma")
    await storage.increment_tag_usage("beta")

    tags = await storage.list_tags()
    assert [(t.name, t.usage_count) for t in tags] == [("gamma", 2), ("beta", 1), ("alpha", 0)]


async def test_increment_unknown_tag_is_noop(storage):
    await storage.create_tag(TagCreate(name="known"))
    await storage.increment_tag_usage("nonexistent-tag")
    assert [t.usage_count for t in await storage.list_tags()] == [0]


async def test_update_and_delete_tag(storage):
    a = await storage.create_tag(TagCreate(name="a"))
    await storage.create_tag(TagCreate(name="b"))

    renamed = await storage.update_tag(a.id, {"name": "c", "color": "#FFFFFF"})
    assert (renamed.name, renamed.color) == ("c", "#FFFFFF")
    assert await storage.get_tag_by_name("a") is None

    with pytest.raises(errors.ValidationError):
        await storage.update_tag(a.id, {"name": "b"})
    with pytest.raises(errors.NotFoundError):
        await storage.update_tag(999, {"name": "z"})

    assert await storage.delete_tag(a.id) is True
    assert await storage.get_tag(a.id) is None


# ---------- Search queries ----------
async def test_search_queries(storage, now):
    q1 = await storage.create_search_query(SearchQueryCreate(query="acme"))
    q2 = await storage.create_search_query(SearchQueryCreate(query="acme support", is_active=False))
    assert q1.is_active is True
    assert q1.last_executed is None

    assert [q.id for q in await storage.list_search_queries()] == [q1.id, q2.id]
    assert [q.id for q in await storage.list_search_queries(active_only=True)] == [q1.id]

    updated = await storage.update_search_query(q1.id, {"last_executed": now})
    assert updated.last_executed == now

    assert await storage.delete_search_query(q2.id) is True
    assert await storage.get_search_query(q2.id) is None


# ---------- Reports ----------
async def test_reports_store_snapshot_as_given(storage):
    first = await storage.create_report(
        ReportCreate(title="Weekly", date_range="last 7 days", filters="{}", total_mentions=10,
                     positive_count=5, neutral_count=3, negative_count=2)
    )
    second = await storage.create_report(ReportCreate(title="Empty", date_range="today"))

    assert first.total_mentions == 10 and first.negative_count == 2
    assert await storage.get_report(first.id) == first
    assert [r.id for r in await storage.list_reports()] == [second.id, first.id]

    assert await storage.delete_report(first.id) is True
    assert await storage.get_report(first.id) is None


async def test_ids_are_not_reused_after_delete(storage):
    tag = await storage.create_tag(TagCreate(name="price"))
    await storage.delete_tag(tag.id)
    assert (await storage.create_tag(TagCreate(name="price"))).id > tag.id

    query = await storage.create_search_query(SearchQueryCreate(query="acme"))
    await storage.delete_search_query(query.id)
    assert (await storage.create_search_query(SearchQueryCreate(query="acme"))).id > query.id

    report = await storage.create_report(ReportCreate(title="Weekly", date_range="today"))
    await storage.delete_report(report.id)
    assert (await storage.create_report(ReportCreate(title="Weekly", date_range="today"))).id > report.id
