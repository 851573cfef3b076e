import random

import pytest

from brandpulse import errors
from brandpulse.schemas import MentionCreate, MentionFilters, SearchQueryCreate
from brandpulse.services.collector import analyze_mention, collect
from brandpulse.services.synthesizer import TEMPLATES, MentionSynthesizer
from tests.fakes import FakeClassifier


async def test_collect_persists_synthesized_mentions(memory_storage, synthesizer):
    result = await collect(memory_storage, synthesizer, queries=["Acme"])

    assert result.collected == len(TEMPLATES)
    stored = await memory_storage.list_mentions()
    assert {m.id for m in stored} == {m.id for m in result.mentions}
    assert all(not m.is_processed and m.sentiment is None for m in stored)


async def test_collect_twice_does_not_double_insert(memory_storage):
    synth = MentionSynthesizer(rng=random.Random(9))
    first = await collect(memory_storage, synth, queries=["Acme"])
    second = await collect(memory_storage, synth, queries=["Acme"])

    assert first.collected == len(TEMPLATES)
    assert second.collected == 0
    assert len(await memory_storage.list_mentions()) == len(TEMPLATES)


async def test_dedup_only_looks_at_recent_window(memory_storage):
    synth = MentionSynthesizer(rng=random.Random(9))
    await collect(memory_storage, synth, queries=["Acme"])
    for i in range(3):
        await memory_storage.create_mention(MentionCreate(content=f"filler {i}", source="Blog"))

    # the earlier drafts have fallen out of a three-mention window
    again = await collect(memory_storage, synth, queries=["Acme"], dedup_window=3)
    assert again.collected == len(TEMPLATES)


async def test_collect_uses_active_queries_and_stamps_them(memory_storage, synthesizer):
    active = await memory_storage.create_search_query(SearchQueryCreate(query="Acme"))
    paused = await memory_storage.create_search_query(SearchQueryCreate(query="Globex", is_active=False))

    result = await collect(memory_storage, synthesizer)

    assert result.queries == ["Acme"]
    assert all("Acme" in m.content for m in result.mentions)
    assert (await memory_storage.get_search_query(active.id)).last_executed is not None
    assert (await memory_storage.get_search_query(paused.id)).last_executed is None


async def test_collect_without_queries_is_validation_error(memory_storage, synthesizer):
    with pytest.raises(errors.ValidationError):
        await collect(memory_storage, synthesizer, queries=["  "])


async def test_collect_with_classifier(memory_storage, synthesizer):
    clf = FakeClassifier()
    result = await collect(memory_storage, synthesizer, queries=["Acme"], classifier=clf)

    assert len(clf.calls) == len(TEMPLATES)
    assert all(m.is_processed and m.sentiment == "positive" and m.sentiment_score == 0.8 for m in result.mentions)


async def test_collect_stores_unprocessed_when_classifier_fails(memory_storage, synthesizer):
    result = await collect(memory_storage, synthesizer, queries=["Acme"], classifier=FakeClassifier(fail=True))
    assert result.collected == len(TEMPLATES)
    assert all(not m.is_processed and m.sentiment is None for m in result.mentions)


async def test_analyze_mention_persists_result(memory_storage):
    row = await memory_storage.create_mention(MentionCreate(content="Terrible support", source="Twitter"))
    clf = FakeClassifier(replies=['{"sentiment": "negative", "confidence": 3}'])

    updated = await analyze_mention(memory_storage, clf, row)

    assert (updated.sentiment, updated.sentiment_score, updated.is_processed) == ("negative", 1.0, True)
    assert await memory_storage.get_mention(row.id) == updated
    assert await memory_storage.list_mentions(MentionFilters(sentiment="negative")) == [updated]
