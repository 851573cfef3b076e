from datetime import date, datetime, timedelta, timezone

import pytest

from brandpulse.schemas import Mention
from brandpulse.services.metrics import (
    dashboard_metrics,
    percent,
    sentiment_counts,
    sentiment_trend,
    source_volume,
)

TODAY = date(2024, 1, 15)


def mention(i, sentiment=None, source="Twitter", day=TODAY):
    published = datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc)
    return Mention(
        id=i,
        content=f"mention {i}",
        source=source,
        published_at=published,
        collected_at=published,
        sentiment=sentiment,
        sentiment_score=0.5 if sentiment else None,
    )


def batch(positive=0, negative=0, neutral=0, unknown=0, day=TODAY):
    labels = ["positive"] * positive + ["negative"] * negative + ["neutral"] * neutral + [None] * unknown
    return [mention(i, s, day=day) for i, s in enumerate(labels)]


@pytest.mark.parametrize(
    "count,total,expected",
    [(0, 0, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 2, 50), (3, 3, 100)],
)
def test_percent_rounds_half_up(count, total, expected):
    assert percent(count, total) == expected


def test_dashboard_metrics_percentages():
    m = dashboard_metrics(batch(positive=2, negative=1, neutral=1))
    assert m.total_mentions == 4
    assert (m.positive, m.negative, m.neutral) == (50, 25, 25)
    assert m.engagement == 75
    assert m.total_growth is None


def test_dashboard_metrics_empty():
    m = dashboard_metrics([])
    assert (m.total_mentions, m.positive, m.negative, m.neutral, m.engagement) == (0, 0, 0, 0, 0)


def test_positive_plus_negative_never_exceeds_100():
    # 1/200 = 0.5% and 199/200 = 99.5% both round up
    m = dashboard_metrics(batch(positive=1, negative=199))
    assert m.positive + m.negative <= 100
    assert m.neutral == 100 - m.positive - m.negative

    for pos in range(0, 8):
        for neg in range(0, 8 - pos):
            m = dashboard_metrics(batch(positive=pos, negative=neg, neutral=7 - pos - neg, unknown=1))
            assert m.positive + m.negative <= 100


def test_sentiment_trend_buckets_by_day():
    mentions = batch(positive=1, negative=1, neutral=1, day=TODAY) + batch(positive=2, day=TODAY - timedelta(days=2))
    points = sentiment_trend(mentions, days=3, today=TODAY)

    assert [p.date for p in points] == ["2024-01-13", "2024-01-14", "2024-01-15"]
    assert (points[0].positive, points[0].neutral, points[0].negative) == (100, 0, 0)
    # empty day is all zeros, not a 100% neutral day
    assert (points[1].positive, points[1].neutral, points[1].negative) == (0, 0, 0)
    # 33 + 33 leaves 34 for neutral
    assert (points[2].positive, points[2].neutral, points[2].negative) == (33, 34, 33)


def test_sentiment_trend_neutral_is_remainder():
    # an unprocessed mention counts towards the total and lands in neutral
    points = sentiment_trend(batch(positive=1, negative=1, unknown=1), days=1, today=TODAY)
    p = points[0]
    assert p.positive + p.neutral + p.negative == 100
    assert (p.positive, p.neutral, p.negative) == (33, 34, 33)


def test_sentiment_trend_ignores_mentions_outside_window():
    old = batch(positive=3, day=TODAY - timedelta(days=30))
    points = sentiment_trend(old, days=7, today=TODAY)
    assert len(points) == 7
    assert all((p.positive, p.neutral, p.negative) == (0, 0, 0) for p in points)


def test_source_volume_sorted_by_count():
    mentions = [
        mention(1, source="Twitter"),
        mention(2, source="Facebook"),
        mention(3, source="Twitter"),
        mention(4, source="Blog"),
    ]
    volume = source_volume(mentions)
    assert [(v.source, v.count, v.percentage) for v in volume] == [
        ("Twitter", 2, 50),
        ("Blog", 1, 25),
        ("Facebook", 1, 25),
    ]
    assert source_volume([]) == []


def test_sentiment_counts():
    counts = sentiment_counts(batch(positive=2, negative=1, neutral=3, unknown=1))
    assert (counts.total, counts.positive, counts.negative, counts.neutral) == (7, 2, 1, 3)
