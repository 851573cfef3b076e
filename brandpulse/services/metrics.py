"""
Dashboard aggregates.

Everything here is a pure function of the mentions passed in; callers
load the mentions from storage.
"""
from __future__ import annotations

import math
from collections import Counter
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence

from brandpulse.schemas import (
    DashboardMetrics,
    Mention,
    SentimentCounts,
    SentimentTrendPoint,
    SourceVolume,
    utcnow,
)


def percent(count: int, total: int) -> int:
    """count/total as a whole percentage, halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(math.floor(count * 100 / total + 0.5))


def sentiment_counts(mentions: Iterable[Mention]) -> SentimentCounts:
    c = Counter(m.sentiment for m in mentions)
    return SentimentCounts(
        total=sum(c.values()),
        positive=c["positive"],
        neutral=c["neutral"],
        negative=c["negative"],
    )


def _split(counts: SentimentCounts) -> tuple[int, int, int]:
    """(positive, neutral, negative) percentages; neutral is the remainder."""
    if counts.total == 0:
        return 0, 0, 0
    pos = percent(counts.positive, counts.total)
    # two halves rounded up could push the pair past 100
    neg = min(percent(counts.negative, counts.total), 100 - pos)
    return pos, 100 - pos - neg, neg


def dashboard_metrics(mentions: Sequence[Mention]) -> DashboardMetrics:
    counts = sentiment_counts(mentions)
    pos, neu, neg = _split(counts)
    return DashboardMetrics(
        total_mentions=counts.total,
        positive=pos,
        negative=neg,
        neutral=neu,
        engagement=percent(counts.positive + counts.negative, counts.total),
    )


def sentiment_trend(
    mentions: Sequence[Mention],
    days: int = 7,
    today: Optional[date] = None,
) -> List[SentimentTrendPoint]:
    """One point per UTC calendar day, oldest first, ending today."""
    today = today or utcnow().date()
    first = today - timedelta(days=days - 1)

    buckets = {first + timedelta(days=i): [] for i in range(days)}
    for m in mentions:
        day = m.published_at.date()
        if day in buckets:
            buckets[day].append(m)

    points = []
    for day, items in buckets.items():
        pos, neu, neg = _split(sentiment_counts(items))
        points.append(SentimentTrendPoint(date=day.isoformat(), positive=pos, neutral=neu, negative=neg))
    return points


def source_volume(mentions: Sequence[Mention]) -> List[SourceVolume]:
    total = len(mentions)
    by_source = Counter(m.source for m in mentions)
    ranked = sorted(by_source.items(), key=lambda kv: (-kv[1], kv[0]))
    return [SourceVolume(source=s, count=n, percentage=percent(n, total)) for s, n in ranked]
