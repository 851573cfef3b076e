from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from brandpulse import errors
from brandpulse.schemas import Mention, MentionCreate, MentionFilters, utcnow
from brandpulse.services.llm import SentimentClassifier
from brandpulse.services.synthesizer import MentionSynthesizer
from brandpulse.storage.base import Storage
from brandpulse.utils.config import DEDUP_WINDOW

logger = logging.getLogger(__name__)


@dataclass
class CollectResult:
    collected: int = 0
    mentions: List[Mention] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)


async def analyze_mention(storage: Storage, classifier: SentimentClassifier, mention: Mention) -> Mention:
    """Classify a stored mention and persist the outcome. Raises ClassificationError."""
    result = await classifier.classify(mention.content)
    return await storage.update_mention(
        mention.id,
        {
            "sentiment": result.sentiment,
            "sentiment_score": result.confidence,
            "is_processed": True,
        },
    )


async def _resolve_queries(storage: Storage, queries: Optional[Sequence[str]]) -> List[str]:
    wanted = [q.strip() for q in (queries or []) if q and q.strip()]
    if not wanted:
        wanted = [q.query for q in await storage.list_search_queries(active_only=True)]
    if not wanted:
        raise errors.ValidationError.for_field("queries", "No queries given and no active search queries saved")
    return wanted


async def collect(
    storage: Storage,
    synthesizer: MentionSynthesizer,
    queries: Optional[Sequence[str]] = None,
    classifier: Optional[SentimentClassifier] = None,
    dedup_window: int = DEDUP_WINDOW,
) -> CollectResult:
    """
    Synthesize mentions for each query and store the ones not seen recently.

    A draft is a duplicate when its (content, source) pair matches one of the
    `dedup_window` most recently collected mentions. Concurrent runs are not
    isolated from each other, so this is best effort.
    """
    wanted = await _resolve_queries(storage, queries)
    drafts = synthesizer.search_many(wanted)

    recent = await storage.list_mentions(MentionFilters(limit=dedup_window))
    seen: Set[Tuple[str, str]] = {(m.content, m.source) for m in recent}

    result = CollectResult(queries=wanted)
    for draft in drafts:
        key = (draft.content, draft.source)
        if key in seen:
            continue
        seen.add(key)

        data = MentionCreate.from_draft(draft)
        if classifier is not None:
            try:
                sentiment = await classifier.classify(draft.content)
            except errors.ClassificationError as e:
                # stored unprocessed; can be analyzed again later
                logger.warning("classification failed during collection: %s", e.message)
            else:
                data = data.model_copy(
                    update={
                        "sentiment": sentiment.sentiment,
                        "sentiment_score": sentiment.confidence,
                        "is_processed": True,
                    }
                )
        result.mentions.append(await storage.create_mention(data))

    result.collected = len(result.mentions)

    now = utcnow()
    for saved in await storage.list_search_queries():
        if saved.query in wanted:
            await storage.update_search_query(saved.id, {"last_executed": now})

    logger.info(
        "collected %d new mentions from %d drafts for %d queries",
        result.collected, len(drafts), len(wanted),
    )
    return result
