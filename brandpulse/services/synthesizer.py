from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote, quote_plus

from brandpulse.schemas import MentionDraft, utcnow

logger = logging.getLogger(__name__)

# (content template, source, url template, author, max age in days)
TEMPLATES: List[Tuple[str, str, str, str, int]] = [
    (
        "Excellent experience with {query}! It exceeded all my expectations. Recommended!",
        "Google Reviews",
        "https://www.google.com/search?q={plus}",
        "Happy Customer",
        7,
    ),
    (
        "{query} has a good product, but the price could be more competitive. Worth it overall.",
        "Reclame Aqui",
        "https://www.reclameaqui.com.br/busca/?q={plus}",
        "Reviewer",
        5,
    ),
    (
        "I had a problem with {query} customer service, but support sorted it out quickly.",
        "Trustpilot",
        "https://www.trustpilot.com/review/{path}",
        "Verified User",
        3,
    ),
    (
        "Compared with the other options on the market, {query} is definitely a solid choice.",
        "Specialist Blog",
        "https://example-blog.com/review-{path}",
        "Specialist",
        2,
    ),
]

# (content, source, url, author, hours ago)
MOCK_CORPUS: List[Tuple[str, str, str, str, int]] = [
    (
        "Excellent service from the company! I highly recommend them. #satisfied",
        "Twitter", "https://twitter.com/user/status/123", "@user1", 2,
    ),
    (
        "I had trouble with the product delivery. It took much longer than promised.",
        "Facebook", "https://facebook.com/post/456", "John Smith", 4,
    ),
    (
        "Interesting product, but I am still deciding whether it is worth the investment.",
        "Instagram", "https://instagram.com/p/789", "@maria_reviews", 6,
    ),
    (
        "Technical support was very helpful and fixed my problem quickly!",
        "LinkedIn", "https://linkedin.com/posts/abc", "Carlos Oliveira", 8,
    ),
    (
        "A bit pricey, but the quality makes up for it. A well made product.",
        "Twitter", "https://twitter.com/user/status/124", "@tech_consumer", 10,
    ),
]


class MentionSynthesizer:
    """
    Fabricates plausible mentions of a search term.

    Nothing is fetched from the network: a handful of templates embed the
    query, then canned corpus entries that contain the query are appended.
    Pass a seeded random.Random for reproducible timestamps.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        corpus: Sequence[Tuple[str, str, str, str, int]] = MOCK_CORPUS,
        templates: Sequence[Tuple[str, str, str, str, int]] = TEMPLATES,
    ):
        self.rng = rng or random.Random()
        self.corpus = list(corpus)
        self.templates = list(templates)

    def _from_templates(self, query: str, now: datetime) -> List[MentionDraft]:
        out: List[MentionDraft] = []
        for content, source, url, author, max_days in self.templates:
            age = timedelta(seconds=self.rng.random() * max_days * 86400)
            out.append(
                MentionDraft(
                    content=content.format(query=query),
                    source=source,
                    source_url=url.format(plus=quote_plus(query), path=quote(query, safe="")),
                    author=author,
                    published_at=now - age,
                )
            )
        return out

    def _from_corpus(self, query: str, now: datetime) -> List[MentionDraft]:
        needle = query.lower()
        return [
            MentionDraft(
                content=content,
                source=source,
                source_url=url,
                author=author,
                published_at=now - timedelta(hours=hours),
            )
            for content, source, url, author, hours in self.corpus
            if needle in content.lower()
        ]

    def search(self, query: str) -> List[MentionDraft]:
        query = (query or "").strip()
        if not query:
            return []
        now = utcnow()
        results: List[MentionDraft] = []
        try:
            results.extend(self._from_templates(query, now))
        except Exception:
            # degrade to corpus matches only
            logger.exception("template synthesis failed for %r", query)
            results = []
        results.extend(self._from_corpus(query, now))
        return results

    def search_many(self, queries: Sequence[str]) -> List[MentionDraft]:
        """Run search for every query, dropping repeated content."""
        seen = set()
        out: List[MentionDraft] = []
        for q in queries:
            for draft in self.search(q):
                if draft.content in seen:
                    continue
                seen.add(draft.content)
                out.append(draft)
        return out
