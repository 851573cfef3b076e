"""
Fill the configured storage with a few sample records.

    python -m brandpulse.seed
"""
import asyncio
import logging

from brandpulse.schemas import MentionCreate, SearchQueryCreate, TagCreate
from brandpulse.storage.base import Storage, build_storage
from brandpulse.utils.config import DATABASE_URL, LOG_LEVEL

logger = logging.getLogger("brandpulse.seed")

SAMPLE_TAGS = [
    ("service", "#10B981"),
    ("satisfaction", "#3B82F6"),
    ("delay", "#EF4444"),
    ("logistics", "#F59E0B"),
    ("product", "#8B5CF6"),
]

SAMPLE_MENTIONS = [
    MentionCreate(
        content="Loved the service, really fast and efficient!",
        source="Twitter",
        source_url="https://twitter.com/user/status/1",
        author="@happy_customer",
        sentiment="positive",
        sentiment_score=0.9,
        tags=["service", "satisfaction"],
        is_processed=True,
    ),
    MentionCreate(
        content="The product took far too long to arrive. Would not recommend.",
        source="Facebook",
        source_url="https://facebook.com/post/2",
        author="John Smith",
        sentiment="negative",
        sentiment_score=0.2,
        tags=["delay", "logistics"],
        is_processed=True,
    ),
    MentionCreate(
        content="The product is fine, nothing special. It does what it promises.",
        source="Instagram",
        source_url="https://instagram.com/p/3",
        author="@reviewer",
        sentiment="neutral",
        sentiment_score=0.5,
        tags=["product"],
        is_processed=True,
    ),
]


async def seed(storage: Storage) -> int:
    for name, color in SAMPLE_TAGS:
        if not await storage.get_tag_by_name(name):
            await storage.create_tag(TagCreate(name=name, color=color))
    for mention in SAMPLE_MENTIONS:
        row = await storage.create_mention(mention)
        for name in row.tags:
            await storage.increment_tag_usage(name)
    if not await storage.list_search_queries():
        await storage.create_search_query(SearchQueryCreate(query="our company"))
    return len(SAMPLE_MENTIONS)


async def main() -> None:
    if not DATABASE_URL:
        logger.warning("DATABASE_URL is not set; seeding in-memory storage has no lasting effect")
    storage = build_storage(DATABASE_URL)
    await storage.init()
    try:
        count = await seed(storage)
        logger.info("seeded %d mentions", count)
    finally:
        await storage.close()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
