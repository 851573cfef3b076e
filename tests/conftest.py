"""
Shared fixtures.

Storage tests run against both backends; API tests drive the ASGI app
in-process with an in-memory store and a canned classifier.
"""
import random
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from brandpulse.main import create_app
from brandpulse.schemas import MentionCreate
from brandpulse.services.synthesizer import MentionSynthesizer
from brandpulse.storage.memory import MemoryStorage
from brandpulse.storage.sql import SqlStorage
from tests.fakes import FakeClassifier


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def make_mention(now):
    def _make(content="Great product", source="Twitter", **kw):
        kw.setdefault("published_at", now - timedelta(hours=1))
        return MentionCreate(content=content, source=source, **kw)
    return _make


@pytest.fixture
async def sql_storage():
    storage = SqlStorage("sqlite+aiosqlite:///:memory:")
    await storage.init()
    yield storage
    await storage.close()


@pytest.fixture(params=["memory", "sql"])
async def storage(request):
    if request.param == "memory":
        yield MemoryStorage()
        return
    backend = SqlStorage("sqlite+aiosqlite:///:memory:")
    await backend.init()
    yield backend
    await backend.close()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def synthesizer():
    return MentionSynthesizer(rng=random.Random(42))


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def app(memory_storage, classifier, synthesizer):
    return create_app(storage=memory_storage, classifier=classifier, synthesizer=synthesizer)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
