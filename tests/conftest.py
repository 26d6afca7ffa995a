# tests/conftest.py
from __future__ import annotations

import random
import uuid

import pytest

from db.engine import build_engine
from db.session import build_session_factory, init_models
from services.buddy_server import BuddyServer
from services.conversation_store import ConversationStore
from services.orchestrator import ProviderOrchestrator
from tests.fakes import FakeBackend


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'buddies.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory) -> ConversationStore:
    return ConversationStore(session_factory, compact_threshold=500, compact_retain=200)


@pytest.fixture
def buddy_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def offline_orchestrator() -> ProviderOrchestrator:
    backends = [FakeBackend("ollama", reachable=False), FakeBackend("openai", reachable=False)]
    return ProviderOrchestrator(backends, rng=random.Random(7))


@pytest.fixture
async def server(session_factory, offline_orchestrator):
    server = BuddyServer(session_factory, offline_orchestrator)
    await server.start()
    yield server
    await server.recorder.drain()
