"""Shared fakes and fixtures for the chatbroker test suite."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chatbroker.core.database import Base
from chatbroker.models import Conversation, Message  # noqa: F401  (registers tables)
from chatbroker.services.llm.base import LLMProvider
from chatbroker.services.llm.exceptions import ConversationNotFoundError
from chatbroker.services.llm.models import Provider


# ---------------------------------------------------------------------------
# Vendor stream fakes
# ---------------------------------------------------------------------------

class FakeVendorStream:
    """Mimics an SDK stream: async context manager + async iterator."""

    def __init__(self, chunks, error: Exception | None = None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def openai_chunk(text):
    return {"choices": [{"delta": {"content": text}}]}


def anthropic_event(text):
    return {"type": "content_block_delta", "delta": {"type": "text_delta", "text": text}}


class StubProvider(LLMProvider):
    """Provider that replays canned chunks and records every call."""

    def __init__(self, provider: Provider, chunks, error: Exception | None = None):
        self.provider = provider
        self.chunks = list(chunks)
        self.error = error
        self.calls = []
        self.streams: list[FakeVendorStream] = []

    async def stream_completion(self, model, messages, options=None):
        self.calls.append({"model": model, "messages": list(messages), "options": options})
        stream = FakeVendorStream(self.chunks, self.error)
        self.streams.append(stream)
        async with stream:
            async for chunk in stream:
                yield chunk


# ---------------------------------------------------------------------------
# In-memory conversation store
# ---------------------------------------------------------------------------

@dataclass
class StoredRecord:
    role: str
    content: str
    created_at: datetime


@dataclass
class InMemoryStore:
    messages: dict = field(default_factory=dict)
    system_prompts: dict = field(default_factory=dict)

    def add_conversation(self, conversation_id, system_prompt=None, turns=()):
        start = datetime(2026, 1, 1)
        self.system_prompts[conversation_id] = system_prompt
        self.messages[conversation_id] = [
            StoredRecord(role=role, content=content, created_at=start + timedelta(seconds=i))
            for i, (role, content) in enumerate(turns)
        ]

    async def load_messages(self, conversation_id):
        if conversation_id not in self.messages:
            raise ConversationNotFoundError(conversation_id)
        return list(self.messages[conversation_id])

    async def load_system_prompt(self, conversation_id):
        if conversation_id not in self.system_prompts:
            raise ConversationNotFoundError(conversation_id)
        return self.system_prompts[conversation_id]


def alternating_turns(count):
    return [
        ("user" if i % 2 == 0 else "assistant", f"message {i}")
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
