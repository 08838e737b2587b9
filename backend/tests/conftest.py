"""
Shared pytest fixtures.
"""

from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import UpstreamUnavailableError
from app.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
from app.infrastructure.local.database import Base
from app.interfaces.llm_provider import ILLMProvider, IUpstreamStream
from app.models.chat import PromptMessage


@pytest.fixture
async def session_factory():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_user_id() -> str:
    return "test_user"


@pytest.fixture
def other_user_id() -> str:
    return "other_user"


@pytest.fixture
def chat_repo(session_factory) -> SqliteChatSessionRepository:
    return SqliteChatSessionRepository(session_factory=session_factory)


class FakeUpstream(IUpstreamStream):
    """Scripted upstream stream: yields chunks, then optionally fails.

    `fail` raises UpstreamUnavailableError after the chunks; `error` raises
    that exception instead.
    """

    def __init__(
        self,
        chunks: list[str],
        fail: bool = False,
        token_count: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.chunks = list(chunks)
        self.fail = fail
        self.error = error
        self._token_count = token_count
        self._closed = False
        self.close_calls = 0

    @property
    def token_count(self) -> Optional[int]:
        return self._token_count

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self):
        for chunk in self.chunks:
            if self._closed:
                return
            yield chunk
        if self.error is not None:
            raise self.error
        if self.fail:
            raise UpstreamUnavailableError("upstream read timed out")

    async def aclose(self) -> None:
        self.close_calls += 1
        self._closed = True


class FakeLLMProvider(ILLMProvider):
    """Provider that hands out a prepared FakeUpstream and records prompts."""

    def __init__(
        self,
        upstream: Optional[FakeUpstream] = None,
        error: Optional[Exception] = None,
        models: Optional[list[str]] = None,
    ):
        self.upstream = upstream or FakeUpstream([])
        self.error = error
        self.models = models or ["fake-model"]
        self.prompts: list[list[PromptMessage]] = []
        self.requested_models: list[Optional[str]] = []

    def get_model_name(self) -> str:
        return "fake-model"

    def get_available_models(self) -> list[str]:
        return list(self.models)

    async def open_stream(
        self,
        messages: list[PromptMessage],
        max_tokens: int,
        model: Optional[str] = None,
    ) -> FakeUpstream:
        self.prompts.append(list(messages))
        self.requested_models.append(model)
        if self.error:
            raise self.error
        return self.upstream


@pytest.fixture
def fake_upstream_cls():
    return FakeUpstream


@pytest.fixture
def fake_provider_cls():
    return FakeLLMProvider
