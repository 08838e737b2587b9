"""
Integration tests for the chat API.

Runs the real FastAPI app over httpx.ASGITransport with the SQLite repository
and a scripted upstream injected through dependency overrides.
"""

from uuid import uuid4

import httpx
import pytest

from app.api.deps import (
    get_auth_provider,
    get_chat_session_repository,
    get_llm_provider,
    get_rate_limiter,
    get_settings,
)
from app.core.exceptions import UpstreamUnavailableError
from app.infrastructure.local.memory_rate_limiter import InMemoryChatRateLimiter
from app.infrastructure.local.mock_auth import MockAuthProvider
from app.models.chat_session import DEFAULT_SESSION_TITLE
from app.services.chat_relay import UPSTREAM_ERROR_MESSAGE
from app.services.sse_transport import DoneSignal, ErrorPayload, SSEDecoder

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest.fixture
def chat_settings(monkeypatch):
    monkeypatch.setenv("FEATURE_CHAT_ENABLED", "true")
    monkeypatch.setenv("LLM_API_KEY", "test-key")
    monkeypatch.setenv("AUTH_PROVIDER", "mock")
    monkeypatch.setenv("CHAT_MAX_MESSAGE_LENGTH", "4000")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def provider(fake_provider_cls, fake_upstream_cls):
    return fake_provider_cls(fake_upstream_cls(["Hel", "lo"], token_count=2))


@pytest.fixture
def rate_limiter():
    return InMemoryChatRateLimiter(per_minute=20, daily=100)


@pytest.fixture
def app(chat_settings, chat_repo, provider, rate_limiter):
    from main import create_app

    application = create_app()
    application.dependency_overrides[get_settings] = lambda: chat_settings
    application.dependency_overrides[get_chat_session_repository] = lambda: chat_repo
    application.dependency_overrides[get_llm_provider] = lambda: provider
    application.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    application.dependency_overrides[get_auth_provider] = lambda: MockAuthProvider(enabled=True)
    return application


def _client(app, user_id: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {user_id}"},
    )


@pytest.fixture
async def client(app, test_user_id):
    async with _client(app, test_user_id) as c:
        yield c


@pytest.fixture
async def other_client(app, other_user_id):
    async with _client(app, other_user_id) as c:
        yield c


def _decode(body: bytes) -> list:
    decoder = SSEDecoder()
    return decoder.feed(body) + decoder.flush()


async def _create_session(client: httpx.AsyncClient) -> str:
    resp = await client.post("/api/chat/sessions", json={})
    assert resp.status_code == 201
    return resp.json()["session_id"]


async def test_create_session_without_title_gets_default(client):
    resp = await client.post("/api/chat/sessions")

    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == DEFAULT_SESSION_TITLE
    assert body["session_id"]
    assert resp.headers["X-RateLimit-Limit-Minute"] == "20"
    assert resp.headers["X-RateLimit-Remaining-Daily"] == "100"


async def test_create_session_with_title(client):
    resp = await client.post("/api/chat/sessions", json={"title": "Recipes"})

    assert resp.status_code == 201
    assert resp.json()["title"] == "Recipes"


async def test_list_sessions(client, other_client):
    await _create_session(client)
    await _create_session(client)
    await _create_session(other_client)

    resp = await client.get("/api/chat/sessions", params={"page": 0, "per_page": 1})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["page"] == 0
    assert body["per_page"] == 1
    assert len(body["sessions"]) == 1


async def test_send_message_streams_reply_and_persists(client, provider):
    session_id = await _create_session(client)

    resp = await client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"content": "Say hello"},
    )

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["cache-control"] == "no-cache"
    assert resp.headers["X-RateLimit-Remaining-Minute"] == "19"

    events = _decode(resp.content)
    assert "".join(e.content for e in events[:-1]) == "Hello"
    assert isinstance(events[-1], DoneSignal)

    history = (await client.get(f"/api/chat/sessions/{session_id}")).json()
    assert [(m["role"], m["content"]) for m in history["messages"]] == [
        ("user", "Say hello"),
        ("assistant", "Hello"),
    ]
    assert history["session"]["title"] == "Say hello"


async def test_over_length_message_is_rejected_without_upstream_call(client, provider):
    session_id = await _create_session(client)

    resp = await client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"content": "x" * 4001},
    )

    assert resp.status_code == 400
    assert provider.prompts == []
    history = (await client.get(f"/api/chat/sessions/{session_id}")).json()
    assert history["messages"] == []


async def test_empty_message_is_rejected(client, provider):
    session_id = await _create_session(client)

    resp = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "  "})

    assert resp.status_code == 400
    assert provider.prompts == []


async def test_other_users_session_is_always_not_found(client, other_client, provider):
    session_id = await _create_session(client)

    responses = [
        await other_client.get(f"/api/chat/sessions/{session_id}"),
        await other_client.delete(f"/api/chat/sessions/{session_id}"),
        await other_client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "hi"}),
        await other_client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": ""}),
        await other_client.post(
            f"/api/chat/sessions/{session_id}/messages", json={"content": "x" * 4001}
        ),
        await other_client.post(
            f"/api/chat/sessions/{session_id}/messages",
            json={"content": "hi", "model_id": "no-such-model"},
        ),
    ]

    assert [r.status_code for r in responses] == [404] * 6
    assert provider.prompts == []
    assert (await client.get(f"/api/chat/sessions/{session_id}")).status_code == 200


async def test_unknown_session_is_not_found(client):
    assert (await client.get(f"/api/chat/sessions/{uuid4()}")).status_code == 404


async def test_delete_twice(client):
    session_id = await _create_session(client)

    first = await client.delete(f"/api/chat/sessions/{session_id}")
    second = await client.delete(f"/api/chat/sessions/{session_id}")

    assert first.status_code == 204
    assert first.headers["X-RateLimit-Limit-Minute"] == "20"
    assert first.headers["X-RateLimit-Remaining-Daily"] == "100"
    assert second.status_code == 404
    assert (await client.get(f"/api/chat/sessions/{session_id}")).status_code == 404
    assert (await client.get("/api/chat/sessions")).json()["total"] == 0


async def test_rate_limited(app, client):
    strict_limiter = InMemoryChatRateLimiter(per_minute=1, daily=100)
    app.dependency_overrides[get_rate_limiter] = lambda: strict_limiter
    session_id = await _create_session(client)

    ok = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "one"})
    limited = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "two"})

    assert ok.status_code == 200
    assert limited.status_code == 429
    assert 0 < int(limited.headers["Retry-After"]) <= 60
    assert limited.headers["X-RateLimit-Remaining-Minute"] == "0"
    detail = limited.json()["detail"]
    assert detail["limit_type"] == "per_minute"
    assert detail["limit"] == 1
    assert detail["current"] == 1
    assert detail["retry_after"] == int(limited.headers["Retry-After"])


async def test_upstream_refusal_is_503(app, client, fake_provider_cls):
    app.dependency_overrides[get_llm_provider] = lambda: fake_provider_cls(
        error=UpstreamUnavailableError("Upstream returned 500", status_code=500)
    )
    session_id = await _create_session(client)

    resp = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "hi"})

    assert resp.status_code == 503
    assert resp.json()["detail"] == UPSTREAM_ERROR_MESSAGE


async def test_mid_stream_failure_is_an_in_band_error_frame(app, client, fake_provider_cls, fake_upstream_cls):
    app.dependency_overrides[get_llm_provider] = lambda: fake_provider_cls(
        fake_upstream_cls(["a", "b", "c"], fail=True)
    )
    session_id = await _create_session(client)

    resp = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "hi"})

    assert resp.status_code == 200
    events = _decode(resp.content)
    assert [getattr(e, "content", None) for e in events[:3]] == ["a", "b", "c"]
    assert isinstance(events[3], ErrorPayload)
    assert events[3].error == UPSTREAM_ERROR_MESSAGE

    history = (await client.get(f"/api/chat/sessions/{session_id}")).json()
    assistant = history["messages"][-1]
    assert assistant["content"] == "abc"
    assert assistant["is_partial"] is True


async def test_missing_authorization_header(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as anon:
        resp = await anon.get("/api/chat/sessions")
    assert resp.status_code == 401


async def test_models_endpoint(client):
    resp = await client.get("/api/models")

    assert resp.status_code == 200
    body = resp.json()
    assert body["models"] == [{"id": "fake-model", "name": "fake-model", "is_default": False}]


async def test_chat_routes_absent_when_disabled(monkeypatch):
    monkeypatch.setenv("FEATURE_CHAT_ENABLED", "false")
    get_settings.cache_clear()
    try:
        from main import create_app

        application = create_app()
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=application), base_url="http://test"
        ) as anon:
            chat = await anon.get("/api/chat/sessions")
            health = await anon.get("/health")
    finally:
        get_settings.cache_clear()

    assert chat.status_code == 404
    assert health.json()["chat_enabled"] is False


async def test_send_message_with_model_selection(app, client, fake_provider_cls, fake_upstream_cls):
    provider = fake_provider_cls(fake_upstream_cls(["ok"]), models=["fake-model", "big-model"])
    app.dependency_overrides[get_llm_provider] = lambda: provider
    session_id = await _create_session(client)

    chosen = await client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"content": "hi", "model_id": "big-model"},
    )
    unknown = await client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"content": "hi", "model_id": "no-such-model"},
    )

    assert chosen.status_code == 200
    assert unknown.status_code == 400
    assert provider.requested_models == ["big-model"]


async def test_unexpected_mid_stream_error_is_an_in_band_error_frame(
    app, client, fake_provider_cls, fake_upstream_cls
):
    app.dependency_overrides[get_llm_provider] = lambda: fake_provider_cls(
        fake_upstream_cls(["Hel", "lo"], error=ValueError("bad upstream payload"))
    )
    session_id = await _create_session(client)

    resp = await client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "hi"})

    assert resp.status_code == 200
    events = _decode(resp.content)
    assert [e.content for e in events[:2]] == ["Hel", "lo"]
    assert isinstance(events[2], ErrorPayload)

    history = (await client.get(f"/api/chat/sessions/{session_id}")).json()
    assert history["messages"][-1]["content"] == "Hello"
    assert history["messages"][-1]["is_partial"] is True
