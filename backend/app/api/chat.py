"""
Chat API endpoints.

Session management and the streaming message endpoint. Errors raised before
the stream opens are ordinary HTTP errors; once streaming has begun they are
sent in-band as SSE error frames.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from app.api.deps import ChatRepo, CurrentUser, LLMProvider, RateLimiter, SettingsDep
from app.core.exceptions import (
    NotFoundError,
    RateLimitedError,
    UpstreamUnavailableError,
    ValidationError,
)
from app.core.logger import logger
from app.models.chat import (
    CreateSessionRequest,
    CreateSessionResponse,
    ListSessionsResponse,
    SendMessageRequest,
    SessionHistoryResponse,
)
from app.models.enums import RateLimitType
from app.services.chat_relay import UPSTREAM_ERROR_MESSAGE, ChatRelay
from app.services.chat_service import ChatService
from app.services.context_builder import ContextBuilder

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering for nginx
}


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


def _rate_limited(e: RateLimitedError) -> HTTPException:
    info = e.info
    limit = info.minute_limit if info.limit_type == RateLimitType.PER_MINUTE else info.daily_limit
    headers = info.to_headers()
    headers["Retry-After"] = str(info.retry_after or 0)
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": "rate_limit_exceeded",
            "limit_type": info.limit_type.value if info.limit_type else None,
            "limit": limit,
            "current": info.current,
            "retry_after": info.retry_after,
            "message": e.message,
        },
        headers=headers,
    )


async def _apply_usage_headers(response: Response, rate_limiter: RateLimiter, user_id: str) -> None:
    usage = await rate_limiter.usage(user_id)
    response.headers.update(usage.to_headers())


@router.post(
    "/sessions",
    response_model=CreateSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    user: CurrentUser,
    chat_repo: ChatRepo,
    rate_limiter: RateLimiter,
    response: Response,
    data: CreateSessionRequest | None = None,
):
    """Create a chat session. A missing or blank title gets the default title."""
    service = ChatService(chat_repo)
    created = await service.create_session(user.id, title=data.title if data else None)
    await _apply_usage_headers(response, rate_limiter, user.id)
    return created


@router.get("/sessions", response_model=ListSessionsResponse)
async def list_sessions(
    user: CurrentUser,
    chat_repo: ChatRepo,
    rate_limiter: RateLimiter,
    response: Response,
    page: int = Query(0, ge=0),
    per_page: int = Query(20, ge=1, le=100),
):
    """List chat sessions for the current user."""
    service = ChatService(chat_repo)
    result = await service.list_sessions(user.id, page=page, per_page=per_page)
    await _apply_usage_headers(response, rate_limiter, user.id)
    return result


@router.get("/sessions/{session_id}", response_model=SessionHistoryResponse)
async def get_session(
    session_id: UUID,
    user: CurrentUser,
    chat_repo: ChatRepo,
    rate_limiter: RateLimiter,
    response: Response,
):
    """Get a session with its messages, oldest first."""
    service = ChatService(chat_repo)
    try:
        history = await service.get_history(user.id, session_id)
    except NotFoundError as e:
        raise _not_found(e)
    await _apply_usage_headers(response, rate_limiter, user.id)
    return history


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: UUID,
    user: CurrentUser,
    chat_repo: ChatRepo,
    rate_limiter: RateLimiter,
):
    """Soft-delete a session and its messages."""
    service = ChatService(chat_repo)
    try:
        await service.delete_session(user.id, session_id)
    except NotFoundError as e:
        raise _not_found(e)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    await _apply_usage_headers(response, rate_limiter, user.id)
    return response


@router.post("/sessions/{session_id}/messages")
async def send_message(
    session_id: UUID,
    body: SendMessageRequest,
    http_request: Request,
    user: CurrentUser,
    chat_repo: ChatRepo,
    llm_provider: LLMProvider,
    rate_limiter: RateLimiter,
    settings: SettingsDep,
):
    """
    Post a user message and stream the assistant reply (Server-Sent Events).

    Frames: `data: {"content": ...}` per chunk, then `data: [DONE]`, or an
    `event: error` frame if the upstream fails mid-stream.

    Checks run ownership (404), input (400), quota (429), upstream (503).
    """
    if not await chat_repo.get_session(user.id, session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session {session_id} not found",
        )

    relay = ChatRelay(
        chat_repo=chat_repo,
        llm_provider=llm_provider,
        context_builder=ContextBuilder(
            chat_repo,
            system_prompt=settings.CHAT_SYSTEM_PROMPT,
            max_context_messages=settings.CHAT_MAX_CONTEXT_MESSAGES,
        ),
        max_tokens=settings.CHAT_MAX_TOKENS,
        max_message_length=settings.CHAT_MAX_MESSAGE_LENGTH,
        disconnect_check=http_request.is_disconnected,
    )

    try:
        ChatRelay.validate_content(body.content, settings.CHAT_MAX_MESSAGE_LENGTH)
        relay.validate_model(body.model_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    try:
        usage = await rate_limiter.check(user.id)
    except RateLimitedError as e:
        logger.info(f"Rate limited user {user.id}: {e.info.limit_type}")
        raise _rate_limited(e)

    try:
        await relay.start(user.id, session_id, body.content, model_id=body.model_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise _not_found(e)
    except UpstreamUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=UPSTREAM_ERROR_MESSAGE,
        )

    return StreamingResponse(
        relay.stream(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, **usage.to_headers()},
    )
