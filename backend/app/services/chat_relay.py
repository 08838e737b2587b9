"""
Chat relay.

Bridges one client SSE response and one upstream streaming completion:
deltas are forwarded as they arrive and accumulated, and the reply is
persisted when the stream ends, fails, or the client goes away.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncGenerator, Awaitable, Callable, Optional
from uuid import UUID

import anyio

from app.core.exceptions import (
    NotFoundError,
    StreamCancelledError,
    UpstreamUnavailableError,
    ValidationError,
)
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.llm_provider import ILLMProvider, IUpstreamStream
from app.models.chat_session import MESSAGE_CONTENT_MAX_LENGTH, ChatMessage
from app.models.enums import MessageRole
from app.services.context_builder import ContextBuilder
from app.services.sse_transport import encode_chunk, encode_done, encode_error

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_MESSAGE = "AI service temporarily unavailable"
UPSTREAM_ERROR_CODE = "upstream_unavailable"
TITLE_EXCERPT_LENGTH = 50

DisconnectCheck = Callable[[], Awaitable[bool]]


class RelayState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def title_excerpt(content: str) -> str:
    """Session title derived from the first user message."""
    text = " ".join(content.split())
    if len(text) <= TITLE_EXCERPT_LENGTH:
        return text
    return text[:TITLE_EXCERPT_LENGTH].rstrip() + "..."


class ChatRelay:
    """One message exchange: user message in, streamed assistant reply out.

    Usage:
        relay = ChatRelay(...)
        await relay.start(user_id, session_id, content)   # errors here are HTTP errors
        return StreamingResponse(relay.stream(), ...)     # errors here are SSE frames
    """

    def __init__(
        self,
        chat_repo: IChatSessionRepository,
        llm_provider: ILLMProvider,
        context_builder: ContextBuilder,
        max_tokens: int = 2048,
        max_message_length: int = 4000,
        disconnect_check: Optional[DisconnectCheck] = None,
    ):
        self.chat_repo = chat_repo
        self.llm_provider = llm_provider
        self.context_builder = context_builder
        self.max_tokens = max_tokens
        self.max_message_length = max_message_length
        self.disconnect_check = disconnect_check

        self.state = RelayState.IDLE
        self._user_id: Optional[str] = None
        self._session_id: Optional[UUID] = None
        self._upstream: Optional[IUpstreamStream] = None
        self._accumulated: list[str] = []

    @property
    def reply_text(self) -> str:
        return "".join(self._accumulated)

    @staticmethod
    def validate_content(content: str, max_length: int) -> str:
        """
        Normalize and validate a user message.

        Raises:
            ValidationError: If the message is empty or longer than max_length
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content must not be empty")
        if len(text) > max_length:
            raise ValidationError(
                f"Message is too long ({len(text)} characters, maximum {max_length})"
            )
        return text

    def validate_model(self, model_id: Optional[str]) -> Optional[str]:
        """
        Check a requested model against the provider's selectable models.

        Raises:
            ValidationError: If model_id is given but not offered by the provider
        """
        if model_id is None:
            return None
        if model_id not in self.llm_provider.get_available_models():
            raise ValidationError(f"Unknown model: {model_id}")
        return model_id

    async def start(
        self,
        user_id: str,
        session_id: UUID,
        content: str,
        model_id: Optional[str] = None,
    ) -> None:
        """
        Persist the user message and open the upstream stream.

        The session is resolved before the input is checked, so a session the
        caller does not own is NotFound whatever the body holds.

        Raises:
            NotFoundError: Session missing, deleted, or not owned by user_id
            ValidationError: Empty or over-long message, or unknown model;
                nothing is persisted or sent
            UpstreamUnavailableError: Upstream refused the request or could not be reached
        """
        if self.state != RelayState.IDLE:
            raise RuntimeError(f"Relay already started (state={self.state.value})")

        session = await self.chat_repo.get_session(user_id, session_id)
        if not session:
            raise NotFoundError(f"Chat session {session_id} not found")

        text = self.validate_content(content, self.max_message_length)
        model = self.validate_model(model_id)

        self._user_id = user_id
        self._session_id = session_id
        self.state = RelayState.SENDING

        await self.chat_repo.add_message(
            user_id,
            session_id,
            MessageRole.USER,
            text,
            title=title_excerpt(text),
        )
        prompt = await self.context_builder.build(user_id, session_id)

        try:
            self._upstream = await self.llm_provider.open_stream(
                prompt, max_tokens=self.max_tokens, model=model
            )
        except UpstreamUnavailableError as e:
            self.state = RelayState.FAILED
            logger.error(f"Upstream request failed for session {session_id}: {e.message}")
            raise

        self.state = RelayState.STREAMING
        logger.info(
            f"Relay streaming: session={session_id}, "
            f"model={model or self.llm_provider.get_model_name()}, context={len(prompt)}"
        )

    async def stream(self) -> AsyncGenerator[str, None]:
        """Yield SSE frames until the reply completes, fails, or the client leaves."""
        if self.state != RelayState.STREAMING or self._upstream is None:
            raise RuntimeError("Relay has not been started")

        upstream = self._upstream
        try:
            async for delta in upstream:
                if not delta:
                    continue
                self._accumulated.append(delta)
                yield encode_chunk(delta)

                if self.disconnect_check and await self.disconnect_check():
                    raise StreamCancelledError(f"Client left session {self._session_id}")

        except UpstreamUnavailableError as e:
            self.state = RelayState.FAILED
            logger.error(
                f"Upstream failed mid-stream: session={self._session_id}, "
                f"chunks={len(self._accumulated)}, cause={e.message}"
            )
            await self._persist_reply(is_partial=True)
            yield encode_error(UPSTREAM_ERROR_MESSAGE, UPSTREAM_ERROR_CODE)

        except StreamCancelledError:
            self.state = RelayState.CANCELLED
            with anyio.CancelScope(shield=True):
                await self._cancel(upstream)

        except (asyncio.CancelledError, GeneratorExit):
            self.state = RelayState.CANCELLED
            with anyio.CancelScope(shield=True):
                await self._cancel(upstream)
            raise

        except Exception:
            # Status is already sent
            self.state = RelayState.FAILED
            logger.exception(
                f"Relay broke mid-stream: session={self._session_id}, chunks={len(self._accumulated)}"
            )
            await self._persist_reply(is_partial=True)
            yield encode_error(UPSTREAM_ERROR_MESSAGE, UPSTREAM_ERROR_CODE)

        else:
            self.state = RelayState.COMPLETED
            await self._persist_reply(is_partial=False, token_count=upstream.token_count)
            logger.info(
                f"Relay completed: session={self._session_id}, "
                f"chunks={len(self._accumulated)}, chars={len(self.reply_text)}"
            )
            yield encode_done()

        finally:
            with anyio.CancelScope(shield=True):
                await upstream.aclose()

    async def _cancel(self, upstream: IUpstreamStream) -> None:
        logger.info(
            f"Client disconnected: session={self._session_id}, chunks={len(self._accumulated)}"
        )
        await upstream.aclose()
        await self._persist_reply(is_partial=True)

    async def _persist_reply(
        self,
        is_partial: bool,
        token_count: Optional[int] = None,
    ) -> Optional[ChatMessage]:
        text = self.reply_text
        if not text:
            return None
        if len(text) > MESSAGE_CONTENT_MAX_LENGTH:
            logger.warning(
                f"Reply for session {self._session_id} truncated from {len(text)} characters"
            )
            text = text[:MESSAGE_CONTENT_MAX_LENGTH]
            is_partial = True
        try:
            return await self.chat_repo.add_message(
                self._user_id,
                self._session_id,
                MessageRole.ASSISTANT,
                text,
                token_count=token_count,
                is_partial=is_partial,
            )
        except Exception as e:
            # Reply was already delivered; losing the history row is not fatal
            logger.error(f"Failed to save assistant reply for session {self._session_id}: {e}")
            return None
