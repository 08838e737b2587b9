"""Pydantic models (schemas) for the application."""

from app.models.enums import MessageRole, RateLimitType
from app.models.chat_session import ChatMessage, ChatSession, DEFAULT_SESSION_TITLE
from app.models.chat import (
    CreateSessionRequest,
    CreateSessionResponse,
    ListSessionsResponse,
    ModelInfo,
    PromptMessage,
    SendMessageRequest,
    SessionHistoryResponse,
)
from app.models.rate_limit import RateLimitInfo
from app.models.user import UserAccount, UserCreate

__all__ = [
    "MessageRole",
    "RateLimitType",
    "ChatSession",
    "ChatMessage",
    "DEFAULT_SESSION_TITLE",
    "CreateSessionRequest",
    "CreateSessionResponse",
    "ListSessionsResponse",
    "SessionHistoryResponse",
    "SendMessageRequest",
    "PromptMessage",
    "ModelInfo",
    "RateLimitInfo",
    "UserAccount",
    "UserCreate",
]
