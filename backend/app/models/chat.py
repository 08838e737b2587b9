"""
Chat API request/response models.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.chat_session import SESSION_TITLE_MAX_LENGTH, ChatMessage, ChatSession
from app.models.enums import MessageRole


class CreateSessionRequest(BaseModel):
    """Request body for creating a chat session."""

    title: Optional[str] = Field(None, max_length=SESSION_TITLE_MAX_LENGTH, description="Session title")


class CreateSessionResponse(BaseModel):
    """Created session summary."""

    session_id: UUID
    title: str


class ListSessionsResponse(BaseModel):
    """One page of the caller's sessions."""

    sessions: list[ChatSession]
    total: int
    page: int
    per_page: int


class SessionHistoryResponse(BaseModel):
    """A session with its messages, oldest first."""

    session: ChatSession
    messages: list[ChatMessage]


class SendMessageRequest(BaseModel):
    """Request body for posting a user message.

    Length is checked by the relay so over-long input maps to a 400 with a
    readable message instead of a 422 schema error.
    """

    content: str = Field(..., description="Message content")
    model_id: Optional[str] = Field(
        None, max_length=255, description="Model to answer with; defaults to LLM_MODEL"
    )


class PromptMessage(BaseModel):
    """A role/content pair sent to the upstream completion API."""

    role: MessageRole
    content: str


class ModelInfo(BaseModel):
    """A selectable upstream model."""

    id: str
    name: str
    is_default: bool = False
