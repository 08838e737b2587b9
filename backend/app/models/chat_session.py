"""
Chat session and message models.

These models persist chat history for session restore.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.enums import MessageRole

DEFAULT_SESSION_TITLE = "New Chat"
SESSION_TITLE_MAX_LENGTH = 255
MESSAGE_CONTENT_MAX_LENGTH = 100000


class ChatSessionBase(BaseModel):
    """Base chat session fields."""

    title: str = Field(
        DEFAULT_SESSION_TITLE,
        min_length=1,
        max_length=SESSION_TITLE_MAX_LENGTH,
        description="Session title",
    )


class ChatSession(ChatSessionBase):
    """Chat session model."""

    id: UUID
    user_id: str = Field(..., description="Owner user ID")
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class ChatMessage(BaseModel):
    """Chat message model. Immutable once written."""

    model_config = {"frozen": True}

    id: UUID
    session_id: UUID
    role: MessageRole
    content: str = Field(
        ..., min_length=1, max_length=MESSAGE_CONTENT_MAX_LENGTH, description="Message content"
    )
    token_count: Optional[int] = Field(None, ge=0, description="Completion tokens, if reported")
    is_partial: bool = Field(False, description="Reply was cut short by an error or disconnect")
    created_at: datetime
