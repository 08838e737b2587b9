"""
Chat session repository interface.

Defines the contract for chat history persistence. Every read and write is
scoped to the owning user; a session that is missing, soft-deleted or owned
by someone else is indistinguishable to callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.models.chat_session import ChatMessage, ChatSession
from app.models.enums import MessageRole


class IChatSessionRepository(ABC):
    """Abstract interface for chat session persistence."""

    @abstractmethod
    async def create_session(
        self,
        user_id: str,
        title: Optional[str] = None,
    ) -> ChatSession:
        """
        Create a chat session.

        Args:
            user_id: Owner user ID
            title: Optional session title (defaults to "New Chat")

        Returns:
            ChatSession
        """
        pass

    @abstractmethod
    async def get_session(self, user_id: str, session_id: UUID) -> Optional[ChatSession]:
        """Get a live session owned by the user, or None."""
        pass

    @abstractmethod
    async def list_sessions(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChatSession]:
        """
        List live chat sessions for a user, most recently active first.

        Args:
            user_id: Owner user ID
            limit: Max sessions
            offset: Pagination offset

        Returns:
            List of chat sessions
        """
        pass

    @abstractmethod
    async def count_sessions(self, user_id: str) -> int:
        """Count live chat sessions for a user."""
        pass

    @abstractmethod
    async def delete_session(self, user_id: str, session_id: UUID) -> bool:
        """
        Soft-delete a session and its messages.

        Returns:
            True if a live session was deleted, False if none was found
        """
        pass

    @abstractmethod
    async def purge_deleted_sessions(self, deleted_before: datetime) -> int:
        """
        Hard-delete sessions soft-deleted before the given time, messages first.

        Returns:
            Number of sessions removed
        """
        pass

    @abstractmethod
    async def add_message(
        self,
        user_id: str,
        session_id: UUID,
        role: MessageRole,
        content: str,
        title: Optional[str] = None,
        token_count: Optional[int] = None,
        is_partial: bool = False,
    ) -> ChatMessage:
        """
        Append a message to a session.

        Args:
            user_id: Owner user ID
            session_id: Session ID
            role: Message role (user/assistant/system)
            content: Message content
            title: Replaces the session title while it is still the default
            token_count: Optional completion token count
            is_partial: Marks a reply that was cut short

        Returns:
            ChatMessage

        Raises:
            NotFoundError: If the session is not a live session of the user
            ValidationError: If content is empty or exceeds MESSAGE_CONTENT_MAX_LENGTH;
                nothing is written
        """
        pass

    @abstractmethod
    async def list_messages(
        self,
        user_id: str,
        session_id: UUID,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ChatMessage]:
        """List messages for a session, oldest first."""
        pass

    @abstractmethod
    async def list_recent_messages(
        self,
        user_id: str,
        session_id: UUID,
        limit: int,
    ) -> list[ChatMessage]:
        """List the newest `limit` messages of a session, returned oldest first."""
        pass
