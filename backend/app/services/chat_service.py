"""
Chat session service.

Session CRUD on top of the chat session repository. Ownership failures are
reported as NotFoundError so other users' sessions stay invisible.
"""

import logging
from uuid import UUID

from app.core.exceptions import NotFoundError
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.models.chat import (
    CreateSessionResponse,
    ListSessionsResponse,
    SessionHistoryResponse,
)

logger = logging.getLogger(__name__)

HISTORY_MESSAGE_LIMIT = 500


class ChatService:
    """Service for chat session management."""

    def __init__(self, chat_repo: IChatSessionRepository):
        self.chat_repo = chat_repo

    async def create_session(self, user_id: str, title: str | None = None) -> CreateSessionResponse:
        session = await self.chat_repo.create_session(user_id, title=title)
        logger.info(f"Created chat session {session.id} for user {user_id}")
        return CreateSessionResponse(session_id=session.id, title=session.title)

    async def list_sessions(self, user_id: str, page: int = 0, per_page: int = 20) -> ListSessionsResponse:
        """List one page of the user's live sessions, most recently active first."""
        sessions = await self.chat_repo.list_sessions(user_id, limit=per_page, offset=page * per_page)
        total = await self.chat_repo.count_sessions(user_id)
        return ListSessionsResponse(
            sessions=sessions,
            total=total,
            page=page,
            per_page=per_page,
        )

    async def get_history(self, user_id: str, session_id: UUID) -> SessionHistoryResponse:
        """The session with its newest HISTORY_MESSAGE_LIMIT messages, oldest first."""
        session = await self.chat_repo.get_session(user_id, session_id)
        if not session:
            raise NotFoundError(f"Chat session {session_id} not found")
        messages = await self.chat_repo.list_recent_messages(
            user_id, session_id, limit=HISTORY_MESSAGE_LIMIT
        )
        return SessionHistoryResponse(session=session, messages=messages)

    async def delete_session(self, user_id: str, session_id: UUID) -> None:
        """
        Soft-delete a session and its messages.

        Raises:
            NotFoundError: If the session is missing, already deleted, or not owned
        """
        deleted = await self.chat_repo.delete_session(user_id, session_id)
        if not deleted:
            raise NotFoundError(f"Chat session {session_id} not found")
        logger.info(f"Deleted chat session {session_id} for user {user_id}")
