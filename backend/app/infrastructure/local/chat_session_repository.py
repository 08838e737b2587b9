"""
SQLite implementation of Chat session repository.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, func, select, update

from app.core.exceptions import NotFoundError, ValidationError
from app.infrastructure.local.database import ChatMessageORM, ChatSessionORM, get_session_factory
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.models.chat_session import (
    DEFAULT_SESSION_TITLE,
    MESSAGE_CONTENT_MAX_LENGTH,
    ChatMessage,
    ChatSession,
)
from app.models.enums import MessageRole
from app.utils.datetime_utils import now_utc


class SqliteChatSessionRepository(IChatSessionRepository):
    """SQLite implementation of chat session repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _session_orm_to_model(self, orm: ChatSessionORM) -> ChatSession:
        """Convert session ORM object to Pydantic model."""
        return ChatSession(
            id=UUID(orm.id),
            user_id=orm.user_id,
            title=orm.title or DEFAULT_SESSION_TITLE,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
            deleted_at=orm.deleted_at,
        )

    def _message_orm_to_model(self, orm: ChatMessageORM) -> ChatMessage:
        """Convert message ORM object to Pydantic model."""
        return ChatMessage(
            id=UUID(orm.id),
            session_id=UUID(orm.session_id),
            role=MessageRole(orm.role),
            content=orm.content,
            token_count=orm.token_count,
            is_partial=bool(orm.is_partial),
            created_at=orm.created_at,
        )

    @staticmethod
    def _live_session_clause(user_id: str, session_id: UUID):
        return and_(
            ChatSessionORM.id == str(session_id),
            ChatSessionORM.user_id == user_id,
            ChatSessionORM.deleted_at.is_(None),
        )

    async def create_session(
        self,
        user_id: str,
        title: Optional[str] = None,
    ) -> ChatSession:
        """Create a chat session."""
        async with self._session_factory() as session:
            now = now_utc()
            orm = ChatSessionORM(
                id=str(uuid4()),
                user_id=user_id,
                title=(title or "").strip() or DEFAULT_SESSION_TITLE,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._session_orm_to_model(orm)

    async def get_session(self, user_id: str, session_id: UUID) -> Optional[ChatSession]:
        """Get a live session owned by the user."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM).where(self._live_session_clause(user_id, session_id))
            )
            orm = result.scalar_one_or_none()
            return self._session_orm_to_model(orm) if orm else None

    async def list_sessions(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChatSession]:
        """List chat sessions for a user."""
        async with self._session_factory() as session:
            query = (
                select(ChatSessionORM)
                .where(
                    and_(
                        ChatSessionORM.user_id == user_id,
                        ChatSessionORM.deleted_at.is_(None),
                    )
                )
                .order_by(ChatSessionORM.updated_at.desc())
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(query)
            return [self._session_orm_to_model(orm) for orm in result.scalars().all()]

    async def count_sessions(self, user_id: str) -> int:
        """Count chat sessions for a user."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(ChatSessionORM)
                .where(
                    and_(
                        ChatSessionORM.user_id == user_id,
                        ChatSessionORM.deleted_at.is_(None),
                    )
                )
            )
            return int(result.scalar_one())

    async def delete_session(self, user_id: str, session_id: UUID) -> bool:
        """Soft-delete a session, then its messages."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM).where(self._live_session_clause(user_id, session_id))
            )
            orm = result.scalar_one_or_none()
            if not orm:
                return False

            now = now_utc()
            orm.deleted_at = now
            await session.execute(
                update(ChatMessageORM)
                .where(
                    and_(
                        ChatMessageORM.session_id == orm.id,
                        ChatMessageORM.deleted_at.is_(None),
                    )
                )
                .values(deleted_at=now)
            )
            await session.commit()
            return True

    async def purge_deleted_sessions(self, deleted_before: datetime) -> int:
        """Hard-delete long soft-deleted sessions, messages first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM.id).where(
                    and_(
                        ChatSessionORM.deleted_at.is_not(None),
                        ChatSessionORM.deleted_at < deleted_before,
                    )
                )
            )
            session_ids = list(result.scalars().all())
            if not session_ids:
                return 0

            await session.execute(
                delete(ChatMessageORM).where(ChatMessageORM.session_id.in_(session_ids))
            )
            await session.execute(
                delete(ChatSessionORM).where(ChatSessionORM.id.in_(session_ids))
            )
            await session.commit()
            return len(session_ids)

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
        Add a message to a session.

        Raises:
            ValidationError: If content is empty or longer than the storage cap
            NotFoundError: If the session is missing, deleted, or not owned
        """
        if not content or len(content) > MESSAGE_CONTENT_MAX_LENGTH:
            raise ValidationError(
                f"Message content must be 1-{MESSAGE_CONTENT_MAX_LENGTH} characters"
            )

        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM).where(self._live_session_clause(user_id, session_id))
            )
            session_orm = result.scalar_one_or_none()
            if not session_orm:
                raise NotFoundError(f"Chat session {session_id} not found")

            now = await self._next_message_time(session, session_orm.id)
            session_orm.updated_at = now
            if title and (not session_orm.title or session_orm.title == DEFAULT_SESSION_TITLE):
                session_orm.title = title

            message_orm = ChatMessageORM(
                id=str(uuid4()),
                session_id=session_orm.id,
                role=MessageRole(role).value,
                content=content,
                token_count=token_count,
                is_partial=is_partial,
                created_at=now,
            )
            session.add(message_orm)

            await session.commit()
            await session.refresh(message_orm)
            return self._message_orm_to_model(message_orm)

    @staticmethod
    async def _next_message_time(session, session_id: str) -> datetime:
        """Current time, nudged past the newest message so ordering stays strict."""
        now = now_utc()
        result = await session.execute(
            select(func.max(ChatMessageORM.created_at)).where(ChatMessageORM.session_id == session_id)
        )
        latest = result.scalar_one_or_none()
        if latest is not None and latest.replace(tzinfo=None) >= now.replace(tzinfo=None):
            now = latest.replace(tzinfo=now.tzinfo) + timedelta(microseconds=1)
        return now

    def _messages_query(self, user_id: str, session_id: UUID):
        return (
            select(ChatMessageORM)
            .join(ChatSessionORM, ChatSessionORM.id == ChatMessageORM.session_id)
            .where(
                and_(
                    self._live_session_clause(user_id, session_id),
                    ChatMessageORM.deleted_at.is_(None),
                )
            )
        )

    async def list_messages(
        self,
        user_id: str,
        session_id: UUID,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ChatMessage]:
        """List messages for a session."""
        async with self._session_factory() as session:
            query = (
                self._messages_query(user_id, session_id)
                .order_by(ChatMessageORM.created_at.asc())
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(query)
            return [self._message_orm_to_model(orm) for orm in result.scalars().all()]

    async def list_recent_messages(
        self,
        user_id: str,
        session_id: UUID,
        limit: int,
    ) -> list[ChatMessage]:
        """List the newest messages of a session, oldest first."""
        async with self._session_factory() as session:
            query = (
                self._messages_query(user_id, session_id)
                .order_by(ChatMessageORM.created_at.desc())
                .limit(limit)
            )
            result = await session.execute(query)
            newest_first = [self._message_orm_to_model(orm) for orm in result.scalars().all()]
            return list(reversed(newest_first))
