"""
SQLite implementation of user repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError
from app.infrastructure.local.database import UserORM, get_session_factory
from app.interfaces.user_repository import IUserRepository
from app.models.user import UserAccount, UserCreate
from app.utils.datetime_utils import now_utc


class SqliteUserRepository(IUserRepository):
    """SQLite implementation of user repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def _find_one(self, clause) -> Optional[UserAccount]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserORM).where(clause))
            orm = result.scalar_one_or_none()
            return UserAccount.model_validate(orm) if orm else None

    async def get(self, user_id: UUID) -> Optional[UserAccount]:
        return await self._find_one(UserORM.id == str(user_id))

    async def get_by_email(self, email: str) -> Optional[UserAccount]:
        return await self._find_one(UserORM.email == email)

    async def get_by_username(self, username: str) -> Optional[UserAccount]:
        return await self._find_one(UserORM.username == username)

    async def create(self, data: UserCreate) -> UserAccount:
        """
        Insert a local account.

        Raises:
            ConflictError: If the username or email is already taken
        """
        now = now_utc()
        orm = UserORM(
            id=str(uuid4()),
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        async with self._session_factory() as session:
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("Username or email already exists") from e
            await session.refresh(orm)
            return UserAccount.model_validate(orm)
