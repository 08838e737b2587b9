"""
Local password authentication provider.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from jose import JWTError

from app.core.config import Settings
from app.core.exceptions import ConfigurationError
from app.core.security import TOKEN_TYPE_ACCESS, decode_token
from app.interfaces.auth_provider import IAuthProvider, User
from app.interfaces.user_repository import IUserRepository


class LocalAuthProvider(IAuthProvider):
    """Local auth provider with HMAC JWT validation."""

    def __init__(self, settings: Settings, user_repo: IUserRepository):
        if not settings.LOCAL_JWT_SECRET:
            raise ConfigurationError("LOCAL_JWT_SECRET must be set for local auth")
        self._settings = settings
        self._user_repo = user_repo

    async def verify_token(self, token: str) -> User:
        claims = decode_token(token, self._settings, expected_type=TOKEN_TYPE_ACCESS)
        user = await self.get_user(str(claims["sub"]))
        if not user:
            raise JWTError("User not found")
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        try:
            account_id = UUID(user_id)
        except ValueError:
            return None
        account = await self._user_repo.get(account_id)
        if not account:
            return None
        return User(
            id=str(account.id),
            email=account.email,
            display_name=account.display_name,
        )

    def is_enabled(self) -> bool:
        return True
