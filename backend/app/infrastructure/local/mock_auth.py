"""
Development auth provider.

The bearer token is the user ID, so `curl -H "Authorization: Bearer alice"`
acts as alice. Every distinct token gets its own isolated chat sessions.
"""

import re
from typing import Optional

from app.core.exceptions import AuthenticationError
from app.interfaces.auth_provider import IAuthProvider, User

DEV_USER_ID = "dev_user"

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


class MockAuthProvider(IAuthProvider):
    """Token-is-identity auth for local development and tests."""

    def __init__(self, enabled: bool = False):
        self._enabled = enabled
        self._seen: dict[str, User] = {}

    @staticmethod
    def _make_user(user_id: str) -> User:
        email = user_id if "@" in user_id else f"{user_id}@localhost"
        return User(id=user_id, email=email, display_name=user_id.split("@")[0])

    async def verify_token(self, token: str) -> User:
        """
        Resolve the caller from a raw user ID token.

        Raises:
            AuthenticationError: If the token is empty or not a usable ID
        """
        user_id = token.strip()
        if not _USER_ID_PATTERN.match(user_id):
            raise AuthenticationError("Invalid development token")

        user = self._seen.get(user_id)
        if user is None:
            user = self._make_user(user_id)
            self._seen[user_id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        if user_id == DEV_USER_ID:
            return self._make_user(DEV_USER_ID)
        return self._seen.get(user_id)

    def is_enabled(self) -> bool:
        return self._enabled
