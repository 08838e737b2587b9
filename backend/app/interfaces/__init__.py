"""Abstract interfaces for infrastructure abstraction."""

from app.interfaces.auth_provider import IAuthProvider, User
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.llm_provider import ILLMProvider, IUpstreamStream
from app.interfaces.rate_limiter import IChatRateLimiter
from app.interfaces.user_repository import IUserRepository

__all__ = [
    "IAuthProvider",
    "User",
    "IChatSessionRepository",
    "ILLMProvider",
    "IUpstreamStream",
    "IChatRateLimiter",
    "IUserRepository",
]
