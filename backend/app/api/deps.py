"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.core.config import Settings, get_settings
from app.interfaces.auth_provider import IAuthProvider, User
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.llm_provider import ILLMProvider
from app.interfaces.rate_limiter import IChatRateLimiter
from app.interfaces.user_repository import IUserRepository


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_chat_session_repository() -> IChatSessionRepository:
    """Get chat session repository instance."""
    from app.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
    return SqliteChatSessionRepository()


@lru_cache()
def get_user_repository() -> IUserRepository:
    """Get user repository instance."""
    from app.infrastructure.local.user_repository import SqliteUserRepository
    return SqliteUserRepository()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_llm_provider() -> ILLMProvider:
    """
    Get the upstream completion provider.

    One instance per process so the HTTP connection pool is shared
    between requests.
    """
    settings = get_settings()
    from app.infrastructure.local.openai_compatible_provider import OpenAICompatibleProvider
    return OpenAICompatibleProvider(
        model_name=settings.LLM_MODEL,
        api_base=settings.LLM_API_BASE,
        api_key=settings.LLM_API_KEY,
        timeout_seconds=settings.CHAT_UPSTREAM_TIMEOUT_SECONDS,
        available_models=settings.llm_models,
    )


@lru_cache()
def get_rate_limiter() -> IChatRateLimiter:
    """Get chat rate limiter instance (process-wide counters)."""
    settings = get_settings()
    from app.infrastructure.local.memory_rate_limiter import InMemoryChatRateLimiter
    return InMemoryChatRateLimiter(
        per_minute=settings.CHAT_RATE_LIMIT_PER_MINUTE,
        daily=settings.CHAT_DAILY_MESSAGE_QUOTA,
    )


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    if settings.AUTH_PROVIDER == "local":
        from app.infrastructure.auth.local_auth import LocalAuthProvider

        return LocalAuthProvider(settings, get_user_repository())

    from app.infrastructure.local.mock_auth import MockAuthProvider
    return MockAuthProvider(enabled=True)


# ===========================================
# User Authentication
# ===========================================


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> User:
    """
    Get current authenticated user.

    With the mock provider the bearer token is the user ID.
    With the local provider it must be a valid access JWT.
    """
    if not auth_provider.is_enabled():
        from app.infrastructure.local.mock_auth import DEV_USER_ID
        return await auth_provider.get_user(DEV_USER_ID) or User(id=DEV_USER_ID)

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return await auth_provider.verify_token(token)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

SettingsDep = Annotated[Settings, Depends(get_settings)]
ChatRepo = Annotated[IChatSessionRepository, Depends(get_chat_session_repository)]
UserRepo = Annotated[IUserRepository, Depends(get_user_repository)]
LLMProvider = Annotated[ILLMProvider, Depends(get_llm_provider)]
RateLimiter = Annotated[IChatRateLimiter, Depends(get_rate_limiter)]
CurrentUser = Annotated[User, Depends(get_current_user)]
