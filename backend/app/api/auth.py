"""
Local authentication endpoints (register/login/refresh).
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from jose import JWTError
from pydantic import BaseModel, Field

from app.api.deps import CurrentUser, SettingsDep, UserRepo
from app.core.config import Settings
from app.core.exceptions import ConflictError
from app.core.logger import logger
from app.core.security import (
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.models.user import UserAccount, UserCreate

router = APIRouter()


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AuthUser


def _normalize_email(value: str) -> str:
    return value.strip().lower()


def _ensure_local_auth(settings: Settings) -> None:
    if settings.AUTH_PROVIDER != "local":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Local auth is not enabled",
        )
    if not settings.LOCAL_JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="LOCAL_JWT_SECRET is not configured",
        )


def _issue_tokens(user: UserAccount, settings: Settings) -> AuthResponse:
    return AuthResponse(
        access_token=create_access_token(str(user.id), settings),
        refresh_token=create_refresh_token(str(user.id), settings),
        user=AuthUser(
            id=str(user.id),
            email=user.email,
            display_name=user.display_name,
            username=user.username,
        ),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    user_repo: UserRepo,
    settings: SettingsDep,
) -> AuthResponse:
    _ensure_local_auth(settings)

    username = data.username.strip()
    if not username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is required",
        )
    email = _normalize_email(data.email)
    if not email or "@" not in email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A valid email is required",
        )

    existing_username = await user_repo.get_by_username(username)
    if existing_username:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists",
        )

    existing_email = await user_repo.get_by_email(email)
    if existing_email:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists",
        )

    display_name = data.display_name.strip() if data.display_name else None
    try:
        user = await user_repo.create(
            UserCreate(
                username=username,
                email=email,
                display_name=display_name or username,
                password_hash=hash_password(data.password),
            )
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    logger.info(f"Registered local user {user.id}")
    return _issue_tokens(user, settings)


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    user_repo: UserRepo,
    settings: SettingsDep,
) -> AuthResponse:
    _ensure_local_auth(settings)

    identifier = data.identifier.strip()
    if not identifier:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Identifier is required",
        )
    user = None
    if "@" in identifier:
        user = await user_repo.get_by_email(_normalize_email(identifier))
    if not user:
        user = await user_repo.get_by_username(identifier)

    if not user or not user.password_hash:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    if not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    return _issue_tokens(user, settings)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    data: RefreshRequest,
    user_repo: UserRepo,
    settings: SettingsDep,
) -> AuthResponse:
    """Exchange a refresh token for a new access/refresh pair."""
    _ensure_local_auth(settings)

    try:
        claims = decode_token(data.refresh_token, settings, expected_type=TOKEN_TYPE_REFRESH)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid refresh token: {e}",
        )

    try:
        user_id = UUID(str(claims["sub"]))
    except ValueError:
        user_id = None
    user = await user_repo.get(user_id) if user_id else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return _issue_tokens(user, settings)


@router.get("/me", response_model=AuthUser)
async def me(user: CurrentUser) -> AuthUser:
    return AuthUser(id=user.id, email=user.email, display_name=user.display_name)
