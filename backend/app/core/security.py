"""
Security helpers for local authentication.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import Settings

_PBKDF2_ALGO = "pbkdf2_sha256"
_PBKDF2_ITERATIONS = 600_000

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2-HMAC-SHA256."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return _format_hash(_PBKDF2_ITERATIONS, salt, digest)


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a password against the stored hash."""
    try:
        algo, iterations, salt, digest = _parse_hash(stored_hash)
    except ValueError:
        return False
    if algo != _PBKDF2_ALGO:
        return False
    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(computed, digest)


def create_access_token(user_id: str, settings: Settings, expires_minutes: int | None = None) -> str:
    """Create a short-lived signed JWT for a local user."""
    return _create_token(
        user_id,
        settings,
        TOKEN_TYPE_ACCESS,
        expires_minutes or settings.LOCAL_JWT_EXPIRE_MINUTES,
    )


def create_refresh_token(user_id: str, settings: Settings, expires_minutes: int | None = None) -> str:
    """Create a long-lived refresh JWT, only accepted by the refresh endpoint."""
    return _create_token(
        user_id,
        settings,
        TOKEN_TYPE_REFRESH,
        expires_minutes or settings.LOCAL_JWT_REFRESH_EXPIRE_MINUTES,
    )


def decode_token(token: str, settings: Settings, expected_type: str = TOKEN_TYPE_ACCESS) -> dict[str, Any]:
    """
    Decode and validate a local JWT.

    Raises:
        JWTError: If the signature, expiry, issuer or token type is invalid
    """
    options = {"verify_iss": bool(settings.LOCAL_JWT_ISSUER)}
    claims = jwt.decode(
        token,
        settings.LOCAL_JWT_SECRET,
        algorithms=["HS256"],
        issuer=settings.LOCAL_JWT_ISSUER or None,
        options=options,
    )
    if claims.get("typ") != expected_type:
        raise JWTError("Unexpected token type")
    if not claims.get("sub"):
        raise JWTError("Missing subject")
    return claims


def _create_token(user_id: str, settings: Settings, token_type: str, expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes)
    payload = {
        "sub": user_id,
        "typ": token_type,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if settings.LOCAL_JWT_ISSUER:
        payload["iss"] = settings.LOCAL_JWT_ISSUER
    return jwt.encode(payload, settings.LOCAL_JWT_SECRET, algorithm="HS256")


def _format_hash(iterations: int, salt: bytes, digest: bytes) -> str:
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"{_PBKDF2_ALGO}${iterations}${salt_b64}${digest_b64}"


def _parse_hash(stored_hash: str) -> tuple[str, int, bytes, bytes]:
    parts = stored_hash.split("$")
    if len(parts) != 4:
        raise ValueError("Invalid hash format")
    algo, iterations_str, salt_b64, digest_b64 = parts
    iterations = int(iterations_str)
    salt = base64.b64decode(salt_b64.encode("ascii"))
    digest = base64.b64decode(digest_b64.encode("ascii"))
    return algo, iterations, salt, digest
