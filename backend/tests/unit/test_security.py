"""
Unit tests for password hashing and local JWTs.
"""

import pytest
from jose import JWTError

from app.core.config import Settings
from app.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        AUTH_PROVIDER="local",
        LOCAL_JWT_SECRET="test-secret",
        LOCAL_JWT_ISSUER="cobalt-test",
    )


class TestPasswordHashing:
    def test_round_trip(self):
        stored = hash_password("correct horse")
        assert stored.startswith("pbkdf2_sha256$")
        assert verify_password("correct horse", stored)
        assert not verify_password("wrong horse", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash(self):
        assert not verify_password("anything", "not-a-hash")
        assert not verify_password("anything", "md5$1$YQ==$YQ==")


class TestTokens:
    def test_access_token_claims(self, settings):
        claims = decode_token(create_access_token("user-1", settings), settings)
        assert claims["sub"] == "user-1"
        assert claims["typ"] == TOKEN_TYPE_ACCESS
        assert claims["iss"] == "cobalt-test"

    def test_refresh_token_is_not_an_access_token(self, settings):
        refresh = create_refresh_token("user-1", settings)
        assert decode_token(refresh, settings, expected_type=TOKEN_TYPE_REFRESH)["sub"] == "user-1"
        with pytest.raises(JWTError):
            decode_token(refresh, settings)

    def test_wrong_secret(self, settings):
        token = create_access_token("user-1", settings)
        other = settings.model_copy(update={"LOCAL_JWT_SECRET": "other-secret"})
        with pytest.raises(JWTError):
            decode_token(token, other)

    def test_wrong_issuer(self, settings):
        token = create_access_token("user-1", settings)
        other = settings.model_copy(update={"LOCAL_JWT_ISSUER": "someone-else"})
        with pytest.raises(JWTError):
            decode_token(token, other)

    def test_expired(self, settings):
        token = create_access_token("user-1", settings, expires_minutes=-1)
        with pytest.raises(JWTError):
            decode_token(token, settings)
