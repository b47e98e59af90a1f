"""
Configuration and error mapping tests.
"""

from datetime import timedelta

import pytest

from animaid.config import AuthSettings
from animaid.errors import (
    AccountLocked,
    ConflictError,
    ErrorKind,
    InsufficientPermissions,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    TokenExpired,
    ValidationError,
)


class TestAuthSettings:
    def test_defaults(self):
        settings = AuthSettings.from_mapping({"SECRET_KEY": "k"})

        assert settings.secret == "k"
        assert settings.token_ttl == timedelta(hours=2)
        assert settings.max_login_attempts == 5
        assert settings.lockout_window == timedelta(minutes=15)
        assert settings.lockout_duration == timedelta(minutes=15)
        assert settings.password_policy.min_length == 8
        assert settings.password_policy.bcrypt_rounds == 12

    def test_jwt_secret_preferred(self):
        settings = AuthSettings.from_mapping({"SECRET_KEY": "flask", "JWT_SECRET": "jwt"})
        assert settings.secret == "jwt"

    def test_overrides(self):
        settings = AuthSettings.from_mapping({
            "JWT_SECRET": "jwt",
            "JWT_EXPIRATION_HOURS": 8,
            "MAX_LOGIN_ATTEMPTS": 3,
            "LOCKOUT_DURATION_MINUTES": 60,
            "PASSWORD_REQUIRE_SYMBOLS": True,
        })

        assert settings.token_ttl == timedelta(hours=8)
        assert settings.max_login_attempts == 3
        assert settings.lockout_duration == timedelta(minutes=60)
        assert settings.password_policy.require_symbols is True

    def test_missing_secret(self):
        with pytest.raises(RuntimeError):
            AuthSettings.from_mapping({})


class TestErrorMapping:
    @pytest.mark.parametrize("error,status", [
        (ValidationError("bad"), 400),
        (InvalidCredentials(), 401),
        (AccountLocked(retry_after_seconds=60), 401),
        (InvalidToken("revoked"), 401),
        (TokenExpired("expired"), 401),
        (InsufficientPermissions(["admin.users"]), 403),
        (NotFound("User not found"), 404),
        (ConflictError("duplicate"), 409),
    ])
    def test_status_codes(self, error, status):
        assert error.status_code == status

    def test_internal_detail_not_exposed(self):
        error = InvalidToken("Token abc has been revoked")

        assert error.to_dict()["error"] == "Invalid or expired token"
        assert "abc" not in str(error.to_dict())

    def test_expired_is_invalid_token_kind(self):
        assert TokenExpired("x").kind is ErrorKind.INVALID_TOKEN
