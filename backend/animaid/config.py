# Overview: Flask configuration loaded from environment variables, plus the
# typed auth settings handed to the service layer.

from __future__ import annotations
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/animaid.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///animaid.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token signing. JWT_SECRET falls back to SECRET_KEY when unset.
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_ISSUER = os.environ.get("JWT_ISSUER", "animaid")
    JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE", "animaid-api")
    JWT_EXPIRATION_HOURS = int(os.environ.get("JWT_EXPIRATION_HOURS", "2"))

    # Login throttling
    MAX_LOGIN_ATTEMPTS = int(os.environ.get("MAX_LOGIN_ATTEMPTS", "5"))
    LOCKOUT_WINDOW_MINUTES = int(os.environ.get("LOCKOUT_WINDOW_MINUTES", "15"))
    LOCKOUT_DURATION_MINUTES = int(os.environ.get("LOCKOUT_DURATION_MINUTES", "15"))

    # Password policy
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LENGTH = int(os.environ.get("PASSWORD_MIN_LENGTH", "8"))
    PASSWORD_REQUIRE_UPPERCASE = _env_bool("PASSWORD_REQUIRE_UPPERCASE", True)
    PASSWORD_REQUIRE_LOWERCASE = _env_bool("PASSWORD_REQUIRE_LOWERCASE", True)
    PASSWORD_REQUIRE_NUMBERS = _env_bool("PASSWORD_REQUIRE_NUMBERS", True)
    PASSWORD_REQUIRE_SYMBOLS = _env_bool("PASSWORD_REQUIRE_SYMBOLS", False)

    # Default admin created by `flask system init`
    DEFAULT_ADMIN_USERNAME = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_EMAIL = os.environ.get("DEFAULT_ADMIN_EMAIL", "admin@animaid.local")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "Admin123!@#")

    # Browser origins allowed to call the API (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 8
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_numbers: bool = True
    require_symbols: bool = False
    bcrypt_rounds: int = 12


@dataclass(frozen=True)
class AuthSettings:
    """
    Everything the auth services need from configuration.

    Built once by the application factory and passed to the services, so
    nothing below the route layer reads Flask config directly.
    """
    secret: str
    issuer: str = "animaid"
    audience: str = "animaid-api"
    token_ttl: timedelta = timedelta(hours=2)
    max_login_attempts: int = 5
    lockout_window: timedelta = timedelta(minutes=15)
    lockout_duration: timedelta = timedelta(minutes=15)
    password_policy: PasswordPolicy = PasswordPolicy()

    @classmethod
    def from_mapping(cls, config: Mapping) -> "AuthSettings":
        secret = config.get("JWT_SECRET") or config.get("SECRET_KEY")
        if not secret:
            raise RuntimeError("JWT_SECRET or SECRET_KEY must be configured")

        policy = PasswordPolicy(
            min_length=int(config.get("PASSWORD_MIN_LENGTH", 8)),
            require_uppercase=bool(config.get("PASSWORD_REQUIRE_UPPERCASE", True)),
            require_lowercase=bool(config.get("PASSWORD_REQUIRE_LOWERCASE", True)),
            require_numbers=bool(config.get("PASSWORD_REQUIRE_NUMBERS", True)),
            require_symbols=bool(config.get("PASSWORD_REQUIRE_SYMBOLS", False)),
            bcrypt_rounds=int(config.get("BCRYPT_ROUNDS", 12)),
        )

        return cls(
            secret=secret,
            issuer=config.get("JWT_ISSUER", "animaid"),
            audience=config.get("JWT_AUDIENCE", "animaid-api"),
            token_ttl=timedelta(hours=int(config.get("JWT_EXPIRATION_HOURS", 2))),
            max_login_attempts=int(config.get("MAX_LOGIN_ATTEMPTS", 5)),
            lockout_window=timedelta(minutes=int(config.get("LOCKOUT_WINDOW_MINUTES", 15))),
            lockout_duration=timedelta(minutes=int(config.get("LOCKOUT_DURATION_MINUTES", 15))),
            password_policy=policy,
        )
