# Overview: Typed error taxonomy for the auth layer and its HTTP status mapping.

"""
Auth errors carry an explicit ErrorKind. The HTTP boundary switches on the
kind to pick a status code and a client-facing message; the exception text
itself may hold internal detail and is only ever logged.
"""

from __future__ import annotations

import enum

from flask import jsonify


class ErrorKind(enum.Enum):
    VALIDATION = "validation_error"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    INVALID_TOKEN = "invalid_token"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_LOCKED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.INSUFFICIENT_PERMISSIONS: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


class AuthError(Exception):
    """Base class for every error the auth layer reports to callers."""

    kind: ErrorKind
    public_message: str = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.public_message)
        self.detail = detail or self.public_message

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.kind, 500)

    def to_dict(self) -> dict:
        return {"error": self.public_message, "kind": self.kind.value}


class ValidationError(AuthError, ValueError):
    """400-level input problem. The message is safe to show to clients."""
    kind = ErrorKind.VALIDATION

    def __init__(self, detail: str):
        super().__init__(detail)
        self.public_message = detail


class InvalidCredentials(AuthError):
    kind = ErrorKind.INVALID_CREDENTIALS
    public_message = "Invalid credentials"


class AccountLocked(AuthError):
    kind = ErrorKind.ACCOUNT_LOCKED
    public_message = "Account temporarily locked due to too many failed login attempts"

    def __init__(self, detail: str | None = None, retry_after_seconds: int | None = None):
        super().__init__(detail)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["locked"] = True
        if self.retry_after_seconds is not None:
            body["retry_after_seconds"] = self.retry_after_seconds
        return body


class InvalidToken(AuthError):
    """Malformed, expired, revoked, orphaned or deactivated-user token."""
    kind = ErrorKind.INVALID_TOKEN
    public_message = "Invalid or expired token"


class TokenExpired(InvalidToken):
    pass


class InsufficientPermissions(AuthError):
    kind = ErrorKind.INSUFFICIENT_PERMISSIONS
    public_message = "Insufficient permissions"

    def __init__(self, missing: list[str] | tuple[str, ...], required: list[str] | tuple[str, ...] = ()):
        self.missing = list(missing)
        self.required = list(required) or list(missing)
        super().__init__(f"Insufficient permissions. Missing: {', '.join(self.missing)}")

    def to_dict(self) -> dict:
        return {
            "error": "Permission denied",
            "kind": self.kind.value,
            "message": self.detail,
            "required_permissions": self.required,
            "missing_permissions": self.missing,
        }


class NotFound(AuthError):
    kind = ErrorKind.NOT_FOUND
    public_message = "Not found"

    def __init__(self, detail: str = "Not found"):
        super().__init__(detail)
        self.public_message = detail


class ConflictError(AuthError, ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""
    kind = ErrorKind.CONFLICT

    def __init__(self, detail: str):
        super().__init__(detail)
        self.public_message = detail


def error_response(error: AuthError):
    """JSON response for an AuthError, with the status picked by its kind."""
    return jsonify(error.to_dict()), error.status_code


def internal_error_response():
    return jsonify({"error": "Internal server error"}), 500
