# Overview: Request payload schemas for the auth and admin APIs.

"""
Each schema validates a decoded JSON body once, in from_json(), and raises
ValidationError with a client-safe message on the first problem found.
Routes work with the resulting frozen dataclass, never with raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ValidationError


def _require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Expected a string value")
    text = value.strip()
    return text if text else None


def _required_text(data: dict, field: str, max_length: int | None = None) -> str:
    value = _to_text(data.get(field))
    if value is None:
        raise ValidationError(f"{field} is required")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def _optional_text(data: dict, field: str, max_length: int | None = None) -> str | None:
    value = _to_text(data.get(field))
    if value is not None and max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def _name_list(data: dict, field: str, required: bool = True) -> tuple[str, ...]:
    value = data.get(field)
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
        raise ValidationError(f"{field} must be a list of names")
    return tuple(dict.fromkeys(v.strip() for v in value))


def _check_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("email is not a valid address")
    return email.lower()


@dataclass(frozen=True)
class LoginRequest:
    identifier: str
    password: str

    @classmethod
    def from_json(cls, data: Any) -> "LoginRequest":
        if not isinstance(data, dict):
            data = {}
        identifier = (
            _to_text(data.get("username"))
            or _to_text(data.get("email"))
            or _to_text(data.get("identifier"))
        )
        password = data.get("password")
        if not identifier or not isinstance(password, str) or not password:
            raise ValidationError("username/email and password required")
        return cls(identifier=identifier, password=password)


@dataclass(frozen=True)
class CreateUserRequest:
    username: str
    email: str
    password: str
    full_name: str | None = None
    roles: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, data: Any) -> "CreateUserRequest":
        data = _require_object(data)
        password = data.get("password")
        if not isinstance(password, str) or not password:
            raise ValidationError("password is required")
        return cls(
            username=_required_text(data, "username", max_length=50),
            email=_check_email(_required_text(data, "email", max_length=255)),
            password=password,
            full_name=_optional_text(data, "full_name", max_length=255),
            roles=_name_list(data, "roles", required=False),
        )


@dataclass(frozen=True)
class UpdateUserRequest:
    email: str | None = None
    full_name: str | None = None
    is_active: bool | None = None
    password: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> "UpdateUserRequest":
        data = _require_object(data)

        is_active = data.get("is_active")
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")

        password = data.get("password")
        if password is not None and (not isinstance(password, str) or not password):
            raise ValidationError("password must be a non-empty string")

        email = _optional_text(data, "email", max_length=255)

        request = cls(
            email=_check_email(email) if email else None,
            full_name=_optional_text(data, "full_name", max_length=255),
            is_active=is_active,
            password=password,
        )
        if request == cls():
            raise ValidationError("No updatable fields provided")
        return request


@dataclass(frozen=True)
class AssignRolesRequest:
    roles: tuple[str, ...]

    @classmethod
    def from_json(cls, data: Any) -> "AssignRolesRequest":
        data = _require_object(data)
        return cls(roles=_name_list(data, "roles"))


@dataclass(frozen=True)
class CreateRoleRequest:
    name: str
    display_name: str
    description: str | None = None
    permissions: tuple[str, ...] = ()

    @classmethod
    def from_json(cls, data: Any) -> "CreateRoleRequest":
        data = _require_object(data)
        name = _required_text(data, "name", max_length=50)
        return cls(
            name=name,
            display_name=_optional_text(data, "display_name", max_length=100) or name,
            description=_optional_text(data, "description"),
            permissions=_name_list(data, "permissions", required=False),
        )


@dataclass(frozen=True)
class RolePermissionRequest:
    permission: str

    @classmethod
    def from_json(cls, data: Any) -> "RolePermissionRequest":
        data = _require_object(data)
        return cls(permission=_required_text(data, "permission", max_length=100))


@dataclass(frozen=True)
class UpdateRoleRequest:
    name: str | None = None
    display_name: str | None = None
    description: str | None = None
    permissions: tuple[str, ...] | None = None

    @classmethod
    def from_json(cls, data: Any) -> "UpdateRoleRequest":
        data = _require_object(data)
        request = cls(
            name=_optional_text(data, "name", max_length=50),
            display_name=_optional_text(data, "display_name", max_length=100),
            description=_optional_text(data, "description"),
            permissions=_name_list(data, "permissions") if "permissions" in data else None,
        )
        if request == cls():
            raise ValidationError("No updatable fields provided")
        return request


@dataclass(frozen=True)
class ChangePasswordRequest:
    current_password: str
    new_password: str

    @classmethod
    def from_json(cls, data: Any) -> "ChangePasswordRequest":
        data = _require_object(data)
        current = data.get("current_password")
        new = data.get("new_password")
        if not isinstance(current, str) or not current or not isinstance(new, str) or not new:
            raise ValidationError("current_password and new_password required")
        return cls(current_password=current, new_password=new)
