# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Resolution and Security Event Logging

WHY: Enforce role-based access control and create audit trail.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Cumulative roles: a user's permissions are the union over all their roles
- Live resolution: role assignments are read per check, never cached in tokens
- Log denials only: Permission grants are not logged
"""

from __future__ import annotations

from typing import Iterable

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Permission, Role, RolePermission, SecurityEvent
from ..permissions import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS
from .credential_store import CredentialStore
from animaid.time_utils import utcnow


class PermissionResolver:
    """Maps a user's role set to an effective permission set."""

    def __init__(self, store: CredentialStore):
        self._store = store

    def effective_permissions(self, user_id: int) -> set[str]:
        """
        Get all permission names for a user.

        Unknown users and users without roles get an empty set.
        """
        role_ids = self._store.find_role_ids_for_user(user_id)
        if not role_ids:
            return set()
        return set(self._store.find_permission_names_for_roles(role_ids))

    def has_permission(self, user_id: int, permission_name: str) -> bool:
        return permission_name in self.effective_permissions(user_id)

    def has_any(self, user_id: int, required: Iterable[str]) -> bool:
        required = set(required)
        return bool(required & self.effective_permissions(user_id))

    def has_all(self, user_id: int, required: Iterable[str]) -> bool:
        return set(required) <= self.effective_permissions(user_id)

    def missing(self, user_id: int, required: Iterable[str]) -> list[str]:
        """Required permission names the user lacks, in the order given."""
        granted = self.effective_permissions(user_id)
        return [name for name in dict.fromkeys(required) if name not in granted]


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_SUCCESS
    - LOGIN_FAILED
    - LOGIN_LOCKED
    - LOGOUT
    - PERMISSION_DENIED
    - ROLE_ASSIGNED
    - USER_CREATED
    - USER_UPDATED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_permissions_grouped() -> dict[str, list[dict]]:
    """All permissions keyed by category, for admin UI display."""
    grouped: dict[str, list[dict]] = {}
    permissions = db.session.query(Permission).order_by(Permission.category, Permission.name).all()
    for permission in permissions:
        grouped.setdefault(permission.category, []).append(permission.to_dict())
    return grouped


def get_role_permission_names(role_id: int) -> list[str]:
    rows = (
        db.session.query(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id)
        .order_by(Permission.name)
        .all()
    )
    return [row[0] for row in rows]


def initialize_permissions():
    """
    Initialize all permission definitions in database.

    Creates Permission records for all names in PERMISSION_DEFINITIONS.
    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for name, display_name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(name=name).first()

        if not existing:
            permission = Permission(
                name=name,
                display_name=display_name,
                description=description,
                category=category
            )
            db.session.add(permission)
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions():
    """
    Assign default permissions to roles based on DEFAULT_ROLE_PERMISSIONS.

    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_name, permission_names in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()

        if not role:
            continue  # Role doesn't exist, skip

        for permission_name in permission_names:
            permission = db.session.query(Permission).filter_by(name=permission_name).first()

            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count


def _get_role_and_permission(role_name: str, permission_name: str) -> tuple[Role, Permission]:
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(name=permission_name).first()
    if not permission:
        raise NotFound(f"Permission '{permission_name}' not found")

    return role, permission


def grant_permission_to_role(role_name: str, permission_name: str, granted_by: int | None = None):
    """Grant a permission to a role."""
    role, permission = _get_role_and_permission(role_name, permission_name)

    existing = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if existing:
        return existing  # Already granted

    role_permission = RolePermission(
        role_id=role.id,
        permission_id=permission.id,
        granted_by=granted_by,
    )

    db.session.add(role_permission)
    db.session.commit()

    return role_permission


def revoke_permission_from_role(role_name: str, permission_name: str):
    """Revoke a permission from a role."""
    role, permission = _get_role_and_permission(role_name, permission_name)

    role_permission = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if role_permission:
        db.session.delete(role_permission)
        db.session.commit()
        return True

    return False  # Wasn't granted in the first place


def set_role_permissions(role: Role, permission_names: Iterable[str], granted_by: int | None = None) -> None:
    """Replace a role's permission set. Unknown permission names are rejected."""
    permission_names = list(dict.fromkeys(permission_names))
    permissions = db.session.query(Permission).filter(Permission.name.in_(permission_names)).all()

    found = {p.name for p in permissions}
    unknown = [name for name in permission_names if name not in found]
    if unknown:
        raise ValidationError(f"Unknown permissions: {', '.join(unknown)}")

    db.session.query(RolePermission).filter_by(role_id=role.id).delete(synchronize_session=False)
    for permission in permissions:
        db.session.add(RolePermission(role_id=role.id, permission_id=permission.id, granted_by=granted_by))

    db.session.commit()
