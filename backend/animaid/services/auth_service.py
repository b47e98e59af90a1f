# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Login issues a signed bearer token,
logout revokes it, and every protected request re-verifies it.

AuthService receives all collaborators explicitly (credential store, token
codec, revocation ledger, permission resolver, settings, clock). The
application factory builds one per app and stores it in app.extensions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from settings, default 12)
- Login failures never say which check failed
- Unknown identifiers still pay for one bcrypt check (uniform timing)
- Consecutive failures lock the account for the configured duration
- Deactivating a user invalidates their tokens on next verification
- The role list inside a token is a snapshot; permission checks always
  resolve the user's current roles
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

import bcrypt
from flask import current_app

from ..config import AuthSettings, PasswordPolicy
from ..errors import (
    AccountLocked,
    ConflictError,
    InsufficientPermissions,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Role, User, UserRole
from ..permissions import DEFAULT_ROLES
from .credential_store import CredentialStore
from .permission_service import PermissionResolver, set_role_permissions
from .revocation_service import RevocationLedger
from .token_service import TokenClaims, TokenCodec
from animaid.time_utils import Clock, to_epoch, to_utc_z, utcnow

logger = logging.getLogger(__name__)

EXTENSION_KEY = "animaid.auth"

PERMISSION_MODES = ("any", "all")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


# =============================================================================
# PASSWORDS
# =============================================================================

def validate_password_strength(password: str, policy: PasswordPolicy = PasswordPolicy()) -> None:
    """
    Validate password meets the configured strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < policy.min_length:
        raise PasswordValidationError(f"Password must be at least {policy.min_length} characters long")

    if policy.require_uppercase and not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if policy.require_lowercase and not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if policy.require_numbers and not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one number")

    if policy.require_symbols and not re.search(r'[^A-Za-z0-9]', password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, policy: PasswordPolicy = PasswordPolicy()) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password, policy)
    salt = bcrypt.gensalt(rounds=policy.bcrypt_rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


@functools.lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return bcrypt.hashpw(b"animaid-timing-guard", bcrypt.gensalt(rounds=rounds)).decode('utf-8')


# =============================================================================
# AUTH SERVICE
# =============================================================================

@dataclass(frozen=True)
class LoginResult:
    token: str
    claims: TokenClaims
    user: User
    roles: list[str]
    permissions: list[str]

    @property
    def expires_at(self) -> datetime:
        return self.claims.expires_at_datetime

    def to_dict(self) -> dict:
        user = self.user.to_dict()
        user["roles"] = list(self.roles)
        return {
            "token": self.token,
            "expires_at": to_utc_z(self.expires_at),
            "user": user,
            "roles": list(self.roles),
            "permissions": list(self.permissions),
        }


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached to a request once its bearer token checks out."""
    user: User
    claims: TokenClaims
    token: str

    @property
    def id(self) -> int:
        return self.claims.user_id


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        ledger: RevocationLedger,
        resolver: PermissionResolver,
        settings: AuthSettings,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._codec = codec
        self._ledger = ledger
        self._resolver = resolver
        self.settings = settings
        self._clock = clock

    # -- login / logout -------------------------------------------------------

    def login(self, identifier: str, password: str) -> LoginResult:
        """
        Authenticate by username or email and issue a token.

        Raises:
            ValidationError: identifier or password empty
            AccountLocked: account is inside a lockout period (checked before the password)
            InvalidCredentials: unknown identifier, wrong password, or inactive account
        """
        if not identifier or not password:
            raise ValidationError("username/email and password required")

        now = self._clock()
        settings = self.settings

        user = self._store.find_user_by_identifier(identifier)
        if user is None:
            verify_password(password, _dummy_hash(settings.password_policy.bcrypt_rounds))
            raise InvalidCredentials(f"No user matches identifier {identifier!r}")

        user_id = user.id

        if user.locked_until is not None and user.locked_until > now:
            raise self._locked(user_id, user.locked_until, now)

        if not verify_password(password, user.password_hash):
            count = self._store.increment_failed_attempts(
                user_id,
                now=now,
                window_start=now - settings.lockout_window,
                threshold=settings.max_login_attempts,
                lock_until=now + settings.lockout_duration,
            )
            if count > settings.max_login_attempts:
                # A concurrent failure locked the account first
                raise self._locked(user_id, self._store.get_locked_until(user_id), now)
            raise InvalidCredentials(f"Password mismatch for user {user_id} ({count} consecutive failures)")

        if not user.is_active:
            raise InvalidCredentials(f"User {user_id} is deactivated")

        if not self._store.record_successful_login(user_id, now):
            # Locked by a concurrent failure while the password was being checked
            raise self._locked(user_id, self._store.get_locked_until(user_id), now)

        user = self._store.find_user_by_id(user_id)
        roles = self._store.find_role_names_for_user(user_id)
        issued = self._codec.issue(user_id, user.username, roles, settings.token_ttl)
        permissions = sorted(self._resolver.effective_permissions(user_id))

        logger.info("User %s logged in", user_id)
        return LoginResult(
            token=issued.token,
            claims=issued.claims,
            user=user,
            roles=roles,
            permissions=permissions,
        )

    @staticmethod
    def _locked(user_id: int, locked_until: datetime | None, now: datetime) -> AccountLocked:
        retry_after = int((locked_until - now).total_seconds()) + 1 if locked_until else 0
        return AccountLocked(f"User {user_id} locked until {locked_until}", retry_after_seconds=retry_after)

    def logout(self, token: str, reason: str = "User logout") -> TokenClaims:
        """
        Revoke a token until its natural expiry.

        The signature must verify but the token may already be expired, in
        which case nothing is written. Repeated logouts are harmless.
        """
        claims = self._codec.verify(token, allow_expired=True)
        written = self._ledger.revoke(
            claims.jti,
            claims.expires_at_datetime,
            user_id=claims.user_id,
            reason=reason,
        )
        if written:
            logger.info("Revoked token %s for user %s", claims.jti, claims.user_id)
        return claims

    # -- verification ---------------------------------------------------------

    def verify_token(self, token: str) -> AuthenticatedUser:
        """
        Resolve a bearer token to its (still active) user.

        Raises InvalidToken (or TokenExpired) when the token is malformed,
        expired, revoked, or its user is gone or deactivated.
        """
        claims = self._codec.verify(token)

        if self._ledger.is_revoked(claims.jti):
            raise InvalidToken(f"Token {claims.jti} has been revoked")

        user = self._store.find_user_by_id(claims.user_id)
        if user is None:
            raise InvalidToken(f"User {claims.user_id} no longer exists")
        if not user.is_active:
            raise InvalidToken(f"User {claims.user_id} is deactivated")
        if user.sessions_revoked_at is not None and claims.issued_at <= to_epoch(user.sessions_revoked_at):
            raise InvalidToken(f"Sessions for user {claims.user_id} revoked at {user.sessions_revoked_at}")

        return AuthenticatedUser(user=user, claims=claims, token=token)

    def refresh_token(self, token: str) -> LoginResult:
        """Exchange a valid token for a fresh one carrying the current roles."""
        current = self.verify_token(token)
        self._ledger.revoke(
            current.claims.jti,
            current.claims.expires_at_datetime,
            user_id=current.id,
            reason="Token refresh",
        )

        roles = self._store.find_role_names_for_user(current.id)
        issued = self._codec.issue(current.id, current.user.username, roles, self.settings.token_ttl)
        return LoginResult(
            token=issued.token,
            claims=issued.claims,
            user=current.user,
            roles=roles,
            permissions=sorted(self._resolver.effective_permissions(current.id)),
        )

    def revoke_all_sessions(self, user_id: int) -> None:
        """
        Invalidate every token issued to the user so far.

        WHY: Security response (account compromise, lost device). Tokens are
        stateless, so instead of listing them the user row records a cutoff
        and verify_token refuses anything issued at or before it. Resolution
        is one second: a login in the same second as the revocation is
        refused too.
        """
        if not self._store.revoke_sessions(user_id, self._clock()):
            raise NotFound("User not found")
        logger.info("Revoked all sessions for user %s", user_id)

    def current_user(self, token: str) -> dict:
        """Public projection of the token's user, with live roles and permissions."""
        return self.describe_user(self.verify_token(token).user)

    def describe_user(self, user: User) -> dict:
        """Public projection of a user with live roles and permissions."""
        data = user.to_dict()
        data["roles"] = self._store.find_role_names_for_user(user.id)
        data["permissions"] = sorted(self._resolver.effective_permissions(user.id))
        return data

    # -- permissions ----------------------------------------------------------

    def effective_permissions(self, user_id: int) -> set[str]:
        return self._resolver.effective_permissions(user_id)

    def check_permission(self, user_id: int, permission_name: str) -> bool:
        return self._resolver.has_permission(user_id, permission_name)

    def check_any_permission(self, user_id: int, permission_names: Iterable[str]) -> bool:
        return self._resolver.has_any(user_id, permission_names)

    def check_all_permissions(self, user_id: int, permission_names: Iterable[str]) -> bool:
        return self._resolver.has_all(user_id, permission_names)

    def require_permissions(self, user_id: int, permission_names: Iterable[str], mode: str = "any") -> None:
        """
        Raise InsufficientPermissions unless the user satisfies the requirement.

        mode "any": at least one of the names; "all": every name.
        """
        required = list(dict.fromkeys(permission_names))
        if not required:
            raise ValueError("At least one permission name is required")
        if mode not in PERMISSION_MODES:
            raise ValueError(f"mode must be one of {PERMISSION_MODES}")

        if mode == "any":
            if not self._resolver.has_any(user_id, required):
                raise InsufficientPermissions(missing=required, required=required)
            return

        missing = self._resolver.missing(user_id, required)
        if missing:
            raise InsufficientPermissions(missing=missing, required=required)


def get_auth_service() -> AuthService:
    """The AuthService wired into the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]


# =============================================================================
# USER AND ROLE ADMINISTRATION
# =============================================================================

def create_user(
    username: str,
    email: str,
    password: str,
    policy: PasswordPolicy = PasswordPolicy(),
    full_name: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ConflictError: username or email already taken
        PasswordValidationError: password doesn't meet the policy
    """
    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()

    if existing:
        raise ConflictError("Username or email already exists")

    password_hash = hash_password(password, policy)

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=password_hash,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def update_user(
    user_id: int,
    *,
    email: str | None = None,
    full_name: str | None = None,
    is_active: bool | None = None,
    password: str | None = None,
    policy: PasswordPolicy = PasswordPolicy(),
) -> User:
    """
    Update profile fields, activation state or password.

    Deactivation is the only way to remove a user; rows are never deleted.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    if email is not None and email != user.email:
        taken = db.session.query(User).filter(User.email == email, User.id != user_id).first()
        if taken:
            raise ConflictError("Email already exists")
        user.email = email

    if full_name is not None:
        user.full_name = full_name

    if is_active is not None:
        user.is_active = is_active
        if is_active:
            user.failed_login_attempts = 0
            user.locked_until = None

    if password is not None:
        user.password_hash = hash_password(password, policy)

    user.updated_at = utcnow()
    db.session.commit()
    return user


def change_password(
    user_id: int,
    current_password: str,
    new_password: str,
    policy: PasswordPolicy = PasswordPolicy(),
) -> None:
    """Change a user's own password after re-checking the current one."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials(f"Current password mismatch for user {user_id}")

    user.password_hash = hash_password(new_password, policy)
    user.updated_at = utcnow()
    db.session.commit()


def assign_role(user_id: int, role_name: str, assigned_by: int | None = None) -> UserRole:
    """Assign role to user."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role {role_name} not found")

    existing = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id
    ).first()

    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id, assigned_by=assigned_by)

    db.session.add(user_role)
    db.session.commit()
    return user_role


def set_user_roles(user_id: int, role_names: Iterable[str], assigned_by: int | None = None) -> list[str]:
    """Replace a user's role set. Returns the resulting role names."""
    if not db.session.get(User, user_id):
        raise NotFound("User not found")

    role_names = list(dict.fromkeys(role_names))
    roles = db.session.query(Role).filter(Role.name.in_(role_names)).all()

    found = {r.name for r in roles}
    unknown = [name for name in role_names if name not in found]
    if unknown:
        raise ValidationError(f"Unknown roles: {', '.join(unknown)}")

    db.session.query(UserRole).filter_by(user_id=user_id).delete(synchronize_session=False)
    for role in roles:
        db.session.add(UserRole(user_id=user_id, role_id=role.id, assigned_by=assigned_by))

    db.session.commit()
    return sorted(found)


def create_role(
    name: str,
    display_name: str,
    description: str | None = None,
    permission_names: Iterable[str] = (),
    granted_by: int | None = None,
) -> Role:
    """Create a custom (non-system) role, optionally with its permissions."""
    if db.session.query(Role).filter_by(name=name).first():
        raise ConflictError(f"Role '{name}' already exists")

    role = Role(name=name, display_name=display_name, description=description, is_system_role=False)
    db.session.add(role)
    db.session.commit()

    permission_names = list(permission_names)
    if permission_names:
        set_role_permissions(role, permission_names, granted_by=granted_by)

    return role


def update_role(
    role_name: str,
    *,
    name: str | None = None,
    display_name: str | None = None,
    description: str | None = None,
    permission_names: Iterable[str] | None = None,
    granted_by: int | None = None,
) -> Role:
    """
    Update a custom role. System roles are read-only.

    permission_names, when given, replaces the role's permission set.
    """
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role {role_name} not found")
    if role.is_system_role:
        raise ValidationError("Cannot modify system roles")

    if name is not None and name != role.name:
        if db.session.query(Role).filter_by(name=name).first():
            raise ConflictError(f"Role '{name}' already exists")
        role.name = name

    if display_name is not None:
        role.display_name = display_name
    if description is not None:
        role.description = description

    if permission_names is None:
        db.session.commit()
        return role

    try:
        set_role_permissions(role, list(permission_names), granted_by=granted_by)
    except ValidationError:
        db.session.rollback()
        raise

    return role


def delete_role(role_name: str) -> None:
    """Delete a custom role along with its grants and user assignments."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role {role_name} not found")
    if role.is_system_role:
        raise ValidationError("Cannot delete system roles")

    db.session.delete(role)
    db.session.commit()


def remove_role(user_id: int, role_name: str) -> bool:
    """
    Remove one role from a user.

    Returns False if the user did not hold the role.
    """
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise NotFound(f"Role {role_name} not found")

    deleted = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted > 0


def create_default_roles():
    """Create the standard system roles if they don't exist."""
    for name, display_name, description in DEFAULT_ROLES:
        existing = db.session.query(Role).filter_by(name=name).first()
        if not existing:
            role = Role(name=name, display_name=display_name, description=description, is_system_role=True)
            db.session.add(role)

    db.session.commit()
