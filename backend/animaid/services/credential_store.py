# Overview: Credential store interface and its SQLAlchemy implementation.

"""
Credential Store

The auth service depends only on the CredentialStore protocol, so it can
be exercised with an in-memory fake. SqlCredentialStore is the production
implementation backed by the Flask-SQLAlchemy session.

CONCURRENCY: Failed-attempt bookkeeping is a single UPDATE expression
evaluated by the database, so two concurrent failures for the same user
both land. On SQLite the first UPDATE takes the write lock, which keeps the
follow-up lockout UPDATE in the same serialized transaction.
The success path clears the counter with an UPDATE guarded by the lock, so
a login that raced a locking failure cannot undo that lock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

import sqlalchemy as sa

from ..extensions import db
from ..models import Permission, Role, RolePermission, User, UserRole


class CredentialStore(Protocol):
    def find_user_by_identifier(self, identifier: str) -> Optional[User]: ...

    def find_user_by_id(self, user_id: int) -> Optional[User]: ...

    def increment_failed_attempts(
        self,
        user_id: int,
        *,
        now: datetime,
        window_start: datetime,
        threshold: int,
        lock_until: datetime,
    ) -> int: ...

    def record_successful_login(self, user_id: int, now: datetime) -> bool: ...

    def get_locked_until(self, user_id: int) -> Optional[datetime]: ...

    def revoke_sessions(self, user_id: int, now: datetime) -> bool: ...

    def find_role_ids_for_user(self, user_id: int) -> set[int]: ...

    def find_role_names_for_user(self, user_id: int) -> list[str]: ...

    def find_permission_names_for_roles(self, role_ids: Iterable[int]) -> set[str]: ...


class SqlCredentialStore:
    """CredentialStore over the application's SQLAlchemy session."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def find_user_by_identifier(self, identifier: str) -> Optional[User]:
        return self.session.query(User).filter(
            db.or_(User.username == identifier, db.func.lower(User.email) == identifier.lower())
        ).first()

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def increment_failed_attempts(
        self,
        user_id: int,
        *,
        now: datetime,
        window_start: datetime,
        threshold: int,
        lock_until: datetime,
    ) -> int:
        """
        Count one failed attempt and lock the account once the threshold is hit.

        The counter restarts at 1 when the previous failure is older than the
        lockout window or when an earlier lockout has already run out.

        Returns the updated consecutive failure count.
        """
        starts_fresh = db.or_(
            User.last_failed_login_at.is_(None),
            User.last_failed_login_at < window_start,
            db.and_(User.locked_until.is_not(None), User.locked_until <= now),
        )

        self.session.execute(
            sa.update(User)
            .where(User.id == user_id)
            .values(
                failed_login_attempts=sa.case(
                    (starts_fresh, 1),
                    else_=User.failed_login_attempts + 1,
                ),
                locked_until=sa.case(
                    (starts_fresh, None),
                    else_=User.locked_until,
                ),
                last_failed_login_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        count = self.session.execute(
            sa.select(User.failed_login_attempts).where(User.id == user_id)
        ).scalar_one()

        if count >= threshold:
            self.session.execute(
                sa.update(User)
                .where(User.id == user_id)
                .values(locked_until=lock_until)
                .execution_options(synchronize_session=False)
            )

        self.session.commit()
        return count

    def record_successful_login(self, user_id: int, now: datetime) -> bool:
        """
        Clear the failure counter and stamp last_login_at, unless locked.

        The lock is re-checked inside the UPDATE, so a failure that locked the
        account while this login was verifying its password still wins.
        Returns False (and changes nothing) when the account is locked.
        """
        result = self.session.execute(
            sa.update(User)
            .where(
                User.id == user_id,
                db.or_(User.locked_until.is_(None), User.locked_until <= now),
            )
            .values(
                failed_login_attempts=0,
                last_failed_login_at=None,
                locked_until=None,
                last_login_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def get_locked_until(self, user_id: int) -> Optional[datetime]:
        return self.session.execute(
            sa.select(User.locked_until).where(User.id == user_id)
        ).scalar_one_or_none()

    def revoke_sessions(self, user_id: int, now: datetime) -> bool:
        """Refuse every token issued to the user up to now. False if no such user."""
        result = self.session.execute(
            sa.update(User)
            .where(User.id == user_id)
            .values(sessions_revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def find_role_ids_for_user(self, user_id: int) -> set[int]:
        rows = self.session.execute(
            sa.select(UserRole.role_id).where(UserRole.user_id == user_id)
        ).scalars()
        return set(rows)

    def find_role_names_for_user(self, user_id: int) -> list[str]:
        rows = self.session.execute(
            sa.select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        ).scalars()
        return list(rows)

    def find_permission_names_for_roles(self, role_ids: Iterable[int]) -> set[str]:
        role_ids = list(role_ids)
        if not role_ids:
            return set()

        rows = self.session.execute(
            sa.select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id.in_(role_ids))
        ).scalars()
        return set(rows)
