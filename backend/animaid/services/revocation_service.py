# Overview: Durable ledger of tokens revoked before their natural expiry.

"""
Token Revocation Ledger

WHY: Bearer tokens are stateless, so logout needs a server-side record that
a specific token (by jti) must no longer be accepted.

SECURITY FEATURES:
- Keyed by jti; the token itself is never stored
- Entries expire with the token they revoke and are pruned on every write
- Unique jti column: concurrent revokes of the same token converge on one row
- Persisted in the database, so revocations survive restarts
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import RevokedToken
from ..time_utils import Clock, from_epoch, to_epoch, utcnow

logger = logging.getLogger(__name__)


class RevocationLedger:
    def __init__(self, clock: Clock = utcnow, session=None):
        self._clock = clock
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _now(self) -> datetime:
        # Token timestamps are whole epoch seconds; compare at the same resolution
        return from_epoch(to_epoch(self._clock()))

    def revoke(
        self,
        jti: str,
        expires_at: datetime,
        user_id: int | None = None,
        reason: str = "User logout",
    ) -> bool:
        """
        Record jti as revoked until expires_at.

        Idempotent: an already-revoked or already-expired jti is a no-op.
        Returns True when a new ledger entry was written.
        """
        now = self._now()
        pruned = self.prune_expired(commit=False)

        if expires_at < now or self.session.query(RevokedToken.id).filter_by(jti=jti).first():
            if pruned:
                self.session.commit()
            return False

        self.session.add(RevokedToken(
            jti=jti,
            user_id=user_id,
            revoked_at=self._clock(),
            expires_at=expires_at,
            reason=reason,
        ))

        try:
            self.session.commit()
        except IntegrityError:
            # Another request revoked the same token first
            self.session.rollback()
            logger.debug("Token %s already revoked concurrently", jti)
            return False

        return True

    def is_revoked(self, jti: str) -> bool:
        return self.session.query(RevokedToken.id).filter(
            RevokedToken.jti == jti,
            RevokedToken.expires_at >= self._now(),
        ).first() is not None

    def prune_expired(self, commit: bool = True) -> int:
        """
        Delete entries whose underlying token has expired anyway.

        An entry is kept through the last whole second its token verifies in.
        Returns count of entries deleted.
        """
        deleted = self.session.query(RevokedToken).filter(
            RevokedToken.expires_at < self._now()
        ).delete(synchronize_session=False)

        if commit:
            self.session.commit()
        return deleted
