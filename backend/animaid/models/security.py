from __future__ import annotations

from ..extensions import db
from animaid.time_utils import to_utc_z


class RevokedToken(db.Model):
    """
    Tokens revoked before their natural expiry (logout, refresh).

    Keyed by the token's jti claim; the full token is never stored.
    expires_at mirrors the token's exp so rows can be pruned once the
    token would have expired anyway.
    """
    __tablename__ = "revoked_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), nullable=False, unique=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    revoked_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    reason = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jti": self.jti,
            "user_id": self.user_id,
            "revoked_at": to_utc_z(self.revoked_at),
            "expires_at": to_utc_z(self.expires_at),
            "reason": self.reason,
        }


class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track logins, lockouts, permission denials and account changes.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for anonymous

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # LOGIN_FAILED, PERMISSION_DENIED, etc.
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/admin/users"
    action = db.Column(db.String(255), nullable=True)    # e.g., identifier or permission name

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
