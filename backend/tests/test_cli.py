"""
CLI command tests.

Verifies:
- `system init` bootstraps roles, permissions and the default admin idempotently
- `users` and `perms` commands report and change state, including session revocation
- `maintenance` commands remove only expired revocations and old security events
"""

from datetime import timedelta

from animaid.models import Permission, RevokedToken, Role, SecurityEvent, User
from animaid.permissions import DEFAULT_ROLES, PERMISSION_DEFINITIONS
from animaid.services.revocation_service import RevocationLedger
from animaid.time_utils import utcnow


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


class TestSystemInit:
    def test_init_bootstraps_everything(self, app, db_session):
        result = _invoke(app, "system", "init")

        assert result.exit_code == 0, result.output
        assert "PASS Created user: admin" in result.output
        assert db_session.query(Role).count() == len(DEFAULT_ROLES)
        assert db_session.query(Permission).count() == len(PERMISSION_DEFINITIONS)
        assert db_session.query(User).filter_by(username="admin").count() == 1

    def test_init_is_idempotent(self, app, db_session):
        _invoke(app, "system", "init")
        result = _invoke(app, "system", "init")

        assert result.exit_code == 0, result.output
        assert "already exists" in result.output
        assert db_session.query(User).count() == 1

    def test_default_admin_can_log_in(self, app, client, db_session):
        _invoke(app, "system", "init")

        resp = client.post("/api/auth/login", json={
            "username": app.config["DEFAULT_ADMIN_USERNAME"],
            "password": app.config["DEFAULT_ADMIN_PASSWORD"],
        })

        assert resp.status_code == 200
        assert "admin.system" in resp.json["permissions"]


class TestUserAndPermissionCommands:
    def test_create_user(self, app, setup_roles, db_session):
        result = _invoke(
            app, "users", "create",
            "--username", "lucia",
            "--email", "lucia@animaid.test",
            "--password", "Password123",
            "--role", "animatore",
        )

        assert result.exit_code == 0, result.output
        assert "PASS Created user: lucia" in result.output
        assert db_session.query(User).filter_by(username="lucia").count() == 1

    def test_create_user_weak_password(self, app, setup_roles, db_session):
        result = _invoke(
            app, "users", "create",
            "--username", "lucia",
            "--email", "lucia@animaid.test",
            "--password", "weak",
            "--role", "animatore",
        )

        assert "FAIL Password validation failed" in result.output
        assert db_session.query(User).filter_by(username="lucia").count() == 0

    def test_list_users(self, app, animatore_user):
        result = _invoke(app, "users", "list")

        assert result.exit_code == 0, result.output
        assert "mario" in result.output
        assert "animatore" in result.output

    def test_check_grant_revoke(self, app, animatore_user):
        result = _invoke(app, "perms", "check", "mario", "reports.view")
        assert "DOES NOT HAVE" in result.output

        result = _invoke(app, "perms", "grant", "animatore", "reports.view")
        assert "PASS Granted" in result.output

        result = _invoke(app, "perms", "check", "mario", "reports.view")
        assert "HAS permission" in result.output

        result = _invoke(app, "perms", "revoke", "animatore", "reports.view")
        assert "PASS Revoked" in result.output

    def test_grant_unknown_role(self, app, setup_roles):
        result = _invoke(app, "perms", "grant", "wizard", "reports.view")
        assert "FAIL" in result.output

    def test_list_permissions_for_role(self, app, setup_roles):
        result = _invoke(app, "perms", "list", "--role", "aiutoanimatore")

        assert result.exit_code == 0, result.output
        assert "wiki.view" in result.output
        assert "wiki.edit" not in result.output


class TestMaintenance:
    def test_prune_revoked_tokens(self, app, db_session, clock):
        ledger = RevocationLedger(clock=clock)
        ledger.revoke("short", clock.now + timedelta(minutes=5))
        ledger.revoke("long", clock.now + timedelta(hours=5))
        clock.advance(hours=1)

        result = _invoke(app, "maintenance", "prune-revoked-tokens")

        assert result.exit_code == 0, result.output
        assert "Deleted 1 expired revocation entries." in result.output
        assert [row.jti for row in db_session.query(RevokedToken).all()] == ["long"]

    def test_cleanup_security_events(self, app, db_session):
        now = utcnow()
        db_session.add(SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=now - timedelta(days=120)))
        db_session.add(SecurityEvent(event_type="LOGIN_SUCCESS", success=True, occurred_at=now - timedelta(days=1)))
        db_session.commit()

        result = _invoke(app, "maintenance", "cleanup-security-events", "--retention-days", "90")

        assert result.exit_code == 0, result.output
        assert "Deleted 1 security events older than 90 days." in result.output
        assert [e.event_type for e in db_session.query(SecurityEvent).all()] == ["LOGIN_SUCCESS"]


class TestRevokeSessions:
    def test_revoke_sessions(self, app, client, animatore_headers):
        result = _invoke(app, "users", "revoke-sessions", "mario")

        assert result.exit_code == 0, result.output
        assert "PASS Revoked all sessions for mario" in result.output
        assert client.get("/api/auth/me", headers=animatore_headers).status_code == 401

    def test_unknown_user(self, app, db_session):
        result = _invoke(app, "users", "revoke-sessions", "nobody")
        assert "FAIL User not found" in result.output
