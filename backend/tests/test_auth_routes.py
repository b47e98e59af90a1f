"""
Authentication API tests.

Verifies:
- POST /api/auth/login status codes and response shape
- Logout, refresh and /me over HTTP
- Password change for the signed-in user
- Login attempts are written to the security event log
- GET /health is public
"""

import pytest

from animaid.models import SecurityEvent
from conftest import PASSWORD, auth_headers, get_auth_token


class TestLoginRoute:
    def test_success(self, client, animatore_user):
        resp = client.post("/api/auth/login", json={"username": "mario", "password": PASSWORD})

        assert resp.status_code == 200
        body = resp.json
        assert body["token"]
        assert body["expires_at"].endswith("Z")
        assert body["user"]["username"] == "mario"
        assert "password_hash" not in body["user"]
        assert body["roles"] == ["animatore"]
        assert "calendar.view" in body["permissions"]

    @pytest.mark.parametrize("field", ["email", "identifier"])
    def test_alternate_identifier_fields(self, client, animatore_user, field):
        resp = client.post("/api/auth/login", json={field: "mario@animaid.test", "password": PASSWORD})
        assert resp.status_code == 200

    @pytest.mark.parametrize("payload", [
        {"username": "mario"},
        {"password": PASSWORD},
        {"username": "", "password": ""},
        [],
        None,
    ])
    def test_missing_fields(self, client, db_session, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400
        assert resp.json["error"] == "username/email and password required"

    def test_wrong_password(self, client, animatore_user):
        resp = client.post("/api/auth/login", json={"username": "mario", "password": "Wrong12345"})

        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials"

    def test_unknown_user_looks_like_wrong_password(self, client, animatore_user):
        unknown = client.post("/api/auth/login", json={"username": "ghost", "password": PASSWORD})
        wrong = client.post("/api/auth/login", json={"username": "mario", "password": "Wrong12345"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json == wrong.json

    def test_locked_account(self, client, animatore_user):
        for _ in range(5):
            client.post("/api/auth/login", json={"username": "mario", "password": "Wrong12345"})

        resp = client.post("/api/auth/login", json={"username": "mario", "password": PASSWORD})

        assert resp.status_code == 401
        assert resp.json["locked"] is True
        assert resp.json["retry_after_seconds"] > 0

    def test_attempts_are_audited(self, client, animatore_user, db_session):
        client.post("/api/auth/login", json={"username": "mario", "password": "Wrong12345"})
        client.post("/api/auth/login", json={"username": "mario", "password": PASSWORD})

        events = [e.event_type for e in db_session.query(SecurityEvent).order_by(SecurityEvent.id).all()]
        assert events == ["LOGIN_FAILED", "LOGIN_SUCCESS"]


class TestLogoutRoute:
    def test_logout_invalidates_token(self, client, animatore_headers):
        assert client.get("/api/auth/me", headers=animatore_headers).status_code == 200

        resp = client.post("/api/auth/logout", headers=animatore_headers)
        assert resp.status_code == 200
        assert resp.json["message"] == "Logout successful"

        resp = client.get("/api/auth/me", headers=animatore_headers)
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_logout_twice(self, client, animatore_headers):
        assert client.post("/api/auth/logout", headers=animatore_headers).status_code == 200
        assert client.post("/api/auth/logout", headers=animatore_headers).status_code == 200

    def test_logout_with_expired_token(self, client, animatore_headers, clock):
        clock.advance(hours=3)
        assert client.post("/api/auth/logout", headers=animatore_headers).status_code == 200

    def test_logout_requires_token(self, client, db_session):
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 401
        assert resp.json["error"] == "Authentication required"

    def test_logout_with_forged_token(self, client, db_session):
        resp = client.post("/api/auth/logout", headers=auth_headers("forged.token.value"))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


class TestRefreshAndMe:
    def test_me(self, client, animatore_headers):
        resp = client.get("/api/auth/me", headers=animatore_headers)

        assert resp.status_code == 200
        user = resp.json["user"]
        assert user["username"] == "mario"
        assert user["roles"] == ["animatore"]
        assert "attendance.checkin" in user["permissions"]

    def test_refresh(self, client, animatore_user):
        old = get_auth_token(client, "mario", PASSWORD)

        resp = client.post("/api/auth/refresh", headers=auth_headers(old))
        assert resp.status_code == 200
        new = resp.json["token"]

        assert client.get("/api/auth/me", headers=auth_headers(new)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(old)).status_code == 401

    def test_refresh_with_expired_token(self, client, animatore_headers, clock):
        clock.advance(hours=2, seconds=1)
        assert client.post("/api/auth/refresh", headers=animatore_headers).status_code == 401

    def test_expired_token_rejected(self, client, animatore_headers, clock):
        clock.advance(hours=2)
        assert client.get("/api/auth/me", headers=animatore_headers).status_code == 200

        clock.advance(seconds=1)
        assert client.get("/api/auth/me", headers=animatore_headers).status_code == 401


class TestChangePassword:
    def test_change_password(self, client, animatore_headers, db_session):
        resp = client.post(
            "/api/auth/password",
            json={"current_password": PASSWORD, "new_password": "NewPassword456"},
            headers=animatore_headers,
        )

        assert resp.status_code == 200
        assert get_auth_token(client, "mario", PASSWORD) is None
        assert get_auth_token(client, "mario", "NewPassword456")
        assert db_session.query(SecurityEvent).filter_by(event_type="PASSWORD_CHANGED").count() == 1

    def test_wrong_current_password(self, client, animatore_headers, db_session):
        resp = client.post(
            "/api/auth/password",
            json={"current_password": "Wrong12345", "new_password": "NewPassword456"},
            headers=animatore_headers,
        )

        assert resp.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type="PASSWORD_CHANGE_FAILED").count() == 1
        assert get_auth_token(client, "mario", PASSWORD)

    @pytest.mark.parametrize("payload", [
        {"current_password": PASSWORD, "new_password": "weak"},
        {"current_password": PASSWORD},
        {},
    ])
    def test_rejected_payloads(self, client, animatore_headers, payload):
        resp = client.post("/api/auth/password", json=payload, headers=animatore_headers)
        assert resp.status_code == 400


class TestHealth:
    def test_health_is_public(self, client, setup_roles):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["auth_service"]["details"]["admin_role_configured"] is True

    def test_health_degraded_without_seed_data(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
