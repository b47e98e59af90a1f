# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Login by username or email with bcrypt verification
- Account lockout after repeated failed attempts
- Signed bearer tokens with server-side revocation on logout
- Failure reasons logged server-side only; clients see a generic message
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import bearer_token, require_auth
from ..errors import AccountLocked, AuthError, InvalidCredentials, error_response, internal_error_response
from ..schemas import ChangePasswordRequest, LoginRequest
from ..services import auth_service, permission_service
from ..services.auth_service import get_auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client_context() -> dict:
    return {
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a bearer token.

    Request body:
    - username | email | identifier: str (required)
    - password: str (required)

    Returns token, expiry, user, roles and effective permissions.
    Token must be included in Authorization header for protected routes.

    SECURITY:
    - Locked accounts are refused before the password is checked
    - Every attempt is recorded in security_events
    """
    try:
        payload = LoginRequest.from_json(request.get_json(silent=True))
        result = get_auth_service().login(payload.identifier, payload.password)

    except AccountLocked as e:
        current_app.logger.warning("Login refused: %s", e.detail)
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_LOCKED",
            success=False,
            resource="/api/auth/login",
            reason=e.detail,
            **_client_context(),
        )
        return error_response(e)

    except InvalidCredentials as e:
        current_app.logger.info("Login failed: %s", e.detail)
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource="/api/auth/login",
            reason=e.detail,
            **_client_context(),
        )
        return error_response(e)

    except AuthError as e:
        return error_response(e)

    except Exception:
        current_app.logger.exception("Failed to login user")
        return internal_error_response()

    permission_service.log_security_event(
        user_id=result.user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        resource="/api/auth/login",
        **_client_context(),
    )

    body = result.to_dict()
    body["message"] = "Login successful"
    return jsonify(body), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the bearer token (logout).

    Expects Authorization header: Bearer <token>

    An already-expired token is accepted, and logging out twice is
    harmless. Only a token that fails signature checks is refused.
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authentication required"}), 401

    try:
        claims = get_auth_service().logout(token)

    except AuthError as e:
        current_app.logger.info("Logout refused: %s", e.detail)
        return error_response(e)

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return internal_error_response()

    permission_service.log_security_event(
        user_id=claims.user_id,
        event_type="LOGOUT",
        success=True,
        resource="/api/auth/logout",
        **_client_context(),
    )
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.post("/refresh")
def refresh_route():
    """
    Exchange a valid token for a new one.

    The old token is revoked; the new one carries the user's current roles.
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authentication required"}), 401

    try:
        result = get_auth_service().refresh_token(token)

    except AuthError as e:
        current_app.logger.info("Token refresh refused: %s", e.detail)
        return error_response(e)

    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return internal_error_response()

    body = result.to_dict()
    body["message"] = "Token refreshed"
    return jsonify(body), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """
    Current user with live roles and permissions.

    WHY: Frontend uses the permission list to hide navigation it cannot use.
    """
    try:
        user = get_auth_service().describe_user(g.current_user)
    except Exception:
        current_app.logger.exception("Failed to load current user")
        return internal_error_response()

    return jsonify({"user": user}), 200


@auth_bp.post("/password")
@require_auth
def change_password_route():
    """
    Change the current user's password.

    Request body:
    - current_password: str (required)
    - new_password: str (required, must satisfy the password policy)

    Existing tokens stay valid; use the admin revoke-sessions endpoint to
    sign out other devices.
    """
    try:
        payload = ChangePasswordRequest.from_json(request.get_json(silent=True))
        auth_service.change_password(
            g.current_user.id,
            payload.current_password,
            payload.new_password,
            policy=get_auth_service().settings.password_policy,
        )

    except InvalidCredentials as e:
        current_app.logger.info("Password change refused: %s", e.detail)
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="PASSWORD_CHANGE_FAILED",
            success=False,
            resource="/api/auth/password",
            reason=e.detail,
            **_client_context(),
        )
        return error_response(e)

    except AuthError as e:
        return error_response(e)

    except Exception:
        current_app.logger.exception("Failed to change password")
        return internal_error_response()

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="PASSWORD_CHANGED",
        success=True,
        resource="/api/auth/password",
        **_client_context(),
    )
    return jsonify({"message": "Password changed"}), 200
