# Overview: Request authentication and permission decorators for API routes.

from __future__ import annotations

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import InsufficientPermissions, InvalidToken, error_response
from .services import permission_service
from .services.auth_service import PERMISSION_MODES, get_auth_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'token_claims')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token: The raw bearer token
    - g.token_claims: The verified TokenClaims

    SECURITY: Returns 401 if:
    - No Authorization header, or not a Bearer credential
    - Token malformed, forged, expired or revoked
    - User deleted or deactivated since issuance
    The specific reason is logged, never returned.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            authenticated = get_auth_service().verify_token(token)
        except InvalidToken as e:
            current_app.logger.info("Rejected bearer token on %s: %s", request.path, e.detail)
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = authenticated.user
        g.token = authenticated.token
        g.token_claims = authenticated.claims

        return f(*args, **kwargs)

    return decorated_function


def require_permissions(*permission_names, mode: str = "any"):
    """
    Require permissions of the authenticated user.

    mode="any": at least one of the names; mode="all": every one.
    Must be stacked below @require_auth. Denials are recorded as
    PERMISSION_DENIED security events.
    """
    if not permission_names:
        raise ValueError("require_permissions needs at least one permission name")
    if mode not in PERMISSION_MODES:
        raise ValueError(f"mode must be one of {PERMISSION_MODES}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user

            try:
                get_auth_service().require_permissions(user.id, permission_names, mode=mode)
            except InsufficientPermissions as e:
                permission_service.log_security_event(
                    user_id=user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"{mode.upper()}_OF:{','.join(permission_names)}",
                    reason=e.detail,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_permission(permission_name: str):
    """Require a single permission."""
    return require_permissions(permission_name, mode="all")


def require_any_permission(*permission_names):
    return require_permissions(*permission_names, mode="any")


def require_all_permissions(*permission_names):
    return require_permissions(*permission_names, mode="all")
