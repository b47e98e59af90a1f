# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user and role management.

Provides endpoints for:
- User management (list, get, create, update, deactivate, assign/remove roles,
  revoke sessions)
- Role management (list, create, update, delete, grant/revoke permissions)
- Permission catalogue (grouped by category)

All endpoints require authentication and an admin.* permission.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import AuthError, ValidationError, error_response, internal_error_response
from ..extensions import db
from ..models import Role, User
from ..schemas import (
    AssignRolesRequest,
    CreateRoleRequest,
    CreateUserRequest,
    RolePermissionRequest,
    UpdateRoleRequest,
    UpdateUserRequest,
)
from ..services import auth_service, permission_service
from ..services.auth_service import get_auth_service

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _audit(event_type: str, action: str, reason: str | None = None):
    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type=event_type,
        success=True,
        resource=request.path,
        action=action,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def _role_dict(role: Role) -> dict:
    role_dict = role.to_dict()
    role_dict["permissions"] = permission_service.get_role_permission_names(role.id)
    return role_dict


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission("admin.users")
def list_users():
    """
    List users with their roles.

    Query params:
    - include_inactive: bool (default false) - include deactivated users
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)

    service = get_auth_service()
    users = [service.describe_user(user) for user in query.order_by(User.username).all()]

    return jsonify({"users": users, "count": len(users)})


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_permission("admin.users")
def get_user(user_id: int):
    """Get a specific user by ID, with roles and effective permissions."""
    user = db.session.get(User, user_id)

    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"user": get_auth_service().describe_user(user)})


@admin_bp.post("/users")
@require_auth
@require_permission("admin.users")
def create_user():
    """
    Create a new user.

    Request body:
    - username: str (required)
    - email: str (required)
    - password: str (required, must satisfy the password policy)
    - full_name: str (optional)
    - roles: list[str] (optional)
    """
    try:
        payload = CreateUserRequest.from_json(request.get_json(silent=True))
        policy = get_auth_service().settings.password_policy

        user = auth_service.create_user(
            payload.username,
            payload.email,
            payload.password,
            policy=policy,
            full_name=payload.full_name,
        )

        if payload.roles:
            try:
                auth_service.set_user_roles(user.id, payload.roles, assigned_by=g.current_user.id)
            except AuthError as e:
                # User created but role assignment failed
                return jsonify({
                    "user": get_auth_service().describe_user(user),
                    "warning": f"User created but role assignment failed: {e.public_message}",
                }), 201

        _audit("USER_CREATED", f"Created user: {user.username}")

        return jsonify({
            "user": get_auth_service().describe_user(user),
            "message": "User created successfully",
        }), 201

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return internal_error_response()


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission("admin.users")
def update_user(user_id: int):
    """
    Update user details.

    Request body (all optional):
    - email: str
    - full_name: str
    - is_active: bool (false deactivates; existing tokens stop working)
    - password: str
    """
    try:
        payload = UpdateUserRequest.from_json(request.get_json(silent=True))

        # Prevent self-deactivation
        if payload.is_active is False and user_id == g.current_user.id:
            raise ValidationError("Cannot deactivate your own account")

        user = auth_service.update_user(
            user_id,
            email=payload.email,
            full_name=payload.full_name,
            is_active=payload.is_active,
            password=payload.password,
            policy=get_auth_service().settings.password_policy,
        )

        changed = sorted(
            field for field in ("email", "full_name", "is_active", "password")
            if getattr(payload, field) is not None
        )
        _audit("USER_UPDATED", f"Updated user: {user.username}", reason=f"Fields: {', '.join(changed)}")

        return jsonify({
            "user": get_auth_service().describe_user(user),
            "message": "User updated successfully",
        })

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return internal_error_response()


@admin_bp.put("/users/<int:user_id>/roles")
@require_auth
@require_permission("admin.users")
def set_user_roles(user_id: int):
    """
    Replace the user's roles.

    Request body:
    - roles: list[str] (required; empty list removes every role)

    Takes effect on the user's next request; no new token needed.
    """
    try:
        payload = AssignRolesRequest.from_json(request.get_json(silent=True))
        roles = auth_service.set_user_roles(user_id, payload.roles, assigned_by=g.current_user.id)

        _audit("ROLE_ASSIGNED", f"Set roles for user {user_id}", reason=", ".join(roles) or "none")

        return jsonify({"user_id": user_id, "roles": roles, "message": "Roles updated"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign roles")
        return internal_error_response()


@admin_bp.delete("/users/<int:user_id>/roles/<role_name>")
@require_auth
@require_permission("admin.users")
def remove_user_role(user_id: int, role_name: str):
    """Remove a single role from the user."""
    try:
        if not db.session.get(User, user_id):
            return jsonify({"error": "User not found"}), 404

        if not auth_service.remove_role(user_id, role_name):
            return jsonify({"error": f"User {user_id} does not have role {role_name}"}), 404

        _audit("ROLE_REMOVED", f"Removed role {role_name} from user {user_id}")

        return jsonify({"message": f"Role {role_name} removed from user {user_id}"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove role")
        return internal_error_response()


@admin_bp.post("/users/<int:user_id>/revoke-sessions")
@require_auth
@require_permission("admin.users")
def revoke_user_sessions(user_id: int):
    """
    Sign the user out everywhere.

    Every token issued to the user up to now stops working. The user can
    log in again from the next second.
    """
    try:
        get_auth_service().revoke_all_sessions(user_id)

        _audit("SESSIONS_REVOKED", f"Revoked all sessions for user {user_id}")

        return jsonify({"message": "All sessions revoked"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to revoke sessions")
        return internal_error_response()


# =============================================================================
# ROLE MANAGEMENT
# =============================================================================

@admin_bp.get("/roles")
@require_auth
@require_permission("admin.roles")
def list_roles():
    """List all roles with their permissions."""
    roles = db.session.query(Role).order_by(Role.name).all()
    return jsonify({"roles": [_role_dict(role) for role in roles]})


@admin_bp.post("/roles")
@require_auth
@require_permission("admin.roles")
def create_role():
    """
    Create a custom role.

    Request body:
    - name: str (required)
    - display_name: str (optional, defaults to name)
    - description: str (optional)
    - permissions: list[str] (optional)
    """
    try:
        payload = CreateRoleRequest.from_json(request.get_json(silent=True))
        role = auth_service.create_role(
            payload.name,
            payload.display_name,
            description=payload.description,
            permission_names=payload.permissions,
            granted_by=g.current_user.id,
        )

        return jsonify({"role": _role_dict(role), "message": "Role created successfully"}), 201

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create role")
        return internal_error_response()


@admin_bp.patch("/roles/<role_name>")
@require_auth
@require_permission("admin.roles")
def update_role(role_name: str):
    """
    Update a custom role. System roles cannot be changed.

    Request body (all optional, at least one):
    - name: str
    - display_name: str
    - description: str
    - permissions: list[str] (replaces the role's permissions)
    """
    try:
        payload = UpdateRoleRequest.from_json(request.get_json(silent=True))
        role = auth_service.update_role(
            role_name,
            name=payload.name,
            display_name=payload.display_name,
            description=payload.description,
            permission_names=payload.permissions,
            granted_by=g.current_user.id,
        )

        _audit("ROLE_UPDATED", f"Updated role: {role.name}")

        return jsonify({"role": _role_dict(role), "message": "Role updated successfully"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update role")
        return internal_error_response()


@admin_bp.delete("/roles/<role_name>")
@require_auth
@require_permission("admin.roles")
def delete_role(role_name: str):
    """Delete a custom role. Users holding it lose its permissions at once."""
    try:
        auth_service.delete_role(role_name)

        _audit("ROLE_DELETED", f"Deleted role: {role_name}")

        return jsonify({"message": f"Role {role_name} deleted"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete role")
        return internal_error_response()


@admin_bp.post("/roles/<role_name>/permissions")
@require_auth
@require_permission("admin.roles")
def grant_role_permission(role_name: str):
    """
    Grant a permission to a role.

    Request body:
    - permission: str (required)
    """
    try:
        payload = RolePermissionRequest.from_json(request.get_json(silent=True))
        permission_service.grant_permission_to_role(role_name, payload.permission, granted_by=g.current_user.id)

        return jsonify({"message": f"Permission {payload.permission} granted to {role_name}"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to grant permission")
        return internal_error_response()


@admin_bp.delete("/roles/<role_name>/permissions/<permission_name>")
@require_auth
@require_permission("admin.roles")
def revoke_role_permission(role_name: str, permission_name: str):
    """Revoke a permission from a role."""
    try:
        revoked = permission_service.revoke_permission_from_role(role_name, permission_name)

        if not revoked:
            return jsonify({"error": f"Role {role_name} does not have {permission_name}"}), 404

        return jsonify({"message": f"Permission {permission_name} revoked from {role_name}"})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to revoke permission")
        return internal_error_response()


# =============================================================================
# PERMISSIONS
# =============================================================================

@admin_bp.get("/permissions")
@require_auth
@require_permission("admin.roles")
def list_permissions():
    """List all permissions grouped by category."""
    return jsonify({"permissions": permission_service.get_permissions_grouped()})
