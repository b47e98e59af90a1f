# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: tables, roles, permissions, default admin.
# - python -m flask system init-permissions
#   Initialize permissions and assign defaults to roles.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username mario --email mario@example.org --password "Password123" --role animatore
# - python -m flask users revoke-sessions mario
#   Sign the user out of every device.
#
# Permissions:
# - python -m flask perms list [--role animatore] [--category calendar]
# - python -m flask perms check admin admin.users
# - python -m flask perms grant animatore reports.view
# - python -m flask perms revoke animatore reports.view
#
# Maintenance:
# - python -m flask maintenance prune-revoked-tokens
#   Delete revocation entries whose tokens have expired anyway.
# - python -m flask maintenance cleanup-security-events --retention-days 90

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import AuthError
from .extensions import db
from .models import Permission, Role, User
from .permissions import ADMIN_ROLE, DEFAULT_ROLES
from .services.auth_service import (
    PasswordValidationError,
    assign_role,
    create_default_roles,
    create_user,
    get_auth_service,
)
from .services import maintenance_service
from .services import permission_service


ROLE_NAMES = [name for name, _, _ in DEFAULT_ROLES]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize AnimaID: tables, default roles, permissions and the admin user.

    The admin credentials come from DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_EMAIL
    and DEFAULT_ADMIN_PASSWORD.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing AnimaID...")

    db.create_all()

    click.echo("\nLIST Creating roles...")
    create_default_roles()
    roles = db.session.query(Role).order_by(Role.name).all()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")

    click.echo("\nSECURITY Initializing permissions...")
    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    click.echo("\nUSERS Creating default admin...")
    username = current_app.config["DEFAULT_ADMIN_USERNAME"]
    email = current_app.config["DEFAULT_ADMIN_EMAIL"]
    password = current_app.config["DEFAULT_ADMIN_PASSWORD"]

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"WARN  User '{username}' already exists, skipping...")
    else:
        try:
            user = create_user(
                username=username,
                email=email,
                password=password,
                policy=get_auth_service().settings.password_policy,
                full_name="Technical Administrator",
            )
            assign_role(user.id, ADMIN_ROLE)
            click.echo(f"PASS Created user: {username} ({email}) with role '{ADMIN_ROLE}'")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed for '{username}': {e.detail}")
        except AuthError as e:
            click.echo(f"FAIL Failed to create user '{username}': {e.detail}")

    click.echo("\n" + "="*60)
    click.echo("DONE AnimaID Initialized")
    click.echo("="*60)
    click.echo("\nSECURITY WARNING: change the default admin password in production!\n")


@system_group.command('init-permissions')
@with_appcontext
def init_permissions():
    """Initialize permissions and assign defaults to roles."""
    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Full name')
@click.option('--role', type=click.Choice(ROLE_NAMES), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, full_name, role):
    """
    Create a new user.

    Password must satisfy the configured policy (by default 8+ chars,
    with uppercase, lowercase and a digit).
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            policy=get_auth_service().settings.password_policy,
            full_name=full_name,
        )
        assign_role(user.id, role)

        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.detail}")
    except AuthError as e:
        click.echo(f"FAIL Error: {e.detail}")


@users_group.command('list')
@click.option('--include-inactive', is_flag=True, help='Include deactivated users')
@with_appcontext
def list_users(include_inactive):
    """List users with their roles."""
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    service = get_auth_service()

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Active':<8} {'Roles'}")
    click.echo("="*100)

    for user in users:
        roles = service.describe_user(user)["roles"]
        roles_str = ", ".join(roles) if roles else "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {active_str:<8} {roles_str}")

    click.echo("="*100 + "\n")


@users_group.command('revoke-sessions')
@click.argument('username')
@with_appcontext
def revoke_sessions_cli(username):
    """Invalidate every token issued to USERNAME so far."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User not found: {username}")
        return

    get_auth_service().revoke_all_sessions(user.id)
    click.echo(f"PASS Revoked all sessions for {username}")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--role', help='Show permissions granted to this role')
@click.option('--category', help='Show permissions in this category')
@with_appcontext
def list_permissions(role, category):
    """List permissions, optionally filtered by role or category."""
    if role:
        role_obj = db.session.query(Role).filter_by(name=role).first()
        if not role_obj:
            click.echo(f"FAIL Role '{role}' not found")
            return

        names = permission_service.get_role_permission_names(role_obj.id)
        click.echo(f"\nPermissions for role: {role}")
        click.echo("-"*60)
        for name in names:
            click.echo(f"  {name}")
        click.echo(f"\n Total: {len(names)} permissions\n")
        return

    query = db.session.query(Permission)
    if category:
        query = query.filter_by(category=category)
    perms = query.order_by(Permission.category, Permission.name).all()

    current_category = None
    for perm in perms:
        if perm.category != current_category:
            click.echo(f"\nCATEGORY {perm.category}")
            click.echo("-"*60)
            current_category = perm.category
        click.echo(f"  {perm.name:<28} {perm.display_name}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_name')
@with_appcontext
def grant_permission_cli(role_name, permission_name):
    """Grant a permission to a role."""
    try:
        permission_service.grant_permission_to_role(role_name, permission_name)
        click.echo(f"PASS Granted '{permission_name}' to role '{role_name}'")
    except AuthError as e:
        click.echo(f"FAIL Error: {e.detail}")


@perms_group.command('revoke')
@click.argument('role_name')
@click.argument('permission_name')
@with_appcontext
def revoke_permission_cli(role_name, permission_name):
    """Revoke a permission from a role."""
    try:
        revoked = permission_service.revoke_permission_from_role(role_name, permission_name)
        if revoked:
            click.echo(f"PASS Revoked '{permission_name}' from role '{role_name}'")
        else:
            click.echo(f"WARN  Permission '{permission_name}' was not granted to '{role_name}'")
    except AuthError as e:
        click.echo(f"FAIL Error: {e.detail}")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_name')
@with_appcontext
def check_permission_cli(username, permission_name):
    """Check if a user has a specific permission."""
    user = db.session.query(User).filter_by(username=username).first()

    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    service = get_auth_service()

    if service.check_permission(user.id, permission_name):
        click.echo(f"PASS User '{username}' HAS permission '{permission_name}'")
    else:
        click.echo(f"FAIL User '{username}' DOES NOT HAVE permission '{permission_name}'")

    description = service.describe_user(user)
    click.echo(f"\nUser roles: {', '.join(description['roles']) or 'none'}")
    click.echo(f"Total permissions: {len(description['permissions'])}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('prune-revoked-tokens')
@with_appcontext
def prune_revoked_tokens_cli():
    """Delete revocation entries for tokens that have expired anyway."""
    deleted = current_app.extensions["animaid.revocations"].prune_expired()
    click.echo(f"Deleted {deleted} expired revocation entries.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
