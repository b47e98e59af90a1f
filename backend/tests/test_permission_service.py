"""
Permission resolution tests.

Verifies:
- Effective permissions are the union over all of a user's roles
- Unknown users and users without roles get nothing (fail closed)
- Role and permission administration is idempotent and validated
"""

import pytest

from animaid.errors import NotFound, ValidationError
from animaid.models import Permission, Role, RolePermission
from animaid.permissions import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS
from animaid.services import permission_service
from animaid.services.credential_store import SqlCredentialStore
from animaid.services.permission_service import PermissionResolver


class FakeStore:
    """In-memory stand-in for the role/permission lookups."""

    def __init__(self, user_roles, role_permissions):
        self.user_roles = user_roles
        self.role_permissions = role_permissions

    def find_role_ids_for_user(self, user_id):
        return set(self.user_roles.get(user_id, ()))

    def find_permission_names_for_roles(self, role_ids):
        names = set()
        for role_id in role_ids:
            names |= set(self.role_permissions.get(role_id, ()))
        return names


@pytest.fixture
def resolver():
    store = FakeStore(
        user_roles={1: [10, 20], 2: [20], 3: []},
        role_permissions={
            10: ["calendar.view", "calendar.edit"],
            20: ["calendar.view", "wiki.view"],
        },
    )
    return PermissionResolver(store)


class TestPermissionResolver:
    def test_union_across_roles(self, resolver):
        assert resolver.effective_permissions(1) == {"calendar.view", "calendar.edit", "wiki.view"}

    def test_single_role(self, resolver):
        assert resolver.effective_permissions(2) == {"calendar.view", "wiki.view"}

    @pytest.mark.parametrize("user_id", [3, 999])
    def test_no_roles_or_unknown_user(self, resolver, user_id):
        assert resolver.effective_permissions(user_id) == set()
        assert not resolver.has_permission(user_id, "calendar.view")

    def test_has_any(self, resolver):
        assert resolver.has_any(2, ["calendar.edit", "wiki.view"])
        assert not resolver.has_any(2, ["calendar.edit", "admin.users"])
        assert not resolver.has_any(2, [])

    def test_has_all(self, resolver):
        assert resolver.has_all(1, ["calendar.edit", "wiki.view"])
        assert not resolver.has_all(2, ["calendar.edit", "wiki.view"])

    def test_missing_preserves_order(self, resolver):
        assert resolver.missing(2, ["admin.users", "wiki.view", "calendar.edit", "admin.users"]) == [
            "admin.users",
            "calendar.edit",
        ]


class TestSqlResolution:
    def test_default_role_permissions(self, animatore_user):
        resolver = PermissionResolver(SqlCredentialStore())
        assert resolver.effective_permissions(animatore_user.id) == set(DEFAULT_ROLE_PERMISSIONS["animatore"])

    def test_multiple_roles_union(self, make_user):
        user = make_user("giulia", roles=["aiutoanimatore", "responsabile"])
        resolver = PermissionResolver(SqlCredentialStore())

        expected = set(DEFAULT_ROLE_PERMISSIONS["aiutoanimatore"]) | set(DEFAULT_ROLE_PERMISSIONS["responsabile"])
        assert resolver.effective_permissions(user.id) == expected

    def test_admin_has_everything(self, admin_user):
        resolver = PermissionResolver(SqlCredentialStore())
        assert resolver.effective_permissions(admin_user.id) == {p[0] for p in PERMISSION_DEFINITIONS}

    def test_grant_takes_effect_immediately(self, animatore_user):
        resolver = PermissionResolver(SqlCredentialStore())
        assert not resolver.has_permission(animatore_user.id, "reports.view")

        permission_service.grant_permission_to_role("animatore", "reports.view")

        assert resolver.has_permission(animatore_user.id, "reports.view")


class TestPermissionAdministration:
    def test_initialize_is_idempotent(self, setup_roles, db_session):
        count = db_session.query(Permission).count()
        assert count == len(PERMISSION_DEFINITIONS)

        assert permission_service.initialize_permissions() == 0
        assert permission_service.assign_default_role_permissions() == 0
        assert db_session.query(Permission).count() == count

    def test_grant_twice_keeps_one_row(self, setup_roles, db_session):
        first = permission_service.grant_permission_to_role("aiutoanimatore", "reports.view")
        second = permission_service.grant_permission_to_role("aiutoanimatore", "reports.view")

        assert first.id == second.id

    def test_revoke(self, setup_roles, db_session):
        assert permission_service.revoke_permission_from_role("animatore", "wiki.edit") is True
        assert permission_service.revoke_permission_from_role("animatore", "wiki.edit") is False

        role = db_session.query(Role).filter_by(name="animatore").one()
        assert "wiki.edit" not in permission_service.get_role_permission_names(role.id)

    @pytest.mark.parametrize("role_name,permission_name", [
        ("ghost", "wiki.view"),
        ("animatore", "wiki.destroy"),
    ])
    def test_grant_unknown_raises_not_found(self, setup_roles, role_name, permission_name):
        with pytest.raises(NotFound):
            permission_service.grant_permission_to_role(role_name, permission_name)

    def test_set_role_permissions_replaces(self, setup_roles, db_session):
        role = db_session.query(Role).filter_by(name="aiutoanimatore").one()

        permission_service.set_role_permissions(role, ["wiki.view", "media.view"])

        assert permission_service.get_role_permission_names(role.id) == ["media.view", "wiki.view"]

    def test_set_role_permissions_rejects_unknown(self, setup_roles, db_session):
        role = db_session.query(Role).filter_by(name="aiutoanimatore").one()
        before = db_session.query(RolePermission).filter_by(role_id=role.id).count()

        with pytest.raises(ValidationError):
            permission_service.set_role_permissions(role, ["wiki.view", "wiki.destroy"])

        assert db_session.query(RolePermission).filter_by(role_id=role.id).count() == before

    def test_grouped_by_category(self, setup_roles):
        grouped = permission_service.get_permissions_grouped()

        assert set(grouped) == {p[3] for p in PERMISSION_DEFINITIONS}
        assert {p["name"] for p in grouped["admin"]} == {"admin.users", "admin.roles", "admin.system", "admin.backup"}
