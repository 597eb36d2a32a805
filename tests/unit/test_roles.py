"""
Unit tests for the role model and tenant id normalization.
"""

from types import SimpleNamespace

import pytest

from tenantcms.access.ids import normalize_tenant_id
from tenantcms.access.roles import (
    Role,
    TenantScopedRole,
    TopLevelRole,
    has_guest_writer_role,
    is_super_admin,
    is_super_editor,
    is_top_level_user,
)
from tenantcms.access.tenant_data import build_user_tenant_data, classify_user
from tenantcms.config import settings
from tests.fakes import make_user, tenant_user


@pytest.mark.unit
class TestNormalizeTenantId:
    """Every tenant reference folds into one canonical id, or None."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, 3),
            ("3", 3),
            (" 7 ", 7),
            (2.0, 2),
            ("acme", "acme"),
            ({"id": "4", "name": "Acme"}, 4),
            (SimpleNamespace(id=9), 9),
        ],
    )
    def test_valid_references(self, value, expected):
        assert normalize_tenant_id(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, "", "   ", 2.5, float("nan"), [], [1], {}, {"name": "x"}])
    def test_malformed_references_are_none(self, value):
        assert normalize_tenant_id(value) is None


@pytest.mark.unit
class TestRoleChecks:
    """Role predicates accept any shape and grant nothing on garbage."""

    def test_top_level_roles(self):
        assert is_super_admin({"roles": "super-admin"})
        assert is_super_editor(SimpleNamespace(roles="super-editor"))
        assert is_top_level_user(make_user(roles="super-editor"))

    @pytest.mark.parametrize("user", [None, {}, {"roles": ["super-admin"]}, {"roles": "tenant-admin"}, "super-admin", 42])
    def test_not_top_level(self, user):
        assert not is_top_level_user(user)

    def test_guest_writer_role_found_in_any_entry(self):
        data = {"tenants": [{"tenant": 1, "roles": ["tenant-user"]}, {"tenant": 2, "roles": ["guest-writer"]}]}
        assert has_guest_writer_role(data)

    def test_guest_writer_role_on_validated_user(self):
        assert has_guest_writer_role(tenant_user(5, 1, Role.GUEST_WRITER.value))
        assert not has_guest_writer_role(tenant_user(5, 1, Role.TENANT_ADMIN.value))

    @pytest.mark.parametrize(
        "data",
        [
            None,
            "guest-writer",
            {"tenants": "guest-writer"},
            {"tenants": [None]},
            {"tenants": [{"roles": "guest-writer"}]},
            {"tenants": [{"roles": [1, 2]}]},
            {"roles": "guest-writer"},
        ],
    )
    def test_guest_writer_role_malformed_input(self, data):
        assert has_guest_writer_role(data) is False


@pytest.mark.unit
class TestAuthUserBoundary:
    """Malformed user records degrade to fewer privileges, never errors."""

    def test_unknown_scalar_role_becomes_none(self):
        assert make_user(roles="root").roles is None

    def test_malformed_tenant_entries_dropped(self):
        user = make_user(tenants=[{"tenant": None, "roles": ["tenant-admin"]}, {"tenant": "2", "roles": ["tenant-admin"]}])
        assert [entry.tenant for entry in user.tenants] == [2]

    def test_unknown_tenant_role_tags_dropped(self):
        user = tenant_user(1, 3, "tenant-admin", "owner")
        assert user.tenants[0].roles == ["tenant-admin"]

    def test_non_numeric_post_limit_uses_default(self):
        assert make_user(guest_writer_post_limit="lots").guest_writer_post_limit == settings.default_guest_writer_post_limit


@pytest.mark.unit
class TestTenantData:
    """Tenant-role summary and role classification."""

    def test_build_for_tenant_admin(self):
        data = build_user_tenant_data(tenant_user(1, 7, "tenant-admin"))

        assert data.all_tenant_ids == (7,)
        assert data.admin_tenant_ids == (7,)
        assert data.has_admin_role
        assert not data.has_guest_writer_role
        assert data.single_tenant_id == 7

    def test_viewer_is_alias_of_tenant_user(self):
        data = build_user_tenant_data(tenant_user(1, 7, "tenant-viewer"))
        assert data.has_viewer_role
        assert data.has_any_role

    def test_anonymous_has_nothing(self):
        data = build_user_tenant_data(None)
        assert data.all_tenant_ids == ()
        assert not data.has_any_role
        assert data.single_tenant_id is None

    def test_classify_top_level(self):
        assert classify_user(make_user(roles="super-admin")) == TopLevelRole(Role.SUPER_ADMIN)

    def test_classify_tenant_scoped(self):
        role = classify_user(tenant_user(1, 4, "guest-writer"))
        assert role == TenantScopedRole(tenant_id=4, roles=frozenset({"guest-writer"}))
        assert role.has(Role.GUEST_WRITER)

    def test_classify_unassigned_user(self):
        assert classify_user(make_user()) is None
        assert classify_user(None) is None
