"""
Unit tests for field-level access.
"""

import pytest

from tenantcms.access.fields import apply_field_read_access, apply_field_write_access
from tests.fakes import FakeStore, make_ctx, make_user, tenant_user


@pytest.fixture
def store():
    return FakeStore()


@pytest.mark.unit
class TestFieldWriteAccess:
    """Denied fields are dropped, the rest of the write survives."""

    async def test_guest_writer_cannot_set_authors(self, store):
        ctx = make_ctx(store, tenant_user(20, 1, "guest-writer"))
        data = {"title": "Hello", "authors": [7]}

        assert await apply_field_write_access(ctx, "posts", "create", data) == {"title": "Hello"}
        assert data == {"title": "Hello", "authors": [7]}

    async def test_tenant_admin_sets_authors(self, store):
        ctx = make_ctx(store, tenant_user(7, 1, "tenant-admin"))
        data = {"title": "Hello", "authors": [7, 8]}

        assert await apply_field_write_access(ctx, "posts", "update", data) == data

    async def test_roles_need_super_admin(self, store):
        store.add("users", id=1, roles="super-admin")
        ctx = make_ctx(store, make_user(2, roles="super-editor"))

        result = await apply_field_write_access(ctx, "users", "create", {"email": "x@example.com", "roles": "super-admin"})
        assert result == {"email": "x@example.com"}

    async def test_roles_writable_during_bootstrap(self, store):
        result = await apply_field_write_access(make_ctx(store), "users", "create", {"roles": "super-admin"})
        assert result == {"roles": "super-admin"}

    async def test_roles_not_writable_once_users_exist(self, store):
        store.add("users", id=1, roles="super-admin")
        result = await apply_field_write_access(make_ctx(store), "users", "create", {"roles": "super-admin"})
        assert result == {}

    async def test_post_limit_is_super_admin_only(self, store):
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))
        result = await apply_field_write_access(ctx, "users", "update", {"name": "B", "guest_writer_post_limit": 50})

        assert result == {"name": "B"}

    async def test_tenant_admin_cannot_change_entry_roles(self, store):
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))
        existing = {"id": 4, "tenants": [{"tenant": 1, "roles": ["guest-writer"]}]}
        data = {"tenants": [{"tenant": 1, "roles": ["tenant-admin"]}]}

        result = await apply_field_write_access(ctx, "users", "update", data, existing)
        assert result["tenants"] == [{"tenant": 1, "roles": ["guest-writer"]}]

    async def test_super_admin_changes_entry_roles(self, store):
        ctx = make_ctx(store, make_user(1, roles="super-admin"))
        existing = {"id": 4, "tenants": [{"tenant": 1, "roles": ["guest-writer"]}]}
        data = {"tenants": [{"tenant": 1, "roles": ["tenant-admin"]}]}

        result = await apply_field_write_access(ctx, "users", "update", data, existing)
        assert result["tenants"] == [{"tenant": 1, "roles": ["tenant-admin"]}]

    async def test_collections_without_rules_untouched(self, store):
        data = {"title": "About"}
        assert await apply_field_write_access(make_ctx(store), "pages", "create", data) == data


@pytest.mark.unit
class TestFieldReadAccess:

    async def test_post_limit_hidden_from_other_users(self, store):
        doc = {"id": 4, "email": "b@example.com", "guest_writer_post_limit": 3}
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))

        assert await apply_field_read_access(ctx, "users", doc) == {"id": 4, "email": "b@example.com"}

    async def test_post_limit_visible_to_owner_and_super_admin(self, store):
        doc = {"id": 4, "guest_writer_post_limit": 3}

        assert await apply_field_read_access(make_ctx(store, tenant_user(4, 1, "guest-writer")), "users", doc) == doc
        assert await apply_field_read_access(make_ctx(store, make_user(1, roles="super-admin")), "users", doc) == doc
