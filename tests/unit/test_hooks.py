"""
Unit tests for collection hooks.
"""

from datetime import datetime, timezone

import pytest

from tenantcms.core.exceptions import LastSuperAdminError, ValidationError
from tenantcms.features.posts.hooks import (
    assign_guest_writer_author,
    auto_publish_date,
    prevent_guest_writer_publish,
)
from tenantcms.features.tenants.hooks import clean_allow_public_read
from tenantcms.features.users.hooks import (
    assign_users_to_one_tenant,
    ensure_first_user_super_admin,
    prevent_last_super_admin_delete,
    validate_tenants_field,
    verify_only_super_admin,
)
from tests.fakes import FakeStore, make_ctx, make_user, tenant_user


@pytest.fixture
def store():
    return FakeStore()


@pytest.mark.unit
class TestFirstUserBootstrap:

    async def test_first_anonymous_user_becomes_super_admin(self, store):
        data = {"email": "first@example.com", "roles": None, "tenants": [{"tenant": 1, "roles": ["tenant-user"]}]}
        result = await ensure_first_user_super_admin(make_ctx(store), data, "create")

        assert result["roles"] == "super-admin"
        assert result["tenants"] == []

    async def test_later_users_unchanged(self, store):
        store.add("users", roles="super-admin")
        data = {"email": "second@example.com"}

        assert await ensure_first_user_super_admin(make_ctx(store), data, "create") == data

    async def test_authenticated_create_unchanged(self, store):
        data = {"email": "x@example.com"}
        ctx = make_ctx(store, make_user(roles="super-admin"))

        assert await ensure_first_user_super_admin(ctx, data, "create") == data

    async def test_duplicate_bootstrap_downgraded(self, store):
        first = store.add("users", email="a@example.com", roles="super-admin")
        second = store.add("users", email="b@example.com", roles="super-admin")

        result = await verify_only_super_admin(make_ctx(store), second, "create")

        assert result["roles"] is None
        assert store.docs["users"][second["id"]]["roles"] is None
        assert store.docs["users"][first["id"]]["roles"] == "super-admin"

    async def test_earliest_bootstrap_kept(self, store):
        first = store.add("users", email="a@example.com", roles="super-admin")
        store.add("users", email="b@example.com", roles="super-admin")

        result = await verify_only_super_admin(make_ctx(store), first, "create")
        assert result["roles"] == "super-admin"

    async def test_single_bootstrap_untouched(self, store):
        doc = store.add("users", email="a@example.com", roles="super-admin")

        assert await verify_only_super_admin(make_ctx(store), doc, "create") == doc
        assert store.calls[("update", "users")] == 0


@pytest.mark.unit
class TestTenantAssignment:
    """Users created by tenant admins land in exactly one tenant."""

    async def test_assigned_to_resolved_tenant(self, store):
        admin = make_user(3, tenants=[
            {"tenant": 1, "roles": ["tenant-admin"]},
            {"tenant": 2, "roles": ["tenant-admin"]},
        ])
        ctx = make_ctx(store, admin, cookies={"payload-tenant": "2"})
        data = {"email": "n@example.com", "tenants": [{"tenant": 1, "roles": ["guest-writer"]}]}

        result = await assign_users_to_one_tenant(ctx, data, "create")
        assert result["tenants"] == [{"tenant": 2, "roles": ["guest-writer"]}]

    async def test_falls_back_to_single_assignment(self, store):
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))
        result = await assign_users_to_one_tenant(ctx, {"email": "n@example.com"}, "create")

        assert result["tenants"] == [{"tenant": 1, "roles": ["tenant-user"]}]

    async def test_tenant_user_without_tenant_context_rejected(self, store):
        store.add("users", roles="super-admin")
        admin = make_user(3, tenants=[
            {"tenant": 1, "roles": ["tenant-admin"]},
            {"tenant": 2, "roles": ["tenant-admin"]},
        ])
        ctx = make_ctx(store, admin)
        data = {"email": "n@example.com", "tenants": [{"tenant": 9, "roles": ["tenant-admin"]}]}

        result = await assign_users_to_one_tenant(ctx, data, "create")

        assert result["tenants"] == []
        with pytest.raises(ValidationError, match="Tenant is required"):
            await validate_tenants_field(ctx, result)

    async def test_super_editor_in_top_level_mode_keeps_submitted_tenant(self, store):
        store.add("users", roles="super-admin")
        ctx = make_ctx(store, make_user(2, roles="super-editor"))
        data = {"email": "n@example.com", "tenants": [{"tenant": 1, "roles": ["tenant-admin"]}]}

        result = await assign_users_to_one_tenant(ctx, data, "create")

        assert result == data
        await validate_tenants_field(ctx, result)

    async def test_super_editor_with_selected_tenant_pins_it(self, store):
        ctx = make_ctx(store, make_user(2, roles="super-editor"), cookies={"payload-tenant": "2"})
        data = {"email": "n@example.com", "tenants": [{"tenant": 1, "roles": ["tenant-admin"]}]}

        result = await assign_users_to_one_tenant(ctx, data, "create")
        assert result["tenants"] == [{"tenant": 2, "roles": ["tenant-admin"]}]

    async def test_super_admin_assignments_untouched(self, store):
        data = {"email": "n@example.com", "tenants": [{"tenant": 4, "roles": ["tenant-admin"]}]}
        ctx = make_ctx(store, make_user(1, roles="super-admin"), cookies={"payload-tenant": "2"})

        assert await assign_users_to_one_tenant(ctx, data, "create") == data

    async def test_update_without_tenants_untouched(self, store):
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))
        assert await assign_users_to_one_tenant(ctx, {"name": "N"}, "update") == {"name": "N"}

    async def test_validate_requires_exactly_one_tenant(self, store):
        store.add("users", roles="super-admin")
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))

        with pytest.raises(ValidationError, match="Tenant is required"):
            await validate_tenants_field(ctx, {"email": "n@example.com", "tenants": []})

        with pytest.raises(ValidationError, match="Only one tenant allowed"):
            await validate_tenants_field(ctx, {"tenants": [{"tenant": 1}, {"tenant": 2}]})

        await validate_tenants_field(ctx, {"tenants": [{"tenant": 1, "roles": []}]})

    async def test_validate_uses_existing_document(self, store):
        store.add("users", roles="super-admin")
        ctx = make_ctx(store, tenant_user(3, 1, "tenant-admin"))
        existing = {"id": 4, "roles": None, "tenants": [{"tenant": 1, "roles": ["tenant-user"]}]}

        await validate_tenants_field(ctx, {"name": "N"}, existing)

    async def test_validate_skips_top_level_accounts_and_bootstrap(self, store):
        await validate_tenants_field(make_ctx(store), {"email": "first@example.com"})

        store.add("users", roles="super-admin")
        ctx = make_ctx(store, make_user(2, roles="super-editor"))
        await validate_tenants_field(ctx, {"roles": "super-editor", "tenants": []})


@pytest.mark.unit
class TestLastSuperAdmin:

    async def test_last_super_admin_cannot_be_deleted(self, store):
        target = store.add("users", roles="super-admin")
        store.add("users", roles="super-admin", deleted_at="2024-05-01")

        with pytest.raises(LastSuperAdminError):
            await prevent_last_super_admin_delete(make_ctx(store), target)

    async def test_one_of_several_may_be_deleted(self, store):
        target = store.add("users", roles="super-admin")
        store.add("users", roles="super-admin")

        await prevent_last_super_admin_delete(make_ctx(store), target)

    async def test_other_users_skip_the_check(self, store):
        target = store.add("users", roles="super-editor")

        await prevent_last_super_admin_delete(make_ctx(store), target)
        assert store.calls[("count", "users")] == 0


@pytest.mark.unit
class TestPostHooks:

    def test_guest_writer_becomes_sole_author(self, store):
        ctx = make_ctx(store, tenant_user(20, 1, "guest-writer"))
        assert assign_guest_writer_author(ctx, {"authors": [7]})["authors"] == [20]

    def test_guest_writer_always_drafts(self, store):
        ctx = make_ctx(store, tenant_user(20, 1, "guest-writer"))
        result = prevent_guest_writer_publish(ctx, {"status": "published", "published_at": "2024-06-01"})

        assert result["status"] == "draft"
        assert result["published_at"] is None

    def test_other_users_untouched(self, store):
        ctx = make_ctx(store, tenant_user(7, 1, "tenant-admin"))
        data = {"status": "published", "authors": [7, 8]}

        assert assign_guest_writer_author(ctx, data) == data
        assert prevent_guest_writer_publish(ctx, data) == data

    def test_publish_date_stamped(self):
        result = auto_publish_date({"status": "published"})
        assert isinstance(result["published_at"], datetime)

    def test_publish_date_kept(self):
        date = datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert auto_publish_date({"status": "published", "published_at": date})["published_at"] == date
        assert auto_publish_date({"title": "T"}, {"status": "published", "published_at": date}) == {"title": "T"}

    def test_drafts_not_stamped(self):
        assert auto_publish_date({"status": "draft"}) == {"status": "draft"}


@pytest.mark.unit
class TestCleanAllowPublicRead:
    """Public read never exceeds the enabled collections."""

    def test_superset_trimmed(self):
        data = {"allowed_collections": ["posts", "pages"], "allow_public_read": ["posts", "media", "pages"]}
        assert clean_allow_public_read(data)["allow_public_read"] == ["posts", "pages"]

    def test_disabling_collection_withdraws_public_read(self):
        existing = {"id": 1, "allowed_collections": ["posts", "pages"], "allow_public_read": ["pages"]}
        result = clean_allow_public_read({"allowed_collections": ["posts"]}, existing)

        assert result == {"allowed_collections": ["posts"], "allow_public_read": []}

    def test_unrestricted_tenant_untouched(self):
        data = {"allowed_collections": None, "allow_public_read": ["posts", "media"]}
        assert clean_allow_public_read(data) == data

    def test_subset_untouched(self):
        data = {"allow_public_read": ["posts"]}
        assert clean_allow_public_read(data, {"allowed_collections": ["posts"]}) == data
