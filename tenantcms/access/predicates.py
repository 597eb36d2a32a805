"""
Access predicates shared by every collection.

Each predicate is ``async (ctx) -> bool | Where``:
- True   allow without restriction
- False  deny
- Where  allow only for documents matching the filter

Predicates never raise for an ordinary denial. Top-level users are always
checked first; guest writers are handled explicitly before the generic
tenant rules because their restriction overrides tenant configuration.
"""

from typing import Awaitable, Callable

from tenantcms.access.capabilities import (
    get_tenant_allow_public_read,
    get_tenant_allowed_collections,
    is_collection_allowed,
)
from tenantcms.access.context import RequestContext
from tenantcms.access.ids import TenantId
from tenantcms.access.resolver import resolve_tenant
from tenantcms.access.roles import is_super_admin, is_super_editor, is_top_level_user
from tenantcms.access.tenant_data import UserTenantData, get_user_tenant_data
from tenantcms.access.where import (
    AccessResult,
    And,
    Condition,
    Operator,
    where_no_access,
    where_tenant_scoped,
)
from tenantcms.collections import Collection, DocStatus

AccessFn = Callable[[RequestContext], Awaitable[AccessResult]]


# Base predicates

async def anyone(ctx: RequestContext) -> AccessResult:
    return True


async def authenticated(ctx: RequestContext) -> AccessResult:
    return ctx.user is not None


async def authenticated_or_published(ctx: RequestContext) -> AccessResult:
    if ctx.user is not None:
        return True
    return Condition("status", Operator.EQUALS, DocStatus.PUBLISHED.value)


async def is_super_admin_access(ctx: RequestContext) -> AccessResult:
    return is_super_admin(ctx.user)


async def has_admin_panel_access(ctx: RequestContext) -> AccessResult:
    """Top-level users and anyone holding a tenant role may enter the admin panel."""
    if is_top_level_user(ctx.user):
        return True
    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_any_role


async def is_super_admin_or_editor(ctx: RequestContext) -> AccessResult:
    """Top-level users or tenant admins."""
    if is_super_admin(ctx.user) or is_super_editor(ctx.user):
        return True
    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_admin_role


async def is_super_admin_or_tenant_member(ctx: RequestContext) -> AccessResult:
    if is_super_admin(ctx.user):
        return True
    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_any_role


# Tenant collection gate

def _fallback_tenant(ctx: RequestContext, tenant_data: UserTenantData) -> TenantId | None:
    """Resolved tenant, else the single assignment of a tenant-scoped user."""
    tenant_id = resolve_tenant(ctx)
    if tenant_id is None and not is_top_level_user(ctx.user):
        tenant_id = tenant_data.single_tenant_id
    return tenant_id


async def is_tenant_collection_allowed(ctx: RequestContext, collection: str) -> bool:
    """
    Whether the acting tenant may use a managed collection at all.

    - guest writers: posts only, whatever the tenant allows
    - top-level users: only once a tenant is selected
    - tenant users: resolved tenant, else their single assignment
    - no tenant: denied
    """
    tenant_data = await get_user_tenant_data(ctx)

    if not is_top_level_user(ctx.user) and tenant_data.has_guest_writer_role:
        return collection == Collection.POSTS.value

    tenant_id = _fallback_tenant(ctx, tenant_data)
    if tenant_id is None:
        return False

    allowed = await get_tenant_allowed_collections(ctx, tenant_id)
    return is_collection_allowed(allowed, collection)


def with_tenant_collection_access(collection: str, access: AccessFn) -> AccessFn:
    """
    Wrap an access function with the tenant collection gate.

    A closed gate yields an always-empty filter rather than False so list
    views show "no results" instead of failing.
    """

    async def gated(ctx: RequestContext) -> AccessResult:
        if not await is_tenant_collection_allowed(ctx, collection):
            return where_no_access
        return await access(ctx)

    gated.__name__ = f"gated_{getattr(access, '__name__', 'access')}"
    return gated


def tenant_collection_admin_access(collection: str) -> AccessFn:
    """Whether a collection shows up in the admin panel for the requester."""

    async def admin_access(ctx: RequestContext) -> AccessResult:
        if ctx.user is None:
            return False

        if is_top_level_user(ctx.user):
            tenant_id = resolve_tenant(ctx)
            if tenant_id is None:
                # Top-level mode: every collection is visible
                return True
            return is_collection_allowed(await get_tenant_allowed_collections(ctx, tenant_id), collection)

        tenant_data = await get_user_tenant_data(ctx)
        if tenant_data.has_guest_writer_role:
            return collection == Collection.POSTS.value

        tenant_id = _fallback_tenant(ctx, tenant_data)
        if tenant_id is None:
            return False
        return is_collection_allowed(await get_tenant_allowed_collections(ctx, tenant_id), collection)

    return admin_access


# Tenant-scoped content

async def tenant_member_read_access(ctx: RequestContext) -> AccessResult:
    """
    Read access for tenant members.

    Top-level users read everything, trash included. Tenant admins, members
    and guest writers read their tenants' live documents.
    """
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role or tenant_data.has_viewer_role or tenant_data.has_guest_writer_role:
        return where_tenant_scoped(tenant_data.all_tenant_ids)
    return False


async def tenant_admin_update_access(ctx: RequestContext) -> AccessResult:
    """
    Update (and delete) access for tenant admins.

    Top-level users may update anything, including restoring trash. Tenant
    admins are limited to their tenants' live documents.
    """
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return where_tenant_scoped(tenant_data.all_tenant_ids)
    return False


async def tenant_admin_create_access(ctx: RequestContext) -> AccessResult:
    """Top-level users need a selected tenant; tenant admins may always create."""
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return resolve_tenant(ctx) is not None

    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_admin_role


def tenant_public_read_access(collection: str, published_only: bool = False) -> AccessFn:
    """
    Read access that also serves anonymous requests.

    Authenticated requests get ``tenant_member_read_access``. Anonymous
    requests see the resolved tenant's live documents, and only when the
    tenant lists the collection as publicly readable.
    """

    async def public_read(ctx: RequestContext) -> AccessResult:
        if ctx.user is not None:
            return await tenant_member_read_access(ctx)

        tenant_id = resolve_tenant(ctx)
        if tenant_id is None:
            return False

        public_collections = await get_tenant_allow_public_read(ctx, tenant_id)
        if collection not in public_collections:
            return False

        clauses = [
            Condition("tenant", Operator.EQUALS, tenant_id),
            Condition("deleted_at", Operator.EXISTS, False),
        ]
        if published_only:
            clauses.append(Condition("status", Operator.EQUALS, DocStatus.PUBLISHED.value))
        return And(tuple(clauses))

    return public_read
