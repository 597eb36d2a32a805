"""
Access rules for posts.

Posts are the one collection guest writers may touch: they create drafts
under a quota and may only see and edit what they authored.
"""

from tenantcms.access.capabilities import get_tenant_allow_public_read
from tenantcms.access.context import RequestContext
from tenantcms.access.predicates import AccessFn
from tenantcms.access.quota import can_guest_writer_create
from tenantcms.access.resolver import resolve_tenant
from tenantcms.access.roles import is_top_level_user
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.access.where import (
    AccessResult,
    And,
    Condition,
    Operator,
    Where,
    where_tenant_scoped,
)
from tenantcms.collections import Collection, DocStatus


def _own_posts(user_id: int | str, tenant_ids: tuple) -> Where:
    return And((
        Condition("authors", Operator.CONTAINS, user_id),
        Condition("tenant", Operator.IN, tenant_ids),
        Condition("deleted_at", Operator.EXISTS, False),
    ))


async def posts_create_access(ctx: RequestContext) -> AccessResult:
    """
    Top-level users need a selected tenant, tenant admins may always create,
    guest writers need one of their own tenants selected and quota left.
    """
    if ctx.user is None:
        return False

    tenant_id = resolve_tenant(ctx)
    if is_top_level_user(ctx.user):
        return tenant_id is not None

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return True
    if not tenant_data.has_guest_writer_role:
        return False

    if tenant_id is None or tenant_id not in tenant_data.all_tenant_ids:
        return False
    return await can_guest_writer_create(ctx, ctx.user)


def posts_read_access(published_only: bool = False) -> AccessFn:
    """
    Read access for posts.

    Anonymous requests read the tenant's public posts. Guest writers see only
    their own posts, drafts included.
    """

    async def read_access(ctx: RequestContext) -> AccessResult:
        if ctx.user is None:
            tenant_id = resolve_tenant(ctx)
            if tenant_id is None:
                return False
            if Collection.POSTS.value not in await get_tenant_allow_public_read(ctx, tenant_id):
                return False

            clauses = [
                Condition("tenant", Operator.EQUALS, tenant_id),
                Condition("deleted_at", Operator.EXISTS, False),
            ]
            if published_only:
                clauses.append(Condition("status", Operator.EQUALS, DocStatus.PUBLISHED.value))
            return And(tuple(clauses))

        if is_top_level_user(ctx.user):
            return True

        tenant_data = await get_user_tenant_data(ctx)
        if tenant_data.has_admin_role or tenant_data.has_viewer_role:
            return where_tenant_scoped(tenant_data.all_tenant_ids)
        if tenant_data.has_guest_writer_role:
            return _own_posts(ctx.user.id, tenant_data.all_tenant_ids)
        return False

    return read_access


async def posts_update_access(ctx: RequestContext) -> AccessResult:
    """Tenant admins edit their tenants' live posts; guest writers only their own."""
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return where_tenant_scoped(tenant_data.all_tenant_ids)
    if tenant_data.has_guest_writer_role:
        return _own_posts(ctx.user.id, tenant_data.all_tenant_ids)
    return False


async def posts_delete_access(ctx: RequestContext) -> AccessResult:
    """Guest writers cannot delete, not even their own drafts."""
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return where_tenant_scoped(tenant_data.all_tenant_ids)
    return False
