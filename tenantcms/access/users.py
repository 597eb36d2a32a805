"""
Access rules for users.

Top-level users manage every account. Tenant admins manage the accounts of
their own tenants. Only super-admins delete users, and never themselves.
"""

from tenantcms.access.context import RequestContext
from tenantcms.access.resolver import get_effective_tenant
from tenantcms.access.roles import Role, is_super_admin, is_top_level_user
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.access.where import AccessResult, And, Condition, Operator, Or
from tenantcms.collections import Collection


async def users_read_access(ctx: RequestContext) -> AccessResult:
    """
    Top-level users see the selected tenant's users, or only top-level users
    in top-level mode. Trash stays visible to them. Tenant admins see the
    live users of their tenants.
    """
    if ctx.user is None:
        return False

    if is_top_level_user(ctx.user):
        tenant_id = get_effective_tenant(ctx)
        if tenant_id is not None:
            return Condition("tenants.tenant", Operator.EQUALS, tenant_id)
        return Or((
            Condition("roles", Operator.EQUALS, Role.SUPER_ADMIN.value),
            Condition("roles", Operator.EQUALS, Role.SUPER_EDITOR.value),
        ))

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return And((
            Condition("tenants.tenant", Operator.IN, tenant_data.all_tenant_ids),
            Condition("deleted_at", Operator.EXISTS, False),
        ))
    return False


async def users_update_access(ctx: RequestContext) -> AccessResult:
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if tenant_data.has_admin_role:
        return And((
            Condition("tenants.tenant", Operator.IN, tenant_data.all_tenant_ids),
            Condition("deleted_at", Operator.EXISTS, False),
        ))
    return False


async def users_create_access(ctx: RequestContext) -> AccessResult:
    """
    Tenant admins create users only inside a tenant they administer: the
    selected one, or their only admin tenant when none is selected.
    """
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if not tenant_data.has_admin_role or not tenant_data.admin_tenant_ids:
        return False

    tenant_id = get_effective_tenant(ctx)
    if tenant_id is not None:
        return tenant_id in tenant_data.admin_tenant_ids
    return len(tenant_data.admin_tenant_ids) == 1


async def users_bootstrap_create_access(ctx: RequestContext) -> AccessResult:
    """Anonymous sign-up is allowed only while no user exists."""
    if ctx.user is not None:
        return await users_create_access(ctx)
    return await ctx.store.count(Collection.USERS.value) == 0


async def users_delete_access(ctx: RequestContext) -> AccessResult:
    """Super-admins may delete any user except themselves."""
    if ctx.user is None or not is_super_admin(ctx.user):
        return False
    return Condition("id", Operator.NOT_EQUALS, ctx.user.id)
