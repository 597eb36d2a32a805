"""
Access rules for the tenants collection itself.

Tenant members read their own live tenant record. Creating, configuring and
trashing tenants is reserved to top-level users.
"""

from tenantcms.access.context import RequestContext
from tenantcms.access.roles import is_top_level_user
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.access.where import AccessResult, And, Condition, Operator


async def tenants_read_access(ctx: RequestContext) -> AccessResult:
    if ctx.user is None:
        return False
    if is_top_level_user(ctx.user):
        return True

    tenant_data = await get_user_tenant_data(ctx)
    if not tenant_data.all_tenant_ids:
        return False
    return And((
        Condition("id", Operator.IN, tenant_data.all_tenant_ids),
        Condition("deleted_at", Operator.EXISTS, False),
    ))


async def tenants_update_access(ctx: RequestContext) -> AccessResult:
    """Tenant configuration, including the collection toggles, is top-level only."""
    return is_top_level_user(ctx.user)


async def tenants_admin_access(ctx: RequestContext) -> AccessResult:
    """The tenants screen is shown to top-level users and tenant admins."""
    if is_top_level_user(ctx.user):
        return True
    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_admin_role
