"""
User lifecycle hooks.

Provides:
- First-user bootstrap (the very first account becomes super-admin)
- Tenant assignment: tenant-scoped users get exactly one tenant entry
- Last super-admin protection on delete
- Repair of the first-user race (two concurrent sign-ups)
"""

from typing import Any

import structlog

from tenantcms.access.context import RequestContext
from tenantcms.access.ids import normalize_tenant_id
from tenantcms.access.resolver import resolve_tenant
from tenantcms.access.roles import Role, TOP_LEVEL_ROLES, is_super_admin, is_top_level_user
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.access.where import And, Condition, Operator
from tenantcms.collections import Collection
from tenantcms.core.exceptions import LastSuperAdminError, ValidationError

logger = structlog.get_logger(__name__)

USERS = Collection.USERS.value

live_super_admins = And((
    Condition("roles", Operator.EQUALS, Role.SUPER_ADMIN.value),
    Condition("deleted_at", Operator.EXISTS, False),
))


async def _is_bootstrap(ctx: RequestContext) -> bool:
    return ctx.user is None and await ctx.store.count(USERS) == 0


async def ensure_first_user_super_admin(
    ctx: RequestContext,
    data: dict[str, Any],
    operation: str,
) -> dict[str, Any]:
    """The first user created without a session becomes super-admin."""
    if operation != "create" or ctx.user is not None:
        return data

    if await ctx.store.count(USERS) == 0:
        logger.info("bootstrap_super_admin", email=data.get("email"))
        return {**data, "roles": Role.SUPER_ADMIN.value, "tenants": []}
    return data


async def assign_users_to_one_tenant(
    ctx: RequestContext,
    data: dict[str, Any],
    operation: str,
) -> dict[str, Any]:
    """
    Pin a user written by a non-super-admin to the acting tenant.

    The acting tenant is the resolved one, else the requester's only
    assignment. Roles come from the submitted entry, default tenant-user.
    A super-editor without a selected tenant keeps the submitted entry;
    a tenant-scoped requester without one keeps none, so
    ``validate_tenants_field`` rejects the write.
    """
    if ctx.user is None or is_super_admin(ctx.user):
        return data
    if operation != "create" and "tenants" not in data:
        return data
    # Top-level accounts carry no tenant entry
    if data.get("roles") in TOP_LEVEL_ROLES:
        return data

    current_tenant = resolve_tenant(ctx)
    if current_tenant is None:
        tenant_data = await get_user_tenant_data(ctx)
        current_tenant = tenant_data.single_tenant_id
    if current_tenant is None:
        if is_top_level_user(ctx.user):
            return data
        return {**data, "tenants": []}

    submitted = data.get("tenants") or []
    roles = [Role.TENANT_USER.value]
    if submitted and isinstance(submitted[0], dict) and submitted[0].get("roles"):
        roles = list(submitted[0]["roles"])

    return {**data, "tenants": [{"tenant": current_tenant, "roles": roles}]}


async def validate_tenants_field(
    ctx: RequestContext,
    data: dict[str, Any],
    existing: dict[str, Any] | None = None,
) -> None:
    """
    Tenant-scoped users need exactly one tenant entry.

    Raises:
        ValidationError: missing tenant, or more than one
    """
    if await _is_bootstrap(ctx) or is_super_admin(ctx.user):
        return

    existing = existing or {}
    roles = data["roles"] if "roles" in data else existing.get("roles")
    if roles:
        return

    tenants = data["tenants"] if "tenants" in data else existing.get("tenants")
    entries = [
        entry for entry in (tenants or [])
        if isinstance(entry, dict) and normalize_tenant_id(entry.get("tenant")) is not None
    ]
    if not entries:
        raise ValidationError("Tenant is required for non super-admin users.")
    if len(entries) > 1:
        raise ValidationError("Only one tenant allowed")


async def prevent_last_super_admin_delete(ctx: RequestContext, target: dict[str, Any]) -> None:
    """
    Refuse to delete the last live super-admin.

    Raises:
        LastSuperAdminError: the target is the only live super-admin
    """
    if not is_super_admin(target) or target.get("deleted_at") is not None:
        return

    remaining = await ctx.store.count(USERS, live_super_admins)
    if remaining <= 1:
        logger.warning("last_super_admin_delete_blocked", user_id=target.get("id"))
        raise LastSuperAdminError(target.get("id"))


async def verify_only_super_admin(
    ctx: RequestContext,
    doc: dict[str, Any],
    operation: str,
) -> dict[str, Any]:
    """
    Undo a duplicate bootstrap super-admin.

    Two anonymous sign-ups racing on an empty database can both be promoted.
    After creation, a bootstrap super-admin that is not the earliest one is
    downgraded to no role.
    """
    if operation != "create" or ctx.user is not None or not is_super_admin(doc):
        return doc

    result = await ctx.store.find(
        USERS,
        Condition("roles", Operator.EQUALS, Role.SUPER_ADMIN.value),
        limit=2,
        sort="created_at",
    )
    if result.total_docs <= 1 or not result.docs:
        return doc

    first = result.docs[0]
    if first.get("id") == doc.get("id"):
        return doc

    logger.warning(
        "duplicate_bootstrap_super_admin",
        user_id=doc.get("id"),
        first_super_admin_id=first.get("id"),
    )
    updated = await ctx.store.update(USERS, doc["id"], {"roles": None})
    return updated if updated is not None else {**doc, "roles": None}
