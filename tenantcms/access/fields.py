"""
Field-level access.

Some fields are writable by fewer people than the document holding them:
the top-level role of a user, a guest writer's post limit, the authors of a
post. Writes to such fields by a requester without the right are dropped
from the payload without an error, the rest of the write goes through.

Usage:
    data = await apply_field_write_access(ctx, "users", "update", data, existing)
    doc = await apply_field_read_access(ctx, "users", doc)
"""

import copy
from typing import Any, Awaitable, Callable

import structlog

from tenantcms.access.context import RequestContext
from tenantcms.access.ids import normalize_tenant_id
from tenantcms.access.roles import (
    Role,
    has_guest_writer_role,
    is_super_admin,
    is_super_editor,
)
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.collections import Collection

logger = structlog.get_logger(__name__)

FieldAccessFn = Callable[[RequestContext, dict[str, Any] | None], Awaitable[bool]]


async def not_guest_writer_field_access(ctx: RequestContext, doc: dict[str, Any] | None = None) -> bool:
    """Anyone logged in except guest writers."""
    if ctx.user is None:
        return False
    return not has_guest_writer_role(ctx.user)


async def is_super_admin_field_access(ctx: RequestContext, doc: dict[str, Any] | None = None) -> bool:
    return is_super_admin(ctx.user)


async def is_super_admin_or_bootstrap_field_access(
    ctx: RequestContext,
    doc: dict[str, Any] | None = None,
) -> bool:
    """Super-admins, or anyone while the very first user is being created."""
    if is_super_admin(ctx.user):
        return True
    if ctx.user is None:
        return await ctx.store.count(Collection.USERS.value) == 0
    return False


async def is_super_admin_or_editor_field_access(
    ctx: RequestContext,
    doc: dict[str, Any] | None = None,
) -> bool:
    """Top-level users and tenant admins."""
    if is_super_admin(ctx.user) or is_super_editor(ctx.user):
        return True
    tenant_data = await get_user_tenant_data(ctx)
    return tenant_data.has_admin_role


async def guest_writer_post_limit_read_access(
    ctx: RequestContext,
    doc: dict[str, Any] | None = None,
) -> bool:
    """Super-admins read every limit, users read their own."""
    if is_super_admin(ctx.user):
        return True
    if ctx.user is None or doc is None:
        return False
    return normalize_tenant_id(doc.get("id")) == normalize_tenant_id(ctx.user.id)


# collection -> field -> operation -> rule
FIELD_ACCESS: dict[str, dict[str, dict[str, FieldAccessFn]]] = {
    Collection.POSTS.value: {
        "authors": {
            "create": not_guest_writer_field_access,
            "update": not_guest_writer_field_access,
        },
    },
    Collection.USERS.value: {
        "roles": {
            "create": is_super_admin_or_bootstrap_field_access,
            "update": is_super_admin_field_access,
        },
        "guest_writer_post_limit": {
            "create": is_super_admin_field_access,
            "update": is_super_admin_field_access,
            "read": guest_writer_post_limit_read_access,
        },
        "tenants": {
            "create": is_super_admin_or_editor_field_access,
            "update": is_super_admin_or_editor_field_access,
        },
    },
}


def _keep_existing_entry_roles(
    entries: list[dict[str, Any]],
    existing: dict[str, Any] | None,
) -> list[dict[str, Any]]:
    """Replace submitted tenant-entry roles with the stored ones."""
    stored: dict[Any, list[str]] = {}
    for entry in (existing or {}).get("tenants") or []:
        tenant_id = normalize_tenant_id(entry.get("tenant"))
        if tenant_id is not None:
            stored[tenant_id] = list(entry.get("roles") or [])

    result = []
    for entry in entries:
        entry = dict(entry)
        tenant_id = normalize_tenant_id(entry.get("tenant"))
        entry["roles"] = stored.get(tenant_id, [Role.TENANT_USER.value])
        result.append(entry)
    return result


async def apply_field_write_access(
    ctx: RequestContext,
    collection: str,
    operation: str,
    data: dict[str, Any],
    existing: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Drop the fields the requester may not write.

    Args:
        ctx: Request context
        collection: Collection slug
        operation: "create" or "update"
        data: Incoming payload (not modified)
        existing: Stored document for updates

    Returns:
        Payload without the denied fields
    """
    rules = FIELD_ACCESS.get(collection, {})
    result = copy.deepcopy(data)

    for field_name, operations in rules.items():
        rule = operations.get(operation)
        if rule is None or field_name not in result:
            continue
        if not await rule(ctx, existing):
            logger.info(
                "field_write_dropped",
                collection=collection,
                field=field_name,
                operation=operation,
                user_id=ctx.user.id if ctx.user else None,
            )
            result.pop(field_name)

    # Roles inside a tenant entry are updatable by super-admins only
    if (
        collection == Collection.USERS.value
        and operation == "update"
        and isinstance(result.get("tenants"), list)
        and not is_super_admin(ctx.user)
    ):
        result["tenants"] = _keep_existing_entry_roles(result["tenants"], existing)

    return result


async def apply_field_read_access(
    ctx: RequestContext,
    collection: str,
    doc: dict[str, Any],
) -> dict[str, Any]:
    """Hide the fields the requester may not read."""
    rules = FIELD_ACCESS.get(collection, {})
    hidden = [
        field_name for field_name, operations in rules.items()
        if "read" in operations and field_name in doc
        and not await operations["read"](ctx, doc)
    ]
    if not hidden:
        return doc
    return {key: value for key, value in doc.items() if key not in hidden}
