"""
Tenant capability lookups.

Reads a tenant's ``allowed_collections`` and ``allow_public_read`` settings.
These are inputs to access control, so they go straight to the raw store and
are memoized on the request context.

Allowed-collection states:
    TENANT_NOT_FOUND  tenant missing, in the trash, or lookup failed -> deny
    None              not configured -> allow every managed collection
    ()                configured empty -> deny every collection
    ("posts", ...)    explicit allow-list
"""

from enum import Enum
from typing import Any, Union

import structlog

from tenantcms.access.context import CachePurpose, RequestContext
from tenantcms.access.ids import TenantId
from tenantcms.collections import Collection, TENANT_MANAGED_COLLECTIONS

logger = structlog.get_logger(__name__)


class _NotFound(Enum):
    TENANT_NOT_FOUND = "tenant_not_found"

    def __bool__(self) -> bool:
        return False


TENANT_NOT_FOUND = _NotFound.TENANT_NOT_FOUND

AllowedCollections = Union[_NotFound, None, tuple[str, ...]]


def _clean_collection_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(
        item for item in value
        if isinstance(item, str) and item in TENANT_MANAGED_COLLECTIONS
    )


async def _fetch_live_tenant(ctx: RequestContext, tenant_id: TenantId) -> dict[str, Any] | None:
    tenant = await ctx.store.find_by_id(Collection.TENANTS.value, tenant_id)
    if tenant is None or tenant.get("deleted_at") is not None:
        return None
    return tenant


async def get_tenant_allowed_collections(
    ctx: RequestContext,
    tenant_id: TenantId,
) -> AllowedCollections:
    """Allowed-collection setting of a tenant. See module docstring for states."""

    async def compute() -> AllowedCollections:
        try:
            tenant = await _fetch_live_tenant(ctx, tenant_id)
        except Exception as e:
            logger.error("tenant_lookup_failed", tenant_id=tenant_id, purpose="allowed_collections", error=str(e))
            return TENANT_NOT_FOUND

        if tenant is None:
            logger.info("tenant_not_found", tenant_id=tenant_id)
            return TENANT_NOT_FOUND

        raw = tenant.get("allowed_collections")
        if raw is None:
            return None
        return _clean_collection_list(raw)

    return await ctx.cache.get_or_compute(CachePurpose.ALLOWED_COLLECTIONS, tenant_id, compute)


async def get_tenant_allow_public_read(ctx: RequestContext, tenant_id: TenantId) -> tuple[str, ...]:
    """Collections of a tenant readable without logging in. Empty on any failure."""

    async def compute() -> tuple[str, ...]:
        try:
            tenant = await _fetch_live_tenant(ctx, tenant_id)
        except Exception as e:
            logger.error("tenant_lookup_failed", tenant_id=tenant_id, purpose="allow_public_read", error=str(e))
            return ()

        if tenant is None:
            return ()
        return _clean_collection_list(tenant.get("allow_public_read"))

    return await ctx.cache.get_or_compute(CachePurpose.ALLOW_PUBLIC_READ, tenant_id, compute)


def is_collection_allowed(allowed: AllowedCollections, collection: str) -> bool:
    """Apply an allowed-collection setting to one collection."""
    if allowed is TENANT_NOT_FOUND:
        return False
    if allowed is None:
        return True
    return collection in allowed
