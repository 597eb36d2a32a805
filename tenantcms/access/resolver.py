"""
Tenant identity resolution.

Works out which tenant a request is acting for. Sources, most trusted first:

1. A tenant attached to the context by trusted middleware (already checked)
2. The tenant cookie, trusted as-is for anonymous requests (public reads are
   gated separately by the tenant's public-read list) and for top-level users
   (they may act for any tenant)
3. For tenant-scoped users, the cookie only when it names one of their own
   tenants; anything else is dropped so a tampered cookie cannot reach a
   foreign tenant

A None result means "no tenant", never "every tenant".
"""

import structlog

from tenantcms.access.context import CachePurpose, RequestContext
from tenantcms.access.ids import TenantId, normalize_tenant_id
from tenantcms.access.roles import is_top_level_user
from tenantcms.access.tenant_data import build_user_tenant_data
from tenantcms.config import settings
from tenantcms.core.metrics import tenant_resolutions_total

logger = structlog.get_logger(__name__)


def _record(source: str) -> None:
    tenant_resolutions_total.labels(source=source).inc()


def get_tenant_cookie(ctx: RequestContext) -> TenantId | None:
    """Tenant id from the tenant cookie, normalized. Malformed values are None."""
    return normalize_tenant_id(ctx.get_cookie(settings.tenant_cookie_name))


def is_top_level_mode(ctx: RequestContext) -> bool:
    """Whether a top-level user asked to browse without a tenant."""
    return ctx.get_cookie(settings.top_level_cookie_name) == "true"


def resolve_tenant(ctx: RequestContext) -> TenantId | None:
    """
    Resolve the tenant the request acts for.

    Memoized on the context, so the source is counted and a rejected cookie
    logged once per request however many checks ask.

    Returns:
        Normalized tenant id, or None when no trustworthy tenant is known
    """
    key = (
        normalize_tenant_id(ctx.tenant),
        ctx.get_cookie(settings.tenant_cookie_name),
        ctx.user.id if ctx.user is not None else None,
    )
    return ctx.cache.get_or_compute_sync(CachePurpose.RESOLVED_TENANT, key, lambda: _resolve_tenant(ctx))


def _resolve_tenant(ctx: RequestContext) -> TenantId | None:
    if ctx.tenant is not None:
        tenant_id = normalize_tenant_id(ctx.tenant)
        if tenant_id is not None:
            _record("context")
            return tenant_id

    cookie_tenant = get_tenant_cookie(ctx)
    if cookie_tenant is None:
        _record("none")
        return None

    if ctx.user is None:
        _record("cookie_anonymous")
        return cookie_tenant

    if is_top_level_user(ctx.user):
        _record("cookie_top_level")
        return cookie_tenant

    # Tenant data is pure here; the memoized copy is only needed by predicates
    tenant_data = build_user_tenant_data(ctx.user)
    if cookie_tenant in tenant_data.all_tenant_ids:
        _record("cookie_member")
        return cookie_tenant

    logger.warning(
        "tenant_cookie_rejected",
        user_id=ctx.user.id,
        cookie_tenant=cookie_tenant,
        user_tenants=list(tenant_data.all_tenant_ids),
    )
    _record("cookie_rejected")
    return None


def get_effective_tenant(ctx: RequestContext) -> TenantId | None:
    """
    Tenant used to scope top-level views.

    A top-level user in top-level mode sees every tenant, so the tenant cookie
    is ignored for them. Everyone else gets ``resolve_tenant``.
    """
    if ctx.user is not None and is_top_level_user(ctx.user) and is_top_level_mode(ctx):
        return None
    return resolve_tenant(ctx)
