"""
Collection access policies.

Binds every collection to its access functions and exposes
``evaluate_access`` as the single entry point used by the service layer and
the HTTP API.

Create, read and update on tenant-managed collections pass through the
tenant collection gate first. Delete is not gated: an admin may still clean
up documents of a collection that was switched off for the tenant.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from tenantcms.access.context import RequestContext
from tenantcms.access.posts import (
    posts_create_access,
    posts_delete_access,
    posts_read_access,
    posts_update_access,
)
from tenantcms.access.predicates import (
    AccessFn,
    has_admin_panel_access,
    is_super_admin_access,
    tenant_admin_create_access,
    tenant_admin_update_access,
    tenant_collection_admin_access,
    tenant_public_read_access,
    with_tenant_collection_access,
)
from tenantcms.access.tenants import (
    tenants_admin_access,
    tenants_read_access,
    tenants_update_access,
)
from tenantcms.access.users import (
    users_bootstrap_create_access,
    users_delete_access,
    users_read_access,
    users_update_access,
)
from tenantcms.access.where import AccessResult
from tenantcms.collections import Collection, TENANT_MANAGED_COLLECTIONS, VERSIONED_COLLECTIONS
from tenantcms.core.metrics import access_decisions_total

logger = structlog.get_logger(__name__)


class AccessOperation(str, Enum):
    """Operations an access decision can be asked about."""
    ADMIN = "admin"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class CollectionPolicy:
    """Access functions of one collection."""
    admin: AccessFn
    create: AccessFn
    read: AccessFn
    update: AccessFn
    delete: AccessFn

    def for_operation(self, operation: AccessOperation) -> AccessFn:
        return getattr(self, operation.value)


def _tenant_content_policy(collection: str) -> CollectionPolicy:
    published_only = collection in VERSIONED_COLLECTIONS

    if collection == Collection.POSTS.value:
        create, read = posts_create_access, posts_read_access(published_only=True)
        update, delete = posts_update_access, posts_delete_access
    else:
        create = tenant_admin_create_access
        read = tenant_public_read_access(collection, published_only=published_only)
        update = delete = tenant_admin_update_access

    return CollectionPolicy(
        admin=tenant_collection_admin_access(collection),
        create=with_tenant_collection_access(collection, create),
        read=with_tenant_collection_access(collection, read),
        update=with_tenant_collection_access(collection, update),
        delete=delete,
    )


POLICIES: dict[str, CollectionPolicy] = {
    **{collection: _tenant_content_policy(collection) for collection in TENANT_MANAGED_COLLECTIONS},
    Collection.USERS.value: CollectionPolicy(
        admin=has_admin_panel_access,
        create=users_bootstrap_create_access,
        read=users_read_access,
        update=users_update_access,
        delete=users_delete_access,
    ),
    Collection.TENANTS.value: CollectionPolicy(
        admin=tenants_admin_access,
        create=is_super_admin_access,
        read=tenants_read_access,
        update=tenants_update_access,
        delete=is_super_admin_access,
    ),
}


def _outcome(result: AccessResult) -> str:
    if result is True:
        return "allow"
    if result is False:
        return "deny"
    return "filter"


async def evaluate_access(
    ctx: RequestContext,
    collection: str,
    operation: AccessOperation | str,
) -> AccessResult:
    """
    Decide an operation on a collection.

    Returns:
        True, False, or a Where filter the store must apply

    Raises:
        KeyError: unknown collection
    """
    operation = AccessOperation(operation)
    policy = POLICIES[collection]

    result = await policy.for_operation(operation)(ctx)

    outcome = _outcome(result)
    access_decisions_total.labels(
        collection=collection, operation=operation.value, outcome=outcome
    ).inc()
    logger.debug(
        "access_decision",
        collection=collection,
        operation=operation.value,
        outcome=outcome,
        user_id=ctx.user.id if ctx.user else None,
    )
    return result
