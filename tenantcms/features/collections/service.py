"""
Collection CRUD with access control.

Every operation asks ``evaluate_access`` first:
- False: the requester may not perform the operation at all (403)
- Where: the operation is limited to matching documents; queries are ANDed
  with it and incoming documents must satisfy it
- True: unrestricted

Then the payload is validated, field access drops what the requester may
not write, and the collection hooks run before the store is touched.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from tenantcms.access.capabilities import (
    TENANT_NOT_FOUND,
    get_tenant_allowed_collections,
    is_collection_allowed,
)
from tenantcms.access.context import RequestContext
from tenantcms.access.fields import apply_field_read_access, apply_field_write_access
from tenantcms.access.ids import TenantId, normalize_tenant_id
from tenantcms.access.policies import POLICIES, AccessOperation, evaluate_access
from tenantcms.access.resolver import resolve_tenant
from tenantcms.access.roles import is_top_level_user
from tenantcms.access.tenant_data import get_user_tenant_data
from tenantcms.access.where import (
    AccessResult,
    Condition,
    Operator,
    Where,
    WhereParseError,
    and_where,
    where_no_access,
    where_not_deleted,
)
from tenantcms.collections import Collection, is_tenant_managed
from tenantcms.config import settings
from tenantcms.core.cache import cache_manager
from tenantcms.core.exceptions import (
    AuthorizationError,
    QuotaExceededError,
    ResourceNotFoundError,
    TenantAccessError,
    ValidationError,
)
from tenantcms.core.security import hash_password
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
from tenantcms.models.base import utcnow
from tenantcms.schemas.common import BaseSchema
from tenantcms.schemas.content import CONTENT_SCHEMAS
from tenantcms.schemas.tenant import TenantCreate, TenantUpdate
from tenantcms.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

USERS = Collection.USERS.value
TENANTS = Collection.TENANTS.value
POSTS = Collection.POSTS.value

TENANT_SLUG_CACHE_NAMESPACE = "tenant_by_slug"

SCHEMAS: dict[str, tuple[type[BaseSchema], type[BaseSchema]]] = {
    **CONTENT_SCHEMAS,
    USERS: (UserCreate, UserUpdate),
    TENANTS: (TenantCreate, TenantUpdate),
}


def _plain(value: Any) -> Any:
    """Enums to their values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _validate(collection: str, operation: str, data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a payload against the collection schema.

    Raises:
        ValidationError: payload does not fit the schema
    """
    create_schema, update_schema = SCHEMAS[collection]
    schema = create_schema if operation == "create" else update_schema
    try:
        model = schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {collection} payload",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
    return _plain(model.model_dump(exclude_unset=True))


class CollectionService:
    """Access-controlled CRUD over every collection."""

    # Lookups

    @staticmethod
    async def _require(
        ctx: RequestContext,
        collection: str,
        operation: AccessOperation,
    ) -> AccessResult:
        if collection not in POLICIES:
            raise ResourceNotFoundError(f"Unknown collection '{collection}'")

        result = await evaluate_access(ctx, collection, operation)
        if result is False:
            if operation is AccessOperation.CREATE and await CollectionService._is_guest_writer_post(ctx, collection):
                raise QuotaExceededError("Post limit reached. An editor must publish or raise your limit.")
            raise AuthorizationError("You are not allowed to perform this action.")
        return result

    @staticmethod
    async def _is_guest_writer_post(ctx: RequestContext, collection: str) -> bool:
        """A guest writer creating a post in one of their tenants: only the quota can deny that."""
        if collection != Collection.POSTS.value or ctx.user is None or is_top_level_user(ctx.user):
            return False
        tenant_data = await get_user_tenant_data(ctx)
        if tenant_data.has_admin_role or not tenant_data.has_guest_writer_role:
            return False
        return resolve_tenant(ctx) in tenant_data.all_tenant_ids

    @staticmethod
    def _access_where(result: AccessResult) -> Where | None:
        return result if isinstance(result, Where) else None

    @staticmethod
    async def _find_scoped(
        ctx: RequestContext,
        collection: str,
        id: Any,
        access: AccessResult,
    ) -> dict[str, Any]:
        """Fetch one document through the access filter. Hidden means not found."""
        where = and_where(
            Condition("id", Operator.EQUALS, id),
            CollectionService._access_where(access),
        )
        try:
            result = await ctx.store.find(collection, where, limit=1)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if not result.docs:
            raise ResourceNotFoundError(f"{collection} document {id} not found")
        return result.docs[0]

    # Tenant ownership

    @staticmethod
    async def _check_tenant_collection(
        ctx: RequestContext,
        collection: str,
        tenant_id: TenantId,
        check_collection: bool = True,
    ) -> None:
        allowed = await get_tenant_allowed_collections(ctx, tenant_id)
        if allowed is TENANT_NOT_FOUND:
            raise ValidationError(f"Tenant {tenant_id} not found")
        if check_collection and not is_collection_allowed(allowed, collection):
            raise AuthorizationError(f"'{collection}' is not enabled for tenant {tenant_id}")

    @staticmethod
    async def _assign_tenant(ctx: RequestContext, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Decide which tenant owns a new document.

        Top-level users may name any tenant, else the selected one is used.
        Tenant-scoped users always write into their acting tenant.

        Raises:
            ValidationError: no tenant could be determined
            TenantAccessError: a tenant-scoped user named another tenant
        """
        requested = normalize_tenant_id(data.get("tenant"))
        check_collection = True

        if is_top_level_user(ctx.user):
            tenant_id = requested if requested is not None else resolve_tenant(ctx)
        else:
            tenant_data = await get_user_tenant_data(ctx)
            tenant_id = resolve_tenant(ctx)
            if tenant_id is None:
                tenant_id = tenant_data.single_tenant_id
            if requested is not None and requested != tenant_id:
                raise TenantAccessError("Cannot create documents in another tenant")
            if tenant_id is not None and tenant_id not in tenant_data.all_tenant_ids:
                raise TenantAccessError("Cannot create documents in another tenant")
            # Guest writers are limited to posts whatever the tenant enables
            check_collection = not tenant_data.has_guest_writer_role

        if tenant_id is None:
            raise ValidationError("Select a tenant before creating documents")

        await CollectionService._check_tenant_collection(ctx, collection, tenant_id, check_collection)
        return {**data, "tenant": tenant_id}

    @staticmethod
    async def _check_tenant_move(
        ctx: RequestContext,
        collection: str,
        data: dict[str, Any],
        existing: dict[str, Any],
    ) -> dict[str, Any]:
        if "tenant" not in data:
            return data

        tenant_id = normalize_tenant_id(data["tenant"])
        if tenant_id is None or tenant_id == normalize_tenant_id(existing.get("tenant")):
            return {key: value for key, value in data.items() if key != "tenant"}
        if not is_top_level_user(ctx.user):
            raise TenantAccessError("Cannot move documents to another tenant")

        await CollectionService._check_tenant_collection(ctx, collection, tenant_id)
        return {**data, "tenant": tenant_id}

    # Uniqueness

    @staticmethod
    async def _ensure_unique(
        ctx: RequestContext,
        collection: str,
        field_name: str,
        value: Any,
        exclude_id: Any = None,
    ) -> None:
        where = and_where(
            Condition(field_name, Operator.EQUALS, value),
            Condition("id", Operator.NOT_EQUALS, exclude_id) if exclude_id is not None else None,
        )
        if await ctx.store.count(collection, where) > 0:
            raise ValidationError(f"{field_name} '{value}' is already in use")

    # Hooks

    @staticmethod
    async def _before_create(ctx: RequestContext, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        if is_tenant_managed(collection):
            data = await CollectionService._assign_tenant(ctx, collection, data)

        if collection == POSTS:
            data = assign_guest_writer_author(ctx, data)
            data = prevent_guest_writer_publish(ctx, data)
            data = auto_publish_date(data)

        elif collection == USERS:
            await CollectionService._ensure_unique(ctx, USERS, "email", data["email"])
            data = await ensure_first_user_super_admin(ctx, data, "create")
            data = await assign_users_to_one_tenant(ctx, data, "create")
            await validate_tenants_field(ctx, data)
            data.setdefault("guest_writer_post_limit", settings.default_guest_writer_post_limit)
            data["hashed_password"] = hash_password(data.pop("password"))

        elif collection == TENANTS:
            await CollectionService._ensure_unique(ctx, TENANTS, "slug", data["slug"])
            data = clean_allow_public_read(data)

        return data

    @staticmethod
    async def _before_update(
        ctx: RequestContext,
        collection: str,
        data: dict[str, Any],
        existing: dict[str, Any],
    ) -> dict[str, Any]:
        if is_tenant_managed(collection):
            data = await CollectionService._check_tenant_move(ctx, collection, data, existing)

        if collection == POSTS:
            data = assign_guest_writer_author(ctx, data)
            data = prevent_guest_writer_publish(ctx, data)
            data = auto_publish_date(data, existing)

        elif collection == USERS:
            if data.get("email") and data["email"] != existing.get("email"):
                await CollectionService._ensure_unique(ctx, USERS, "email", data["email"], existing["id"])
            data = await assign_users_to_one_tenant(ctx, data, "update")
            await validate_tenants_field(ctx, data, existing)
            if data.get("password"):
                data["hashed_password"] = hash_password(data.pop("password"))
            data.pop("password", None)

        elif collection == TENANTS:
            if data.get("slug") and data["slug"] != existing.get("slug"):
                await CollectionService._ensure_unique(ctx, TENANTS, "slug", data["slug"], existing["id"])
            data = clean_allow_public_read(data, existing)

        return data

    @staticmethod
    async def _after_change(ctx: RequestContext, collection: str, doc: dict[str, Any], operation: str) -> dict[str, Any]:
        if collection == USERS:
            doc = await verify_only_super_admin(ctx, doc, operation)
        elif collection == TENANTS:
            await cache_manager.invalidate_namespace(TENANT_SLUG_CACHE_NAMESPACE)
        return doc

    # Operations

    @staticmethod
    async def find(
        ctx: RequestContext,
        collection: str,
        where: dict[str, Any] | None = None,
        *,
        limit: int = 10,
        skip: int = 0,
        sort: str | None = None,
        trash: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List documents visible to the requester.

        Args:
            ctx: Request context
            collection: Collection slug
            where: Client filter in JSON shape
            limit: Page size
            skip: Offset
            sort: Field name, prefixed with "-" for descending
            trash: Include trashed documents the requester may see

        Returns:
            (documents, total count)
        """
        access = await CollectionService._require(ctx, collection, AccessOperation.READ)

        client_where = None
        if where:
            try:
                client_where = Where.from_dict(where)
            except WhereParseError as e:
                raise ValidationError(f"Invalid where filter: {e}") from e

        query = and_where(
            CollectionService._access_where(access),
            client_where,
            None if trash else where_not_deleted(),
        )
        try:
            result = await ctx.store.find(collection, query, limit=limit, skip=skip, sort=sort)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        docs = [await apply_field_read_access(ctx, collection, doc) for doc in result.docs]
        return docs, result.total_docs

    @staticmethod
    async def find_by_id(ctx: RequestContext, collection: str, id: Any) -> dict[str, Any]:
        access = await CollectionService._require(ctx, collection, AccessOperation.READ)
        doc = await CollectionService._find_scoped(ctx, collection, id, access)
        return await apply_field_read_access(ctx, collection, doc)

    @staticmethod
    async def create(ctx: RequestContext, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Create a document.

        Raises:
            AuthorizationError: create denied, or the document falls outside
                the requester's filter
            ValidationError: invalid payload
            TenantAccessError: tenant-scoped user targeting another tenant
        """
        access = await CollectionService._require(ctx, collection, AccessOperation.CREATE)

        data = _validate(collection, "create", data)
        data = await apply_field_write_access(ctx, collection, "create", data)
        data = await CollectionService._before_create(ctx, collection, data)

        if isinstance(access, Where) and not access.matches(data):
            raise AuthorizationError("You are not allowed to create this document.")

        doc = await ctx.store.create(collection, data)
        doc = await CollectionService._after_change(ctx, collection, doc, "create")

        logger.info(f"Created {collection} document {doc.get('id')}")
        return await apply_field_read_access(ctx, collection, doc)

    @staticmethod
    async def update(ctx: RequestContext, collection: str, id: Any, data: dict[str, Any]) -> dict[str, Any]:
        access = await CollectionService._require(ctx, collection, AccessOperation.UPDATE)
        existing = await CollectionService._find_scoped(ctx, collection, id, access)

        data = _validate(collection, "update", data)
        data = await apply_field_write_access(ctx, collection, "update", data, existing)
        data = await CollectionService._before_update(ctx, collection, data, existing)

        # The result must stay inside what the requester may update
        if isinstance(access, Where) and not access.matches({**existing, **data}):
            raise AuthorizationError("You are not allowed to move this document out of your scope.")

        doc = await ctx.store.update(collection, existing["id"], data)
        if doc is None:
            raise ResourceNotFoundError(f"{collection} document {id} not found")
        doc = await CollectionService._after_change(ctx, collection, doc, "update")

        logger.info(f"Updated {collection} document {doc.get('id')}")
        return await apply_field_read_access(ctx, collection, doc)

    @staticmethod
    async def delete(
        ctx: RequestContext,
        collection: str,
        id: Any,
        *,
        permanent: bool = False,
    ) -> dict[str, Any]:
        """
        Move a document to the trash, or remove it for good.

        Raises:
            AuthorizationError: delete denied, or a permanent delete by a
                non top-level user
            LastSuperAdminError: the target is the last live super-admin
        """
        access = await CollectionService._require(ctx, collection, AccessOperation.DELETE)
        existing = await CollectionService._find_scoped(ctx, collection, id, access)

        if permanent and not is_top_level_user(ctx.user):
            raise AuthorizationError("Only top-level users can permanently delete documents.")

        if collection == USERS:
            await prevent_last_super_admin_delete(ctx, existing)

        if permanent:
            await ctx.store.delete(collection, existing["id"])
            doc = existing
            logger.info(f"Permanently deleted {collection} document {existing['id']}")
        elif existing.get("deleted_at") is None:
            doc = await ctx.store.update(collection, existing["id"], {"deleted_at": utcnow()})
            logger.info(f"Trashed {collection} document {existing['id']}")
        else:
            doc = existing

        if collection == TENANTS:
            await cache_manager.invalidate_namespace(TENANT_SLUG_CACHE_NAMESPACE)
        return await apply_field_read_access(ctx, collection, doc)

    @staticmethod
    async def restore(ctx: RequestContext, collection: str, id: Any) -> dict[str, Any]:
        """Take a document out of the trash."""
        access = await CollectionService._require(ctx, collection, AccessOperation.UPDATE)
        existing = await CollectionService._find_scoped(ctx, collection, id, access)

        doc = existing
        if existing.get("deleted_at") is not None:
            doc = await ctx.store.update(collection, existing["id"], {"deleted_at": None})
            logger.info(f"Restored {collection} document {existing['id']}")

        if collection == TENANTS:
            await cache_manager.invalidate_namespace(TENANT_SLUG_CACHE_NAMESPACE)
        return await apply_field_read_access(ctx, collection, doc)

    @staticmethod
    async def permissions(ctx: RequestContext) -> dict[str, dict[str, bool]]:
        """
        Per-collection permissions of the requester.

        A filter counts as permitted: the requester can act on some documents.
        A closed tenant collection gate does not.
        """
        permissions: dict[str, dict[str, bool]] = {}
        for collection in POLICIES:
            permissions[collection] = {}
            for operation in AccessOperation:
                result = await evaluate_access(ctx, collection, operation)
                permissions[collection][operation.value] = result is not False and result != where_no_access
        return permissions


# Singleton instance
collection_service = CollectionService()
