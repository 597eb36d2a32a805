"""
Public tenant API.

Serves a tenant's public content by tenant slug, without authentication.
The tenant found by slug is attached to the access context as trusted, so
the regular anonymous read rules apply: only collections the tenant lists
as publicly readable, only live documents, only published pages and posts.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcms.access.context import RequestContext
from tenantcms.access.store import Store
from tenantcms.access.where import And, Condition, Operator, where_not_deleted
from tenantcms.collections import Collection
from tenantcms.config import settings
from tenantcms.core.cache import cached
from tenantcms.core.context import set_request_context
from tenantcms.core.database import get_db
from tenantcms.core.exceptions import not_found
from tenantcms.features.collections.service import TENANT_SLUG_CACHE_NAMESPACE, collection_service
from tenantcms.schemas.common import PaginatedResponse
from tenantcms.schemas.tenant import PublicTenantRead
from tenantcms.store.sqlalchemy_store import SQLAlchemyStore

router = APIRouter(prefix="/tenant", tags=["Public"])


@cached(
    namespace=TENANT_SLUG_CACHE_NAMESPACE,
    ttl=settings.tenant_slug_cache_ttl,
    key_builder=lambda store, slug: slug,
)
async def get_public_tenant(store: Store, slug: str) -> dict[str, Any] | None:
    """Live tenant by slug, public fields only."""
    result = await store.find(
        Collection.TENANTS.value,
        And((Condition("slug", Operator.EQUALS, slug), where_not_deleted())),
        limit=1,
    )
    if not result.docs:
        return None
    return PublicTenantRead.model_validate(result.docs[0]).model_dump()


async def get_public_context(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RequestContext:
    """Anonymous access context bound to the tenant named in the path."""
    store = SQLAlchemyStore(db)
    tenant = await get_public_tenant(store, slug)
    if tenant is None:
        raise not_found(f"Tenant '{slug}' not found")

    set_request_context(tenant_id=tenant["id"])
    return RequestContext(user=None, store=store, tenant=tenant["id"])


PublicContext = Annotated[RequestContext, Depends(get_public_context)]


async def _list(
    ctx: RequestContext,
    collection: Collection,
    skip: int,
    limit: int,
    sort: str | None = None,
) -> PaginatedResponse[dict[str, Any]]:
    docs, total = await collection_service.find(ctx, collection.value, limit=limit, skip=skip, sort=sort)
    return PaginatedResponse[dict[str, Any]](items=docs, total=total, skip=skip, limit=limit)


async def _by_slug(ctx: RequestContext, collection: Collection, slug: str) -> dict[str, Any]:
    docs, _ = await collection_service.find(
        ctx, collection.value, {"slug": {"equals": slug}}, limit=1
    )
    if not docs:
        raise not_found(f"{collection.value} '{slug}' not found")
    return docs[0]


@router.get("/{slug}", response_model=PublicTenantRead)
async def get_tenant(slug: str, ctx: PublicContext) -> dict[str, Any]:
    return await get_public_tenant(ctx.store, slug)


@router.get("/{slug}/posts", response_model=PaginatedResponse[dict[str, Any]])
async def list_posts(
    ctx: PublicContext,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
) -> PaginatedResponse[dict[str, Any]]:
    """Published posts, newest first."""
    return await _list(ctx, Collection.POSTS, skip, limit, sort="-published_at")


@router.get("/{slug}/posts/{post_slug}")
async def get_post(post_slug: str, ctx: PublicContext) -> dict[str, Any]:
    return await _by_slug(ctx, Collection.POSTS, post_slug)


@router.get("/{slug}/pages/{page_slug}")
async def get_page(page_slug: str, ctx: PublicContext) -> dict[str, Any]:
    return await _by_slug(ctx, Collection.PAGES, page_slug)


@router.get("/{slug}/categories", response_model=PaginatedResponse[dict[str, Any]])
async def list_categories(
    ctx: PublicContext,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
) -> PaginatedResponse[dict[str, Any]]:
    return await _list(ctx, Collection.CATEGORIES, skip, limit, sort="title")


@router.get("/{slug}/sections", response_model=PaginatedResponse[dict[str, Any]])
async def list_sections(
    ctx: PublicContext,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
) -> PaginatedResponse[dict[str, Any]]:
    return await _list(ctx, Collection.SECTIONS, skip, limit)


@router.get("/{slug}/header")
async def get_header(ctx: PublicContext) -> dict[str, Any]:
    """The tenant's navigation header."""
    docs, _ = await collection_service.find(ctx, Collection.HEADER.value, limit=1)
    if not docs:
        raise not_found("Header not found")
    return docs[0]
