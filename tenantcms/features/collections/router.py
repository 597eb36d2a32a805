"""
Generic collection endpoints.

Every collection shares one set of routes; what a requester may see or
change is decided by the collection's access policy.
"""

import json
from typing import Any

from fastapi import APIRouter, Query, status

from tenantcms.collections import Collection
from tenantcms.core.exceptions import bad_request
from tenantcms.features.auth.dependencies import AccessContext
from tenantcms.features.collections.service import collection_service
from tenantcms.schemas.common import PaginatedResponse

router = APIRouter(tags=["Collections"])


@router.get("/access")
async def get_access(ctx: AccessContext) -> dict[str, dict[str, bool]]:
    """
    Permissions of the requester on every collection.

    Drives which collections and actions the admin UI offers.
    """
    return await collection_service.permissions(ctx)


@router.get("/{collection}", response_model=PaginatedResponse[dict[str, Any]])
async def list_documents(
    collection: Collection,
    ctx: AccessContext,
    where: str | None = Query(None, description='JSON filter, e.g. {"status": {"equals": "published"}}'),
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    sort: str | None = Query(None, description="Field name, '-' prefix for descending"),
    trash: bool = Query(False, description="Include trashed documents"),
) -> PaginatedResponse[dict[str, Any]]:
    """List the documents of a collection visible to the requester."""
    filters = None
    if where:
        try:
            filters = json.loads(where)
        except json.JSONDecodeError:
            raise bad_request("where must be valid JSON")

    docs, total = await collection_service.find(
        ctx,
        collection.value,
        filters,
        limit=limit,
        skip=skip,
        sort=sort,
        trash=trash,
    )
    return PaginatedResponse[dict[str, Any]](items=docs, total=total, skip=skip, limit=limit)


@router.post("/{collection}", status_code=status.HTTP_201_CREATED)
async def create_document(
    collection: Collection,
    data: dict[str, Any],
    ctx: AccessContext,
) -> dict[str, Any]:
    return await collection_service.create(ctx, collection.value, data)


@router.get("/{collection}/{doc_id}")
async def get_document(
    collection: Collection,
    doc_id: int,
    ctx: AccessContext,
) -> dict[str, Any]:
    return await collection_service.find_by_id(ctx, collection.value, doc_id)


@router.patch("/{collection}/{doc_id}")
async def update_document(
    collection: Collection,
    doc_id: int,
    data: dict[str, Any],
    ctx: AccessContext,
) -> dict[str, Any]:
    return await collection_service.update(ctx, collection.value, doc_id, data)


@router.delete("/{collection}/{doc_id}")
async def delete_document(
    collection: Collection,
    doc_id: int,
    ctx: AccessContext,
    permanent: bool = Query(False, description="Delete for good instead of moving to the trash"),
) -> dict[str, Any]:
    """
    Move a document to the trash.

    Only top-level users may delete permanently.
    """
    return await collection_service.delete(ctx, collection.value, doc_id, permanent=permanent)


@router.post("/{collection}/{doc_id}/restore")
async def restore_document(
    collection: Collection,
    doc_id: int,
    ctx: AccessContext,
) -> dict[str, Any]:
    return await collection_service.restore(ctx, collection.value, doc_id)
