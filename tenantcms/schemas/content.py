"""
Pydantic schemas for tenant-scoped content.

``tenant`` is optional on create: the collection service fills it from the
acting tenant. Tenant-scoped users cannot place documents in other tenants.
"""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from tenantcms.access.ids import normalize_tenant_id
from tenantcms.collections import Collection, DocStatus
from tenantcms.schemas.common import BaseSchema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class TenantOwnedInput(BaseSchema):
    """Common input of every tenant-scoped document."""

    tenant: int | str | None = None

    @field_validator("tenant", mode="before")
    @classmethod
    def validate_tenant(cls, v: Any) -> int | str | None:
        if v is None:
            return None
        tenant_id = normalize_tenant_id(v)
        if tenant_id is None:
            raise ValueError("tenant must be an id")
        return tenant_id


class PageCreate(TenantOwnedInput):
    title: str = Field(..., min_length=1, max_length=500)
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN)
    status: DocStatus = DocStatus.DRAFT
    content: dict[str, Any] | None = None


class PageUpdate(TenantOwnedInput):
    title: str | None = Field(None, min_length=1, max_length=500)
    slug: str | None = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    status: DocStatus | None = None
    content: dict[str, Any] | None = None


class PostCreate(TenantOwnedInput):
    title: str = Field(..., min_length=1, max_length=500)
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN)
    status: DocStatus = DocStatus.DRAFT
    published_at: datetime | None = None
    content: str | None = None
    authors: list[int] | None = None


class PostUpdate(TenantOwnedInput):
    title: str | None = Field(None, min_length=1, max_length=500)
    slug: str | None = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    status: DocStatus | None = None
    published_at: datetime | None = None
    content: str | None = None
    authors: list[int] | None = None


class MediaCreate(TenantOwnedInput):
    filename: str = Field(..., min_length=1, max_length=500)
    alt: str | None = Field(None, max_length=500)
    mime_type: str | None = Field(None, max_length=255)
    url: str | None = None


class MediaUpdate(TenantOwnedInput):
    filename: str | None = Field(None, min_length=1, max_length=500)
    alt: str | None = Field(None, max_length=500)
    mime_type: str | None = Field(None, max_length=255)
    url: str | None = None


class CategoryCreate(TenantOwnedInput):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=SLUG_PATTERN)


class CategoryUpdate(TenantOwnedInput):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)


class NavigationInput(TenantOwnedInput):
    """Header and footer share one shape."""
    nav_items: list[dict[str, Any]] | None = None


class SectionCreate(TenantOwnedInput):
    title: str = Field(..., min_length=1, max_length=255)
    content: dict[str, Any] | None = None


class SectionUpdate(TenantOwnedInput):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: dict[str, Any] | None = None


# collection -> (create schema, update schema)
CONTENT_SCHEMAS: dict[str, tuple[type[BaseSchema], type[BaseSchema]]] = {
    Collection.PAGES.value: (PageCreate, PageUpdate),
    Collection.POSTS.value: (PostCreate, PostUpdate),
    Collection.MEDIA.value: (MediaCreate, MediaUpdate),
    Collection.CATEGORIES.value: (CategoryCreate, CategoryUpdate),
    Collection.HEADER.value: (NavigationInput, NavigationInput),
    Collection.FOOTER.value: (NavigationInput, NavigationInput),
    Collection.SECTIONS.value: (SectionCreate, SectionUpdate),
}
