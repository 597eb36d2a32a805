"""
Pydantic schemas for Tenant.
"""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from tenantcms.collections import TENANT_MANAGED_COLLECTIONS
from tenantcms.schemas.common import BaseSchema


def _validate_collection_list(value: Any) -> list[str] | None:
    """Unknown collections are rejected, duplicates collapsed, order kept."""
    if value is None:
        return None
    unknown = [item for item in value if item not in TENANT_MANAGED_COLLECTIONS]
    if unknown:
        raise ValueError(f"Unknown collections: {', '.join(map(str, unknown))}")
    return list(dict.fromkeys(value))


def _normalize_domain(value: str | None) -> str | None:
    if value is None:
        return None
    domain = value.strip().lower().split(":")[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain or None


class TenantBase(BaseSchema):
    """Base tenant schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    slug: str = Field(
        ...,
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
        description="URL-friendly identifier",
    )
    domain: str | None = Field(None, max_length=255, description="Routing domain, without www.")

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str | None) -> str | None:
        return _normalize_domain(v)


class TenantCreate(TenantBase):
    """
    Schema for creating a tenant.

    ``allowed_collections`` left out (None) enables every collection,
    an empty list enables none.
    """

    allowed_collections: list[str] | None = None
    allow_public_read: list[str] | None = None

    @field_validator("allowed_collections", "allow_public_read")
    @classmethod
    def validate_collections(cls, v: list[str] | None) -> list[str] | None:
        return _validate_collection_list(v)


class TenantUpdate(BaseSchema):
    """Schema for updating a tenant (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    domain: str | None = Field(None, max_length=255)
    allowed_collections: list[str] | None = None
    allow_public_read: list[str] | None = None

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str | None) -> str | None:
        return _normalize_domain(v)

    @field_validator("allowed_collections", "allow_public_read")
    @classmethod
    def validate_collections(cls, v: list[str] | None) -> list[str] | None:
        return _validate_collection_list(v)


class TenantRead(TenantBase):
    """Schema for reading tenant data."""

    id: int
    allowed_collections: list[str] | None = None
    allow_public_read: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class PublicTenantRead(BaseSchema):
    """Tenant fields exposed on the public API."""

    id: int
    name: str
    slug: str
    domain: str | None = None
