"""
Pydantic schemas for User.

``AuthUser`` is the boundary schema for the authenticated identity the access
layer works with. It never fails on a bad tenant entry or role tag: bad parts
are dropped so the user ends up with fewer privileges, not an error.
"""

from datetime import datetime
from typing import Any

import structlog
from pydantic import EmailStr, Field, ValidationError, field_validator

from tenantcms.access.ids import TenantId, normalize_tenant_id
from tenantcms.access.roles import TENANT_ROLES, TOP_LEVEL_ROLES, Role
from tenantcms.config import settings
from tenantcms.schemas.common import BaseSchema

logger = structlog.get_logger(__name__)


class TenantAssignment(BaseSchema):
    """One entry of a user's ``tenants`` list."""

    tenant: TenantId
    roles: list[str] = Field(default_factory=list)

    @field_validator("tenant", mode="before")
    @classmethod
    def validate_tenant(cls, v: Any) -> TenantId:
        tenant_id = normalize_tenant_id(v)
        if tenant_id is None:
            raise ValueError("tenant must be an id or an object with an id")
        return tenant_id

    @field_validator("roles", mode="before")
    @classmethod
    def validate_roles(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError("roles must be a list")
        # Unknown tags grant nothing
        return [role for role in v if isinstance(role, str) and role in TENANT_ROLES]


class AuthUser(BaseSchema):
    """Validated view of the requesting user."""

    id: int | str
    email: str | None = None
    name: str | None = None
    roles: str | None = None
    tenants: list[TenantAssignment] = Field(default_factory=list)
    guest_writer_post_limit: int = Field(default_factory=lambda: settings.default_guest_writer_post_limit)
    created_at: datetime | None = None
    deleted_at: datetime | None = None

    @field_validator("roles", mode="before")
    @classmethod
    def validate_roles(cls, v: Any) -> str | None:
        if isinstance(v, str) and v in TOP_LEVEL_ROLES:
            return v
        return None

    @field_validator("tenants", mode="before")
    @classmethod
    def validate_tenants(cls, v: Any) -> list[TenantAssignment]:
        if not isinstance(v, (list, tuple)):
            return []

        entries: list[TenantAssignment] = []
        for raw in v:
            try:
                entries.append(TenantAssignment.model_validate(raw))
            except ValidationError:
                logger.warning("tenant_assignment_dropped", entry=repr(raw)[:200])
        return entries

    @field_validator("guest_writer_post_limit", mode="before")
    @classmethod
    def validate_post_limit(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return settings.default_guest_writer_post_limit
        return int(v)


def parse_user(raw: Any) -> AuthUser | None:
    """
    Validate an authenticated identity.

    Returns None (treated as anonymous) when the record is unusable.
    """
    if raw is None:
        return None
    if isinstance(raw, AuthUser):
        return raw

    try:
        return AuthUser.model_validate(raw)
    except ValidationError as e:
        logger.warning("user_record_invalid", errors=e.error_count())
        return None


class TenantAssignmentInput(BaseSchema):
    """Tenant entry as submitted by clients."""

    tenant: TenantId
    roles: list[Role] = Field(default_factory=lambda: [Role.TENANT_USER])

    @field_validator("tenant", mode="before")
    @classmethod
    def validate_tenant(cls, v: Any) -> TenantId:
        tenant_id = normalize_tenant_id(v)
        if tenant_id is None:
            raise ValueError("tenant must be an id")
        return tenant_id

    @field_validator("roles")
    @classmethod
    def only_tenant_roles(cls, v: list[Role]) -> list[Role]:
        if any(role.value not in TENANT_ROLES for role in v):
            raise ValueError("Only tenant roles can be assigned inside a tenant entry")
        return v


class UserBase(BaseSchema):
    """Base user schema."""

    email: EmailStr = Field(..., description="User email address")
    name: str | None = Field(None, max_length=255, description="Display name")


class UserCreate(UserBase):
    """Schema for creating a user."""

    password: str = Field(..., min_length=8, max_length=100, description="User password")
    roles: Role | None = Field(None, description="Top-level role, empty for tenant users")
    tenants: list[TenantAssignmentInput] | None = None
    guest_writer_post_limit: int | None = Field(None, ge=0)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """
        Validate password strength.

        Requirements:
        - At least 8 characters
        - Contains uppercase and lowercase
        - Contains at least one digit
        """
        if not any(char.isupper() for char in v):
            raise ValueError('Password must contain at least one uppercase letter')
        if not any(char.islower() for char in v):
            raise ValueError('Password must contain at least one lowercase letter')
        if not any(char.isdigit() for char in v):
            raise ValueError('Password must contain at least one digit')
        return v

    @field_validator("roles")
    @classmethod
    def only_top_level_roles(cls, v: Role | None) -> Role | None:
        if v is not None and v.value not in TOP_LEVEL_ROLES:
            raise ValueError("Tenant roles belong inside a tenant entry")
        return v


class UserUpdate(BaseSchema):
    """Schema for updating a user (all optional)."""

    email: EmailStr | None = None
    name: str | None = Field(None, max_length=255)
    password: str | None = Field(None, min_length=8, max_length=100)
    roles: Role | None = None
    tenants: list[TenantAssignmentInput] | None = None
    guest_writer_post_limit: int | None = Field(None, ge=0)

    @field_validator("roles")
    @classmethod
    def only_top_level_roles(cls, v: Role | None) -> Role | None:
        if v is not None and v.value not in TOP_LEVEL_ROLES:
            raise ValueError("Tenant roles belong inside a tenant entry")
        return v


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: int
    email: str
    name: str | None = None
    roles: str | None = None
    tenants: list[TenantAssignment] = Field(default_factory=list)
    guest_writer_post_limit: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
