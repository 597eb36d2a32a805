"""
Pydantic schemas package.
"""

from tenantcms.schemas.common import (
    BaseSchema,
    MessageResponse,
    PaginatedResponse,
)
from tenantcms.schemas.content import CONTENT_SCHEMAS
from tenantcms.schemas.tenant import PublicTenantRead, TenantCreate, TenantRead, TenantUpdate
from tenantcms.schemas.user import AuthUser, TenantAssignment, UserCreate, UserRead, UserUpdate, parse_user

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "PaginatedResponse",
    # Content
    "CONTENT_SCHEMAS",
    # Tenant
    "TenantCreate",
    "TenantRead",
    "TenantUpdate",
    "PublicTenantRead",
    # User
    "AuthUser",
    "TenantAssignment",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "parse_user",
]
