"""
Authentication-specific schemas.
"""

from pydantic import EmailStr, Field

from tenantcms.schemas.common import BaseSchema
from tenantcms.schemas.user import UserRead


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., description="User password")


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")
    tenant: int | None = Field(None, description="Tenant selected from the request host")


class MeResponse(BaseSchema):
    """Current user with the tenant the request acts for."""

    user: UserRead
    tenant: int | str | None = None
    top_level_mode: bool = False
