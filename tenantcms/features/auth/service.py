"""
Authentication business logic.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcms.access.roles import is_top_level_user
from tenantcms.access.tenant_data import build_user_tenant_data
from tenantcms.collections import Collection
from tenantcms.config import settings
from tenantcms.core.security import create_access_token, verify_password
from tenantcms.features.auth.schemas import TokenResponse
from tenantcms.models.tenant import Tenant
from tenantcms.models.user import User
from tenantcms.schemas.user import AuthUser, parse_user
from tenantcms.store.sqlalchemy_store import SQLAlchemyStore

logger = logging.getLogger(__name__)


def normalize_host(host: str | None) -> str | None:
    """
    Reduce a Host header to a bare domain.

    ``www.Example.com:8443`` -> ``example.com``
    """
    if not host:
        return None
    domain = host.split(",")[0].strip().lower()
    domain = domain.split(":")[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain or None


class AuthService:
    """Authentication service with business logic."""

    @staticmethod
    async def authenticate_user(
        db: AsyncSession,
        email: str,
        password: str,
    ) -> AuthUser | None:
        """
        Authenticate user by email and password.

        Args:
            db: Database session
            email: User email
            password: Plain text password

        Returns:
            Validated user if authenticated, None otherwise
        """
        result = await db.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()

        if not user:
            logger.warning(f"Login attempt for non-existent user: {email}")
            return None

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {email}")
            return None

        raw = await SQLAlchemyStore(db).find_by_id(Collection.USERS.value, user.id)
        auth_user = parse_user(raw)
        if auth_user is None:
            logger.warning(f"Login attempt for invalid user record: {email}")
            return None

        logger.info(f"User authenticated successfully: {email}")
        return auth_user

    @staticmethod
    async def tenant_for_host(db: AsyncSession, host: str | None) -> int | None:
        """Live tenant whose domain matches the request host."""
        domain = normalize_host(host)
        if domain is None:
            return None

        result = await db.execute(
            select(Tenant.id).where(Tenant.domain == domain, Tenant.deleted_at.is_(None))
        )
        return result.scalars().first()

    @staticmethod
    def can_select_tenant(user: AuthUser, tenant_id: int) -> bool:
        """Top-level users may act for any tenant, others only for their own."""
        if is_top_level_user(user):
            return True
        return tenant_id in build_user_tenant_data(user).all_tenant_ids

    @staticmethod
    def generate_token(user: AuthUser, tenant_id: int | None = None) -> TokenResponse:
        """
        Generate an access token for a user.

        Args:
            user: Authenticated user
            tenant_id: Tenant selected for the session, if any

        Returns:
            Token response
        """
        return TokenResponse(
            access_token=create_access_token(subject=user.id),
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
            tenant=tenant_id,
        )


# Singleton instance
auth_service = AuthService()
