"""
Authentication endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcms.access.resolver import is_top_level_mode, resolve_tenant
from tenantcms.collections import Collection
from tenantcms.config import settings
from tenantcms.core.database import get_db
from tenantcms.core.exceptions import AuthenticationError
from tenantcms.features.auth.dependencies import AccessContext, CurrentUser, request_host
from tenantcms.features.auth.schemas import LoginRequest, MeResponse, TokenResponse
from tenantcms.features.auth.service import auth_service
from tenantcms.schemas.common import MessageResponse
from tenantcms.schemas.user import AuthUser, UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _login(
    request: Request,
    response: Response,
    db: AsyncSession,
    user: AuthUser | None,
) -> TokenResponse:
    if not user:
        raise AuthenticationError("Incorrect email or password")

    # Select the tenant whose domain the user logged in on
    tenant_id = await auth_service.tenant_for_host(db, request_host(request))
    if tenant_id is not None and auth_service.can_select_tenant(user, tenant_id):
        response.set_cookie(
            settings.tenant_cookie_name,
            str(tenant_id),
            max_age=settings.tenant_cookie_max_age,
            path="/",
            samesite="lax",
        )
        logger.info(f"Tenant {tenant_id} selected from host for user {user.id}")
    else:
        tenant_id = None

    return auth_service.generate_token(user, tenant_id)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    OAuth2 compatible token login.

    Uses OAuth2PasswordRequestForm (username/password from form data).
    We treat 'username' as email.
    """
    user = await auth_service.authenticate_user(
        db,
        email=form_data.username,  # OAuth2 standard uses 'username'
        password=form_data.password,
    )
    return await _login(request, response, db, user)


@router.post("/login/json", response_model=TokenResponse)
async def login_json(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Login with JSON body (alternative to form data).

    When the request host matches a tenant domain the user may act for,
    the tenant cookie is set so the session starts inside that tenant.
    """
    user = await auth_service.authenticate_user(
        db,
        email=login_data.email,
        password=login_data.password,
    )
    return await _login(request, response, db, user)


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    current_user: CurrentUser,
    ctx: AccessContext,
) -> MeResponse:
    """Current user and the tenant the request resolves to."""
    return MeResponse(
        user=UserRead.model_validate(await ctx.store.find_by_id(Collection.USERS.value, current_user.id)),
        tenant=resolve_tenant(ctx),
        top_level_mode=is_top_level_mode(ctx),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_user: CurrentUser,
) -> MessageResponse:
    """
    Logout endpoint.

    Tokens are dropped client-side; the tenant selection cookies are cleared.
    """
    response.delete_cookie(settings.tenant_cookie_name, path="/")
    response.delete_cookie(settings.top_level_cookie_name, path="/")
    logger.info(f"User logged out: {current_user.email}")
    return MessageResponse(message="Successfully logged out")
