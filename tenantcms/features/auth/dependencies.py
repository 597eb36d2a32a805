"""
Authentication dependencies for dependency injection.

Every route that touches collections depends on ``get_request_context``,
which validates the bearer token (if any) and builds the per-request
``RequestContext`` handed to the access layer.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcms.access.context import RequestContext
from tenantcms.access.resolver import resolve_tenant
from tenantcms.collections import Collection
from tenantcms.core.context import set_request_context
from tenantcms.core.database import get_db
from tenantcms.core.exceptions import unauthorized
from tenantcms.core.security import decode_token
from tenantcms.schemas.user import AuthUser, parse_user
from tenantcms.store.sqlalchemy_store import SQLAlchemyStore

logger = logging.getLogger(__name__)

# Security scheme; anonymous requests are allowed through
bearer_scheme = HTTPBearer(auto_error=False)


def request_host(request: Request) -> str | None:
    """Host the client asked for, preferring the proxy's forwarded host."""
    return request.headers.get("x-forwarded-host") or request.headers.get("host")


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthUser | None:
    """
    Validate the bearer token, if one was sent.

    Returns:
        The authenticated user, or None for anonymous requests

    Raises:
        HTTPException: 401 for a token that is invalid, expired, or whose
            user no longer exists
    """
    if not credentials:
        return None

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        raise unauthorized("Invalid token type. Use access token.")

    user_id = payload.get("sub")
    if not user_id:
        raise unauthorized("Invalid token payload")

    raw = await SQLAlchemyStore(db).find_by_id(Collection.USERS.value, user_id)
    if raw is None or raw.get("deleted_at") is not None:
        logger.warning(f"Token valid but user not found: {user_id}")
        raise unauthorized("User not found")

    user = parse_user(raw)
    if user is None:
        raise unauthorized("User record is invalid")
    return user


async def get_current_user(
    user: Annotated[AuthUser | None, Depends(get_optional_user)],
) -> AuthUser:
    """Require an authenticated user."""
    if user is None:
        raise unauthorized("Authentication required")
    return user


async def get_request_context(
    request: Request,
    user: Annotated[AuthUser | None, Depends(get_optional_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RequestContext:
    """
    Build the access context of one request.

    The context, and so its request-scoped cache, lives exactly as long as
    the request.
    """
    ctx = RequestContext(
        user=user,
        store=SQLAlchemyStore(db),
        cookies=request.headers.get("cookie", ""),
        host=request_host(request),
    )
    set_request_context(
        user_id=user.id if user else None,
        tenant_id=resolve_tenant(ctx),
    )
    return ctx


# Type aliases for cleaner code
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
AccessContext = Annotated[RequestContext, Depends(get_request_context)]
