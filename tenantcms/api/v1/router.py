"""
API v1 router aggregator.

All v1 routes are registered here.
Order matters: the generic ``/{collection}`` routes come last so they
do not shadow the fixed prefixes.
"""

from fastapi import APIRouter

from tenantcms.features.auth.router import router as auth_router
from tenantcms.features.collections.router import router as collections_router
from tenantcms.features.public.router import router as public_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Register all feature routers
v1_router.include_router(auth_router)
v1_router.include_router(public_router)
v1_router.include_router(collections_router)
