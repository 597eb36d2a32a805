"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenantcms.config import settings
from tenantcms.core.cache import cache_manager
from tenantcms.core.database import db_manager
from tenantcms.core.exceptions import CMSException
from tenantcms.core.logging_config import setup_logging
from tenantcms.core.metrics import app_info
from tenantcms.core.middleware import RequestContextMiddleware

# Setup logging first
setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db_manager.init()
    if settings.is_development:
        await db_manager.create_all()

    # The cache is optional: public tenant lookups fall through to the database
    try:
        await cache_manager.init()
    except Exception as e:
        logger.warning("cache_unavailable", error=str(e))
        await cache_manager.close()

    app_info.info({
        "version": settings.app_version,
        "environment": settings.environment,
    })

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    await cache_manager.close()
    logger.info("application_shutdown_complete")


def create_application(use_lifespan: bool = True) -> FastAPI:
    """
    Application factory.

    Args:
        use_lifespan: Tests pass False and manage the database themselves
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant headless CMS with tenant-scoped access control",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan if use_lifespan else None,
    )

    # Middleware (last added = outermost)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(CMSException)
    async def cms_exception_handler(request: Request, exc: CMSException) -> JSONResponse:
        logger.info(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            message=exc.message,
        )
        content: dict = {"detail": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        if settings.is_production:
            detail = "An internal error occurred. Please contact support."
        else:
            detail = str(exc)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": detail,
                "request_id": request_id,
            },
        )

    # Register routers
    from tenantcms.api.health_router import router as health_router
    from tenantcms.api.metrics_router import router as metrics_router
    from tenantcms.api.v1.router import v1_router

    app.include_router(health_router)
    if settings.metrics_enabled:
        app.include_router(metrics_router)
    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
        }

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tenantcms.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # Requests are logged by RequestContextMiddleware
    )
