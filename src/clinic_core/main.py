"""FastAPI application factory."""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core import __version__
from clinic_core.api.router import api_router
from clinic_core.config import settings
from clinic_core.core.database import async_engine
from clinic_core.core.errors import register_exception_handlers
from clinic_core.core.jobs.registry import close_arq_pool, init_arq_pool
from clinic_core.core.logging import (
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
)
from clinic_core.core.observability import setup_tracing, shutdown_tracing
from clinic_core.core.tenancy.middleware import (
    BillingStatusMiddleware,
    TenantResolutionMiddleware,
)


configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the ARQ pool on startup; flush spans and close the pool on shutdown."""
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    # ARQ pool backs the readiness check; the API runs without it
    try:
        await init_arq_pool()
        logger.info("arq_pool_initialized")
    except (RedisError, OSError) as e:
        logger.warning("arq_pool_init_failed", error=str(e))

    yield

    logger.info("application_shutdown")

    shutdown_tracing()
    logger.info("tracing_shutdown")

    await close_arq_pool()
    logger.info("arq_pool_closed")


def create_app(
    session_factory: Callable[[], AsyncSession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Session factory used for tenant resolution.
            Defaults to the application's async session factory.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Tenancy, staff authentication and permissions for a multi-tenant clinic platform",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        # Disable docs in production
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    # Middleware added last runs first. Resulting order, outermost first:
    # CORS, request ID, request logging, tenant resolution, billing gate.
    app.add_middleware(BillingStatusMiddleware)
    app.add_middleware(TenantResolutionMiddleware, session_factory=session_factory)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Request-ID",
            settings.tenant_header_name,
        ],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(api_router)

    setup_tracing(app, async_engine)

    return app


app = create_app()
