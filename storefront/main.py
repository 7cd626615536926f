"""
FastAPI Application Entry Point

Multi-tenant pickup storefront. Each request is bound to a business
(tenant) resolved from the query string, cookie, host or path.

Endpoints:
    - /api/...: Customer storefront (menu, slots, orders)
    - /api/admin/...: Member and super-admin management
    - POST /api/stripe/webhook: Payment reconciliation
    - GET /api/whoami: Identity behind the access token
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings, setup_logging
from storefront.database import engine, get_db, init_db
from storefront.dependencies import get_authorizer, get_identity
from storefront.routes import admin, payments, public
from storefront.schemas import HealthResponse, WhoAmIResponse
from storefront.services.identity import Identity
from storefront.services.payment import get_payment_service
from storefront.services.tenancy import (
    TENANT_COOKIE,
    persist_tenant_cookie,
    resolve_tenant_slug,
    tenant_sources_from_request,
)

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Timezone: {settings.business_timezone}")
    logger.info("=" * 60)

    await init_db()

    payment_service = get_payment_service()
    logger.info(f"Payment Service: {payment_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await get_authorizer().drain()
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant pickup ordering storefront with per-business admin.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Service endpoints that never belong to a storefront
UNTENANTED_PATHS = frozenset({
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
})


@app.middleware("http")
async def tenant_middleware(request: Request, call_next):
    """Resolve the tenant once per request and remember it in a cookie."""
    if request.url.path in UNTENANTED_PATHS:
        request.state.tenant_slug = ""
        return await call_next(request)

    slug = resolve_tenant_slug(tenant_sources_from_request(request))
    request.state.tenant_slug = slug

    response = await call_next(request)

    if slug and request.cookies.get(TENANT_COOKIE) != slug:
        persist_tenant_cookie(response, slug)
    return response


app.include_router(public.router)
app.include_router(admin.router)
app.include_router(payments.router)


# =============================================================================
# HEALTH & IDENTITY
# =============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify the database and payment provider are reachable."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    payment_service = get_payment_service()
    payment_status = "healthy" if await payment_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, payment_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        payment_service=payment_status,
        timestamp=datetime.now(),
    )


@app.get("/api/whoami", response_model=WhoAmIResponse, tags=["Health"])
async def whoami(identity: Optional[Identity] = Depends(get_identity)) -> WhoAmIResponse:
    if identity is None:
        return WhoAmIResponse(ok=False)
    return WhoAmIResponse(ok=True, user_id=identity.user_id, email=identity.email)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
