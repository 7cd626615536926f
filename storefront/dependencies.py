"""
FastAPI dependencies shared by the storefront and admin routes.

    - tenant resolution (slug and Business row)
    - identity from the auth provider's access token
    - admin authorization through the AccessAuthorizer
    - per-tenant slot configuration
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings, get_admin_emails, get_settings
from storefront.database import get_db
from storefront.models import Business
from storefront.services.access import AccessAuthorizer, AccessDecision
from storefront.services.identity import Identity, decode_identity, token_from_request
from storefront.services.membership import get_membership_store
from storefront.services.scheduling import ScheduleError, SlotConfig, effective_schedule
from storefront.services.tenancy import resolve_tenant_slug, tenant_sources_from_request

logger = logging.getLogger(__name__)


# =============================================================================
# TENANT
# =============================================================================

def get_tenant_slug(request: Request) -> str:
    """Resolved tenant slug for this request ("" when none)."""
    slug = getattr(request.state, "tenant_slug", None)
    if slug is None:
        slug = resolve_tenant_slug(tenant_sources_from_request(request))
        request.state.tenant_slug = slug
    return slug


async def get_business_or_none(
    slug: str = Depends(get_tenant_slug),
    db: AsyncSession = Depends(get_db),
) -> Optional[Business]:
    if not slug:
        return None
    result = await db.execute(select(Business).where(Business.slug == slug))
    return result.scalar_one_or_none()


async def require_business(
    slug: str = Depends(get_tenant_slug),
    business: Optional[Business] = Depends(get_business_or_none),
) -> Business:
    """The request's tenant; 400 when unresolved, 404 when unknown."""
    if not slug:
        raise HTTPException(status_code=400, detail="Missing tenant")
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def business_timezone(business: Business, settings: Settings) -> ZoneInfo:
    if business.timezone:
        try:
            return ZoneInfo(business.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                f"Business '{business.slug}' has unknown timezone "
                f"'{business.timezone}', using {settings.business_timezone}"
            )
    return settings.timezone


def slot_config_for(business: Business, settings: Settings) -> SlotConfig:
    """
    Slot configuration for a business.

    Raises:
        HTTPException 500: When the stored schedule is malformed
    """
    try:
        schedule = effective_schedule(business.ordering_hours, business.opening_hours)
    except ScheduleError as e:
        logger.error(f"Business '{business.slug}' has an invalid schedule: {e}")
        raise HTTPException(status_code=500, detail="Business schedule is misconfigured")

    return SlotConfig(
        schedule=schedule,
        slot_minutes=settings.slot_minutes,
        prep_minutes=settings.prep_minutes,
        close_buffer_minutes=settings.close_buffer_minutes,
        tz=business_timezone(business, settings),
    )


# =============================================================================
# IDENTITY & ACCESS
# =============================================================================

def get_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Optional[Identity]:
    """Verified identity from the access token, or None."""
    token = token_from_request(request)
    if not token:
        return None
    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not configured; cannot verify access tokens")
        return None
    return decode_identity(token, settings.auth_jwt_secret, settings.auth_jwt_audience)


@lru_cache()
def get_authorizer() -> AccessAuthorizer:
    """Process-wide authorizer bound to the membership store."""
    settings = get_settings()
    return AccessAuthorizer(
        store=get_membership_store(),
        admin_emails=get_admin_emails(),
        lookup_timeout=settings.membership_lookup_timeout,
    )


@dataclass(frozen=True)
class AdminContext:
    identity: Identity
    tenant_slug: str
    decision: AccessDecision


async def require_admin_access(
    slug: str = Depends(get_tenant_slug),
    identity: Optional[Identity] = Depends(get_identity),
    authorizer: AccessAuthorizer = Depends(get_authorizer),
) -> AdminContext:
    """401 without a valid identity, 403 when the authorizer denies."""
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    decision = await authorizer.authorize(identity, slug)
    if not decision.allowed:
        logger.info(f"Admin access denied for {identity.email or identity.user_id} on '{slug}'")
        raise HTTPException(status_code=403, detail="Not allowed for this business")

    return AdminContext(identity=identity, tenant_slug=slug, decision=decision)


async def require_admin_business(
    admin: AdminContext = Depends(require_admin_access),
    business: Business = Depends(require_business),
) -> Business:
    """Admin access plus a concrete tenant (super-admins must pick one too)."""
    return business
