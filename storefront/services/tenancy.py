"""
Tenant resolution.

Every request belongs to at most one business ("tenant"), identified by a
slug. The slug is taken from the first source that yields a valid value:

    1. ``?tenant=`` query parameter
    2. ``x-tenant-slug`` cookie
    3. host subdomain (``pizza.pidelocal.es`` -> ``pizza``)
    4. first URL path segment, unless reserved (``/pizza/...``)

An empty string means no tenant; callers branch on it explicitly.
"""

import re
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

TENANT_QUERY_PARAM = "tenant"
TENANT_COOKIE = "x-tenant-slug"
TENANT_COOKIE_MAX_AGE = 60 * 60 * 24 * 30  # 30 days

SLUG_PATTERN = re.compile(r"^[a-z0-9\-_.]{1,120}$")

RESERVED_SEGMENTS = frozenset({
    "",
    "admin",
    "cart",
    "menu",
    "reservas",
    "login",
    "logout",
    "settings",
    "api",
})


@dataclass(frozen=True)
class TenantSources:
    """Raw request inputs that may carry a tenant slug."""
    query: Optional[str] = None
    cookie: Optional[str] = None
    host: Optional[str] = None
    path: Optional[str] = None


def normalize_slug(value: Optional[str]) -> str:
    """Trim and lowercase; return "" unless the result is a valid slug."""
    slug = (value or "").strip().lower()
    return slug if SLUG_PATTERN.match(slug) else ""


def slug_from_host(host: Optional[str]) -> str:
    """
    Subdomain candidate from a Host header.

    With three or more labels the first label is used, except ``www`` when
    there are four or more labels, where the second label is used. So
    ``www.pidelocal.es`` yields ``"www"``.
    """
    if not host:
        return ""
    hostname = host.split(":")[0].strip().lower()
    labels = hostname.split(".")
    if len(labels) < 3:
        return ""
    candidate = labels[1] if labels[0] == "www" and len(labels) >= 4 else labels[0]
    return normalize_slug(candidate)


def slug_from_path(path: Optional[str]) -> str:
    """First path segment, unless it names a reserved storefront route."""
    segments = [s for s in (path or "").split("/") if s]
    if not segments:
        return ""
    candidate = segments[0].lower()
    if candidate in RESERVED_SEGMENTS:
        return ""
    return normalize_slug(candidate)


def resolve_tenant_slug(sources: TenantSources) -> str:
    """Apply the precedence chain; first valid slug wins."""
    for slug in (
        normalize_slug(sources.query),
        normalize_slug(sources.cookie),
        slug_from_host(sources.host),
        slug_from_path(sources.path),
    ):
        if slug:
            return slug
    return ""


def tenant_sources_from_request(request: Request) -> TenantSources:
    return TenantSources(
        query=request.query_params.get(TENANT_QUERY_PARAM),
        cookie=request.cookies.get(TENANT_COOKIE),
        host=request.headers.get("host"),
        path=request.url.path,
    )


def persist_tenant_cookie(response: Response, slug: str) -> None:
    """Remember the resolved tenant for 30 days so later requests skip re-derivation."""
    if not slug:
        return
    response.set_cookie(
        TENANT_COOKIE,
        slug,
        max_age=TENANT_COOKIE_MAX_AGE,
        path="/",
        httponly=False,
        samesite="lax",
    )
