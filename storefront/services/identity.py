"""
Authenticated identity.

Users sign in with the hosted auth provider, which issues HS256-signed
access tokens. We only verify those tokens; accounts are managed by the
provider.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from starlette.requests import Request

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"


@dataclass(frozen=True)
class Identity:
    """Verified user: provider user id and lowercased email."""
    user_id: str
    email: str


def decode_identity(
    token: str,
    secret: str,
    audience: Optional[str] = "authenticated",
) -> Optional[Identity]:
    """
    Verify an access token and extract the identity.

    Returns None for invalid, expired or incomplete tokens.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    email = (claims.get("email") or "").strip().lower()
    return Identity(user_id=str(claims["sub"]), email=email)


def token_from_request(request: Request) -> Optional[str]:
    """Read the bearer token from the Authorization header or session cookie."""
    header = request.headers.get("authorization") or ""
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None
