"""
Admin access authorization.

Decides whether an authenticated identity may use the admin panel of a
tenant:

    - super-admins (email in the configured allow-list) are always allowed
    - everyone else needs a resolved tenant and a membership record

Store lookups fail closed: an error or timeout counts as "not a member".
A granted member access is recorded (last-access timestamp + access log)
in a background task the request never waits on.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from storefront.services.identity import Identity
from storefront.services.membership.base import BaseMembershipStore, MembershipRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """
    Result of an authorization check.

    Attributes:
        allowed: Whether the identity may administer the tenant
        is_super_admin: Whether the identity is on the admin allow-list
        business_id: Resolved business, when a tenant lookup succeeded
        role: Membership role, when the identity is a member
    """
    allowed: bool
    is_super_admin: bool
    business_id: Optional[str] = None
    role: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "is_super_admin": self.is_super_admin,
            "business_id": self.business_id,
            "role": self.role,
        }


class AccessAuthorizer:
    """
    Authorize identities against a membership store.

    Example:
        >>> authorizer = AccessAuthorizer(store, {"root@pidelocal.es"})
        >>> decision = await authorizer.authorize(identity, "pizza")
        >>> decision.allowed
        True
    """

    def __init__(
        self,
        store: BaseMembershipStore,
        admin_emails: Iterable[str] = (),
        lookup_timeout: float = 3.0,
    ):
        self.store = store
        self.admin_emails = frozenset(e.lower() for e in admin_emails)
        self.lookup_timeout = lookup_timeout
        self._pending: set[asyncio.Task] = set()

    def is_super_admin(self, identity: Identity) -> bool:
        return bool(identity.email) and identity.email.lower() in self.admin_emails

    async def authorize(self, identity: Identity, tenant_slug: str) -> AccessDecision:
        super_admin = self.is_super_admin(identity)

        if not tenant_slug:
            # Regular staff must pick a tenant; super-admins may work tenant-less
            return AccessDecision(allowed=super_admin, is_super_admin=super_admin)

        business_id: Optional[str] = None
        membership: Optional[MembershipRecord] = None
        try:
            business_id = await self._lookup(self.store.get_business_id(tenant_slug))
            if business_id is not None:
                membership = await self._lookup(
                    self.store.get_membership(business_id, identity.user_id)
                )
        except Exception as e:
            logger.warning(
                f"Membership lookup failed for tenant '{tenant_slug}' "
                f"user {identity.user_id}: {e!r}; denying"
            )
            membership = None

        if membership is not None:
            self._record_access(business_id, identity.user_id)

        return AccessDecision(
            allowed=membership is not None or super_admin,
            is_super_admin=super_admin,
            business_id=business_id,
            role=membership.role if membership is not None else None,
        )

    async def _lookup(self, call):
        return await asyncio.wait_for(call, timeout=self.lookup_timeout)

    def _record_access(self, business_id: str, user_id: str) -> None:
        task = asyncio.create_task(self._write_access(business_id, user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_access(self, business_id: str, user_id: str) -> None:
        at = datetime.now(timezone.utc)
        try:
            await self.store.touch_last_access(business_id, user_id, at)
        except Exception as e:
            logger.warning(f"Could not update last access for {user_id}@{business_id}: {e!r}")
        try:
            await self.store.append_access_log(business_id, user_id, at)
        except Exception as e:
            logger.warning(f"Could not append access log for {user_id}@{business_id}: {e!r}")

    async def drain(self) -> None:
        """Wait for outstanding access-log writes."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
