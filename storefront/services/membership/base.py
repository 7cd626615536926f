"""
Membership Store Abstract Base Class

Defines the capability the access authorizer needs from whatever store
records which users may administer which business. Both the SQL store and
the in-memory store implement it, so the authorization decision can be
tested without a database.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MembershipRecord:
    """
    Association between a user and a business.

    Attributes:
        business_id: Business identifier
        user_id: Auth-provider user id
        role: owner, manager or staff
        email: Email cached at invitation time
        last_access_at: Last successful admin access
    """
    business_id: str
    user_id: str
    role: str = "staff"
    email: Optional[str] = None
    last_access_at: Optional[datetime] = None


class BaseMembershipStore(ABC):
    """Abstract base class for membership stores."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name (e.g. "sql", "memory")."""
        pass

    @abstractmethod
    async def get_business_id(self, slug: str) -> Optional[str]:
        """Resolve a tenant slug to a business id, or None when unknown."""
        pass

    @abstractmethod
    async def get_membership(
        self,
        business_id: str,
        user_id: str,
    ) -> Optional[MembershipRecord]:
        """Return the membership linking user and business, if any."""
        pass

    @abstractmethod
    async def touch_last_access(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        """Record the time of the member's latest admin access."""
        pass

    @abstractmethod
    async def append_access_log(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        """Append an entry to the business's access log."""
        pass
