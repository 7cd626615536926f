"""
In-Memory Membership Store

Dictionary-backed store used by tests and local experiments. Mirrors the
SQL store's behavior without a database.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from storefront.services.membership.base import BaseMembershipStore, MembershipRecord

logger = logging.getLogger(__name__)


class InMemoryMembershipStore(BaseMembershipStore):
    """
    Membership store kept in plain dictionaries.

    Example:
        >>> store = InMemoryMembershipStore()
        >>> store.add_business("pizza", "biz-1")
        >>> store.add_member("biz-1", "user-1", role="owner")
    """

    def __init__(self):
        self.businesses: dict[str, str] = {}
        self.members: dict[tuple[str, str], MembershipRecord] = {}
        self.access_logs: list[tuple[str, str, datetime]] = []

    @property
    def provider_name(self) -> str:
        return "memory"

    def add_business(self, slug: str, business_id: str) -> None:
        self.businesses[slug] = business_id

    def add_member(
        self,
        business_id: str,
        user_id: str,
        role: str = "staff",
        email: Optional[str] = None,
    ) -> MembershipRecord:
        record = MembershipRecord(business_id, user_id, role=role, email=email)
        self.members[(business_id, user_id)] = record
        return record

    async def get_business_id(self, slug: str) -> Optional[str]:
        return self.businesses.get(slug)

    async def get_membership(
        self,
        business_id: str,
        user_id: str,
    ) -> Optional[MembershipRecord]:
        return self.members.get((business_id, user_id))

    async def touch_last_access(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        key = (business_id, user_id)
        if key in self.members:
            self.members[key] = replace(self.members[key], last_access_at=at)

    async def append_access_log(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        self.access_logs.append((business_id, user_id, at))
