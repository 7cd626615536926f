"""
SQL Membership Store

Reads businesses and memberships through the application's async
SQLAlchemy session factory. Each call opens its own short session so the
store can be used outside a request (e.g. from a background task).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.models import Business, BusinessMember, MemberAccessLog
from storefront.services.membership.base import BaseMembershipStore, MembershipRecord

logger = logging.getLogger(__name__)


class SqlMembershipStore(BaseMembershipStore):
    """Membership store backed by the ``business_members`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @property
    def provider_name(self) -> str:
        return "sql"

    async def get_business_id(self, slug: str) -> Optional[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Business.id).where(Business.slug == slug)
            )
            return result.scalar_one_or_none()

    async def get_membership(
        self,
        business_id: str,
        user_id: str,
    ) -> Optional[MembershipRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BusinessMember).where(
                    BusinessMember.business_id == business_id,
                    BusinessMember.user_id == user_id,
                )
            )
            member = result.scalar_one_or_none()

        if member is None:
            return None
        return MembershipRecord(
            business_id=member.business_id,
            user_id=member.user_id,
            role=member.role.value,
            email=member.email,
            last_access_at=member.last_access_at,
        )

    async def touch_last_access(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(BusinessMember)
                .where(
                    BusinessMember.business_id == business_id,
                    BusinessMember.user_id == user_id,
                )
                .values(last_access_at=at)
            )
            await session.commit()

    async def append_access_log(
        self,
        business_id: str,
        user_id: str,
        at: datetime,
    ) -> None:
        async with self._session_factory() as session:
            session.add(MemberAccessLog(business_id=business_id, user_id=user_id, accessed_at=at))
            await session.commit()
