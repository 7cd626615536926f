"""
Membership Store Factory

Usage:
    from storefront.services.membership import get_membership_store

    store = get_membership_store()
    business_id = await store.get_business_id("pizza")
"""

import logging
from functools import lru_cache

from storefront.services.membership.base import BaseMembershipStore, MembershipRecord
from storefront.services.membership.memory import InMemoryMembershipStore
from storefront.services.membership.sql import SqlMembershipStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_membership_store() -> BaseMembershipStore:
    """Get the membership store bound to the application database."""
    from storefront.database import async_session_maker

    logger.info("Membership Store: Using SqlMembershipStore")
    return SqlMembershipStore(async_session_maker)


def reset_membership_store() -> None:
    """Clear the cached store instance."""
    get_membership_store.cache_clear()


__all__ = [
    "get_membership_store",
    "reset_membership_store",
    "BaseMembershipStore",
    "MembershipRecord",
    "InMemoryMembershipStore",
    "SqlMembershipStore",
]
