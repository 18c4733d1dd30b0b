"""
Soft-delete cascade for the business hierarchy.

Deactivation always flows downwards:
    user -> owned businesses -> locations -> memberships -> documents/leaves

Nothing here commits; the caller owns the transaction.
"""
import logging
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import User, Business, BusinessMember, MemberDocument, MemberLeave

logger = logging.getLogger(__name__)


async def deactivate_memberships(db: AsyncSession, member_ids: Iterable[int]) -> int:
    """Deactivate memberships together with their documents and leave requests"""
    member_ids = list(member_ids)
    if not member_ids:
        return 0

    await db.execute(
        update(MemberDocument)
        .where(MemberDocument.member_id.in_(member_ids), MemberDocument.is_active == True)
        .values(is_active=False)
    )
    await db.execute(
        update(MemberLeave)
        .where(MemberLeave.member_id.in_(member_ids), MemberLeave.is_active == True)
        .values(is_active=False)
    )
    await db.execute(
        update(BusinessMember)
        .where(BusinessMember.id.in_(member_ids), BusinessMember.is_active == True)
        .values(is_active=False)
    )
    return len(member_ids)


async def collect_business_tree(db: AsyncSession, business_ids: Iterable[int]) -> List[int]:
    """Return the given businesses plus every active location beneath them"""
    collected = list(dict.fromkeys(business_ids))
    frontier = list(collected)
    while frontier:
        result = await db.execute(
            select(Business.id).where(
                Business.parent_business_id.in_(frontier),
                Business.is_active == True
            )
        )
        frontier = [business_id for business_id in result.scalars().all() if business_id not in collected]
        collected.extend(frontier)
    return collected


async def deactivate_businesses(db: AsyncSession, business_ids: Iterable[int]) -> List[int]:
    """Deactivate businesses, their locations and every membership inside them"""
    tree = await collect_business_tree(db, business_ids)
    if not tree:
        return []

    result = await db.execute(
        select(BusinessMember.id).where(
            BusinessMember.business_id.in_(tree),
            BusinessMember.is_active == True
        )
    )
    await deactivate_memberships(db, result.scalars().all())

    await db.execute(
        update(Business)
        .where(Business.id.in_(tree), Business.is_active == True)
        .values(is_active=False)
    )
    logger.info(f"Deactivated businesses {tree}")
    return tree


async def deactivate_user(db: AsyncSession, user: User) -> None:
    """Deactivate a user, every business they own and all of their memberships"""
    result = await db.execute(
        select(Business.id).where(Business.owner_id == user.id, Business.is_active == True)
    )
    await deactivate_businesses(db, result.scalars().all())

    result = await db.execute(
        select(BusinessMember.id).where(
            BusinessMember.user_id == user.id,
            BusinessMember.is_active == True
        )
    )
    await deactivate_memberships(db, result.scalars().all())

    user.is_active = False
    logger.info(f"Deactivated user {user.id}")
