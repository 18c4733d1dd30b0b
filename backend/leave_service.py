"""
Leave requests of business members.

Requests start pending. The owner may move them to any status; a
requester may withdraw their own request only while it is pending.
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_active_business, get_membership, is_owner, require_owner
from errors import AuthorizationError, NotFoundError, ValidationError
from models import User, BusinessMember, MemberLeave, LeaveStatus
from schemas import LeaveCreate, LeaveStatusUpdate, LeaveResponse

logger = logging.getLogger(__name__)


def build_leave_response(leave: MemberLeave, business_id: int, member_name: str = None) -> LeaveResponse:
    return LeaveResponse(
        id=leave.id,
        member_id=leave.member_id,
        business_id=business_id,
        member_name=member_name,
        title=leave.title,
        description=leave.description,
        start_date=leave.start_date,
        end_date=leave.end_date,
        day_count=leave.day_count,
        status=leave.status,
        rejection_reason=leave.rejection_reason,
        created_at=leave.created_at,
        updated_at=leave.updated_at
    )


async def create_leave_request(db: AsyncSession, user: User, data: LeaveCreate) -> LeaveResponse:
    if not data.title.strip():
        raise ValidationError("Title cannot be empty")
    if data.start_date > data.end_date:
        raise ValidationError("Start date cannot be after end date")

    business = await get_active_business(db, data.business_id)
    membership = await get_membership(db, user.id, business.id)
    if not membership:
        raise AuthorizationError("You are not a member of this business")

    leave = MemberLeave(
        member_id=membership.id,
        title=data.title.strip(),
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        status=LeaveStatus.PENDING,
        is_active=True
    )
    db.add(leave)
    await db.commit()
    await db.refresh(leave)

    logger.info(f"Leave request {leave.id} created by member {membership.id}")
    return build_leave_response(leave, business.id, user.full_name)


async def get_my_leaves(db: AsyncSession, user: User, business_id: int) -> List[LeaveResponse]:
    business = await get_active_business(db, business_id)
    membership = await get_membership(db, user.id, business.id)
    if not membership:
        raise AuthorizationError("You are not a member of this business")

    result = await db.execute(
        select(MemberLeave)
        .where(MemberLeave.member_id == membership.id, MemberLeave.is_active == True)
        .order_by(MemberLeave.created_at.desc(), MemberLeave.id.desc())
    )
    return [build_leave_response(leave, business.id, user.full_name) for leave in result.scalars().all()]


async def get_business_leaves(db: AsyncSession, user: User, business_id: int) -> List[LeaveResponse]:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)

    result = await db.execute(
        select(MemberLeave, User)
        .join(BusinessMember, BusinessMember.id == MemberLeave.member_id)
        .join(User, User.id == BusinessMember.user_id)
        .where(BusinessMember.business_id == business.id, MemberLeave.is_active == True)
        .order_by(MemberLeave.created_at.desc(), MemberLeave.id.desc())
    )
    return [
        build_leave_response(leave, business.id, requester.full_name)
        for leave, requester in result.all()
    ]


async def _get_leave_with_membership(db: AsyncSession, leave_id: int):
    result = await db.execute(
        select(MemberLeave, BusinessMember)
        .join(BusinessMember, BusinessMember.id == MemberLeave.member_id)
        .where(MemberLeave.id == leave_id, MemberLeave.is_active == True)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Leave request not found")
    return row


async def update_leave_status(
    db: AsyncSession,
    user: User,
    leave_id: int,
    data: LeaveStatusUpdate
) -> LeaveResponse:
    leave, membership = await _get_leave_with_membership(db, leave_id)
    business = await get_active_business(db, membership.business_id)
    await require_owner(db, user, business)

    leave.status = data.status
    # The reason only describes a rejection
    leave.rejection_reason = data.rejection_reason if data.status == LeaveStatus.REJECTED else None

    await db.commit()
    await db.refresh(leave)

    requester = await db.get(User, membership.user_id)
    logger.info(f"Leave request {leave.id} set to {leave.status.value} by user {user.id}")
    return build_leave_response(leave, business.id, requester.full_name if requester else None)


async def delete_leave(db: AsyncSession, user: User, leave_id: int) -> None:
    leave, membership = await _get_leave_with_membership(db, leave_id)
    business = await get_active_business(db, membership.business_id)

    if not await is_owner(db, user, business):
        if membership.user_id != user.id:
            raise AuthorizationError("You do not have access to this leave request")
        if leave.status != LeaveStatus.PENDING:
            raise AuthorizationError("Only pending leave requests can be withdrawn")

    await db.delete(leave)
    await db.commit()
    logger.info(f"Leave request {leave_id} deleted by user {user.id}")
