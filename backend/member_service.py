"""
Business members: listing, role/position/salary updates and removal.
"""
import logging
import re
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth import get_active_business, require_member, require_owner
from errors import AuthorizationError, NotFoundError, ValidationError
from hierarchy import deactivate_memberships
from models import User, BusinessMember, MemberDocument
from schemas import MemberResponse, MemberUpdate, DocumentResponse

logger = logging.getLogger(__name__)

NATIONAL_ID_PATTERN = re.compile(r"^\d{11}$")


def document_url(business_id: int, document: MemberDocument) -> str:
    return f"/api/business/{business_id}/members/{document.member_id}/documents/{document.id}/download"


def build_document_response(business_id: int, document: MemberDocument) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        member_id=document.member_id,
        document_type=document.document_type,
        file_name=document.file_name,
        file_url=document_url(business_id, document),
        file_size=document.file_size,
        uploaded_at=document.uploaded_at
    )


def build_member_response(member: BusinessMember) -> MemberResponse:
    """Requires member.user and member.documents to be loaded"""
    documents = sorted(
        (document for document in member.documents if document.is_active),
        key=lambda document: document.uploaded_at
    )
    return MemberResponse(
        id=member.id,
        user_id=member.user_id,
        business_id=member.business_id,
        full_name=member.user.full_name,
        email=member.user.email,
        phone_number=member.user.phone_number,
        role=member.role,
        position=member.position,
        salary=float(member.salary) if member.salary is not None else None,
        national_id=member.national_id,
        joined_at=member.joined_at,
        is_active=member.is_active,
        documents=[build_document_response(member.business_id, document) for document in documents]
    )


async def get_business_member(db: AsyncSession, business_id: int, member_id: int) -> BusinessMember:
    """Active membership of the business, with user and documents loaded"""
    result = await db.execute(
        select(BusinessMember)
        .options(selectinload(BusinessMember.user), selectinload(BusinessMember.documents))
        .where(
            BusinessMember.id == member_id,
            BusinessMember.business_id == business_id,
            BusinessMember.is_active == True
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFoundError("Member not found")
    return member


async def get_members(db: AsyncSession, user: User, business_id: int) -> List[MemberResponse]:
    business = await get_active_business(db, business_id)
    await require_member(db, user, business)

    result = await db.execute(
        select(BusinessMember)
        .options(selectinload(BusinessMember.user), selectinload(BusinessMember.documents))
        .where(BusinessMember.business_id == business.id, BusinessMember.is_active == True)
        .order_by(BusinessMember.joined_at, BusinessMember.id)
    )
    return [build_member_response(member) for member in result.scalars().all()]


async def get_member(db: AsyncSession, user: User, business_id: int, member_id: int) -> MemberResponse:
    business = await get_active_business(db, business_id)
    await require_member(db, user, business)

    member = await get_business_member(db, business.id, member_id)
    return build_member_response(member)


async def update_member(
    db: AsyncSession,
    user: User,
    business_id: int,
    member_id: int,
    data: MemberUpdate
) -> MemberResponse:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)
    member = await get_business_member(db, business.id, member_id)

    update_data = data.model_dump(exclude_unset=True)

    if "role" in update_data:
        if update_data["role"] is None:
            raise ValidationError("Role cannot be empty")
        if member.user_id == user.id and update_data["role"] != member.role:
            raise AuthorizationError("You cannot change your own role")

    if "national_id" in update_data and update_data["national_id"] is not None:
        national_id = update_data["national_id"].strip()
        if not NATIONAL_ID_PATTERN.match(national_id):
            raise ValidationError("National ID must be exactly 11 digits")
        update_data["national_id"] = national_id

    for field, value in update_data.items():
        setattr(member, field, value)

    await db.commit()

    member = await get_business_member(db, business.id, member_id)
    return build_member_response(member)


async def remove_member(db: AsyncSession, user: User, business_id: int, member_id: int) -> None:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)
    member = await get_business_member(db, business.id, member_id)

    if member.user_id == user.id:
        raise ValidationError("You cannot remove yourself from the business")

    await deactivate_memberships(db, [member.id])
    await db.commit()
    logger.info(f"Member {member.id} removed from business {business.id} by user {user.id}")
