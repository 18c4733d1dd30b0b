"""
Invitation workflow.

    pending --accept--> accepted   (creates an employee membership)
    pending --reject--> rejected   (by the invitee)
    pending --cancel--> cancelled  (by the business owner)

Expiry is never stored: a pending invitation past expires_at reads as
expired and cannot be redeemed.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from account_service import normalize_email, get_user_by_email
from auth import get_active_business, get_membership, require_owner
from config import settings
from email_service import EmailService
from errors import AuthorizationError, ConflictError, ExpiredOrInvalidTokenError, NotFoundError, ValidationError
from models import User, Business, BusinessMember, Invitation, InvitationStatus, MemberRole
from schemas import InvitationCreate, InvitationResponse

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


async def generate_invitation_code(db: AsyncSession) -> str:
    while True:
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(settings.INVITATION_CODE_LENGTH))
        result = await db.execute(select(Invitation.id).where(Invitation.code == code))
        if result.scalar_one_or_none() is None:
            return code


async def build_invitation_response(db: AsyncSession, invitation: Invitation) -> InvitationResponse:
    business = await db.get(Business, invitation.business_id)
    inviter = await db.get(User, invitation.invited_by_user_id)
    return InvitationResponse(
        id=invitation.id,
        business_id=invitation.business_id,
        business_name=business.name if business else None,
        email=invitation.email,
        code=invitation.code,
        status=invitation.effective_status,
        message=invitation.message,
        invited_by_user_id=invitation.invited_by_user_id,
        invited_by_name=inviter.full_name if inviter else None,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at
    )


async def send_invitation(
    db: AsyncSession,
    user: User,
    data: InvitationCreate,
    notifier: EmailService
) -> InvitationResponse:
    business = await get_active_business(db, data.business_id)
    await require_owner(db, user, business)

    email = normalize_email(data.email)
    now = datetime.utcnow()

    result = await db.execute(
        select(Invitation.id).where(
            Invitation.business_id == business.id,
            Invitation.email == email,
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at > now
        )
    )
    if result.first():
        raise ConflictError("A pending invitation already exists for this email")

    invitee = await get_user_by_email(db, email)
    if invitee and await get_membership(db, invitee.id, business.id):
        raise ConflictError("This user is already a member of the business")

    invitation = Invitation(
        business_id=business.id,
        email=email,
        code=await generate_invitation_code(db),
        invited_by_user_id=user.id,
        status=InvitationStatus.PENDING,
        message=data.message,
        created_at=now,
        expires_at=now + timedelta(days=settings.INVITATION_EXPIRE_DAYS)
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)
    logger.info(f"Invitation {invitation.id} sent for business {business.id}")

    # Delivery is best effort; the invitation stands either way
    sent = await notifier.send_invitation_email(
        to_email=email,
        business_name=business.name,
        invited_by=user.full_name,
        code=invitation.code,
        message=data.message
    )
    if not sent:
        logger.warning(f"Invitation email for invitation {invitation.id} could not be sent")

    return await build_invitation_response(db, invitation)


async def _get_invitation_by_code(db: AsyncSession, code: str) -> Invitation:
    result = await db.execute(
        select(Invitation).where(Invitation.code == code.strip().upper())
    )
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise NotFoundError("Invitation not found")
    return invitation


async def accept_invitation(db: AsyncSession, user: User, code: str) -> InvitationResponse:
    invitation = await _get_invitation_by_code(db, code)

    if normalize_email(invitation.email) != normalize_email(user.email):
        raise AuthorizationError("This invitation was sent to a different email address")

    if await get_membership(db, user.id, invitation.business_id):
        raise ConflictError("You are already a member of this business")

    if not invitation.is_valid():
        raise ExpiredOrInvalidTokenError("Invitation is expired or no longer valid")

    business = await get_active_business(db, invitation.business_id)
    now = datetime.utcnow()

    # A former member is re-activated instead of duplicated
    membership = await get_membership(db, user.id, business.id, active_only=False)
    if membership:
        membership.role = MemberRole.EMPLOYEE
        membership.is_active = True
        membership.joined_at = now
    else:
        db.add(BusinessMember(
            user_id=user.id,
            business_id=business.id,
            role=MemberRole.EMPLOYEE,
            is_active=True,
            joined_at=now
        ))

    invitation.status = InvitationStatus.ACCEPTED
    invitation.accepted_at = now
    await db.commit()
    await db.refresh(invitation)

    logger.info(f"Invitation {invitation.id} accepted by user {user.id}")
    return await build_invitation_response(db, invitation)


async def reject_invitation(db: AsyncSession, user: User, code: str) -> InvitationResponse:
    invitation = await _get_invitation_by_code(db, code)

    if normalize_email(invitation.email) != normalize_email(user.email):
        raise AuthorizationError("This invitation was sent to a different email address")

    if not invitation.is_valid():
        raise ExpiredOrInvalidTokenError("Invitation is expired or no longer valid")

    invitation.status = InvitationStatus.REJECTED
    await db.commit()
    await db.refresh(invitation)
    return await build_invitation_response(db, invitation)


async def cancel_invitation(db: AsyncSession, user: User, invitation_id: int) -> InvitationResponse:
    invitation = await db.get(Invitation, invitation_id)
    if not invitation:
        raise NotFoundError("Invitation not found")

    business = await get_active_business(db, invitation.business_id)
    await require_owner(db, user, business)

    if invitation.effective_status != InvitationStatus.PENDING:
        raise ValidationError("Only pending invitations can be cancelled")

    invitation.status = InvitationStatus.CANCELLED
    await db.commit()
    await db.refresh(invitation)

    logger.info(f"Invitation {invitation.id} cancelled by user {user.id}")
    return await build_invitation_response(db, invitation)


async def get_my_invitations(db: AsyncSession, user: User) -> List[InvitationResponse]:
    """Currently redeemable invitations addressed to the caller, newest first"""
    result = await db.execute(
        select(Invitation)
        .join(Business, Business.id == Invitation.business_id)
        .where(
            Invitation.email == normalize_email(user.email),
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at > datetime.utcnow(),
            Business.is_active == True
        )
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    return [await build_invitation_response(db, invitation) for invitation in result.scalars().all()]


async def get_business_invitations(db: AsyncSession, user: User, business_id: int) -> List[InvitationResponse]:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)

    result = await db.execute(
        select(Invitation)
        .where(Invitation.business_id == business.id)
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    return [await build_invitation_response(db, invitation) for invitation in result.scalars().all()]
