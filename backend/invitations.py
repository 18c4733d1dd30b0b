"""
Invitation API Endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

import invitation_service
from auth import get_current_active_user
from database import get_db
from email_service import EmailService, get_email_service
from models import User
from schemas import ServiceResponse, InvitationCreate, InvitationCodeRequest, InvitationResponse

router = APIRouter(prefix="/api/invitations", tags=["invitations"])


@router.post("", response_model=ServiceResponse[InvitationResponse], status_code=status.HTTP_201_CREATED)
async def send_invitation(
    data: InvitationCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Owner only. Emails a single-use code to the invitee."""
    invitation = await invitation_service.send_invitation(db, current_user, data, email_service)
    return ServiceResponse[InvitationResponse](message="Invitation sent successfully", data=invitation)


@router.post("/accept", response_model=ServiceResponse[InvitationResponse])
async def accept_invitation(
    data: InvitationCodeRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    invitation = await invitation_service.accept_invitation(db, current_user, data.code)
    return ServiceResponse[InvitationResponse](message="Invitation accepted", data=invitation)


@router.post("/reject", response_model=ServiceResponse[InvitationResponse])
async def reject_invitation(
    data: InvitationCodeRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    invitation = await invitation_service.reject_invitation(db, current_user, data.code)
    return ServiceResponse[InvitationResponse](message="Invitation rejected", data=invitation)


@router.post("/{invitation_id}/cancel", response_model=ServiceResponse[InvitationResponse])
async def cancel_invitation(
    invitation_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    invitation = await invitation_service.cancel_invitation(db, current_user, invitation_id)
    return ServiceResponse[InvitationResponse](message="Invitation cancelled", data=invitation)


@router.get("/my", response_model=ServiceResponse[List[InvitationResponse]])
async def get_my_invitations(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    invitations = await invitation_service.get_my_invitations(db, current_user)
    return ServiceResponse[List[InvitationResponse]](message="Invitations retrieved", data=invitations)


@router.get("/business/{business_id}", response_model=ServiceResponse[List[InvitationResponse]])
async def get_business_invitations(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    invitations = await invitation_service.get_business_invitations(db, current_user, business_id)
    return ServiceResponse[List[InvitationResponse]](message="Invitations retrieved", data=invitations)
