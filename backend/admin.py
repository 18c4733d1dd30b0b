"""
Admin API Endpoints
Account provisioning for business owners
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

import account_service
from database import get_db
from email_service import EmailService, get_email_service
from schemas import ServiceResponse, CreateOwnerRequest, CreateOwnerResponse

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post(
    "/create-owner",
    response_model=ServiceResponse[CreateOwnerResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_owner(
    data: CreateOwnerRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """
    PUBLIC ENDPOINT: Create an owner account with a generated password.
    When the email cannot be delivered the password is returned in the message.
    """
    result, temp_password = await account_service.create_owner(db, data, email_service)

    if result.email_sent:
        message = f"Account created. Login details were sent to {result.user.email}."
    else:
        message = f"Account created but the email could not be sent. Temporary password: {temp_password}"

    return ServiceResponse[CreateOwnerResponse](message=message, data=result)
