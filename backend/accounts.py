"""
Account API Endpoints
Handles registration, login, profile and password management
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

import account_service
from auth import get_current_active_user
from database import get_db
from email_service import EmailService, get_email_service
from models import User
from schemas import (
    ServiceResponse, RegisterRequest, LoginRequest, Token, ProfileResponse, ProfileUpdate,
    ChangePasswordRequest, ForgotPasswordRequest, VerifyResetCodeRequest, ResetPasswordRequest
)

router = APIRouter(prefix="/api/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset code has been sent."


@router.post("/register", response_model=ServiceResponse[Token], status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT: Create an account and sign in"""
    token = await account_service.register(db, data)
    return ServiceResponse[Token](message="Registration successful", data=token)


@router.post("/login", response_model=ServiceResponse[Token])
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT"""
    token = await account_service.login(db, data)
    return ServiceResponse[Token](message="Login successful", data=token)


@router.get("/profile", response_model=ServiceResponse[ProfileResponse])
async def get_profile(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    profile = await account_service.get_profile(db, current_user)
    return ServiceResponse[ProfileResponse](message="Profile retrieved", data=profile)


@router.put("/profile", response_model=ServiceResponse[ProfileResponse])
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    profile = await account_service.update_profile(db, current_user, data)
    return ServiceResponse[ProfileResponse](message="Profile updated", data=profile)


@router.post("/change-password", response_model=ServiceResponse[None])
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await account_service.change_password(db, current_user, data)
    return ServiceResponse[None](message="Password changed successfully")


@router.post("/logout", response_model=ServiceResponse[None])
async def logout(current_user: User = Depends(get_current_active_user)):
    """Tokens are stateless; the client discards its copy"""
    return ServiceResponse[None](message="Logged out successfully")


@router.delete("/account", response_model=ServiceResponse[None])
async def delete_account(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await account_service.delete_account(db, current_user)
    return ServiceResponse[None](message="Account deleted")


@router.post("/forgot-password", response_model=ServiceResponse[None])
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """
    PUBLIC ENDPOINT: Request a password reset code.
    Always answers the same way so account existence is not revealed.
    """
    await account_service.forgot_password(db, data.email, email_service)
    return ServiceResponse[None](message=FORGOT_PASSWORD_MESSAGE)


@router.post("/verify-reset-code", response_model=ServiceResponse[None])
async def verify_reset_code(data: VerifyResetCodeRequest, db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT"""
    await account_service.verify_reset_code(db, data.email, data.code)
    return ServiceResponse[None](message="Reset code is valid")


@router.post("/reset-password", response_model=ServiceResponse[None])
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT: Set a new password using the emailed code"""
    await account_service.reset_password(db, data)
    return ServiceResponse[None](
        message="Password has been successfully reset. You can now log in with your new password."
    )
