"""
User accounts: registration, login, profile and password management.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from auth import verify_password, get_password_hash, create_access_token
from config import settings
from email_service import EmailService
from errors import (
    ConflictError, ExpiredOrInvalidTokenError, InvalidCredentialsError, ValidationError
)
from hierarchy import deactivate_user
from models import User, Business, BusinessMember, PasswordResetToken
from schemas import (
    RegisterRequest, LoginRequest, Token, UserResponse, ProfileResponse, ProfileUpdate,
    ChangePasswordRequest, ResetPasswordRequest, CreateOwnerRequest, CreateOwnerResponse
)

logger = logging.getLogger(__name__)

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password_strength(password: str) -> None:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")


def _build_token(user: User) -> Token:
    access_token, expires_at = create_access_token(user)
    return Token(
        access_token=access_token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user)
    )


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def register(db: AsyncSession, data: RegisterRequest) -> Token:
    if await get_user_by_email(db, data.email):
        raise ConflictError("An account with this email already exists")
    _check_password_strength(data.password)

    user = User(
        email=normalize_email(data.email),
        hashed_password=get_password_hash(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        phone_number=data.phone_number,
        is_active=True,
        last_login_at=datetime.utcnow()
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return _build_token(user)


async def login(db: AsyncSession, data: LoginRequest) -> Token:
    user = await get_user_by_email(db, data.email)

    # Same error for unknown email, wrong password and deactivated account
    if not user or not verify_password(data.password, user.hashed_password) or not user.is_active:
        raise InvalidCredentialsError("Invalid email or password")

    user.last_login_at = datetime.utcnow()
    await db.commit()
    await db.refresh(user)

    return _build_token(user)


async def get_profile(db: AsyncSession, user: User) -> ProfileResponse:
    result = await db.execute(
        select(func.count(BusinessMember.id))
        .join(Business, Business.id == BusinessMember.business_id)
        .where(
            BusinessMember.user_id == user.id,
            BusinessMember.is_active == True,
            Business.is_active == True
        )
    )
    business_count = result.scalar() or 0

    result = await db.execute(
        select(func.count(Business.id)).where(
            Business.owner_id == user.id,
            Business.is_active == True,
            Business.parent_business_id.is_(None)
        )
    )
    owned_business_count = result.scalar() or 0

    profile = ProfileResponse.model_validate(user)
    profile.business_count = business_count
    profile.owned_business_count = owned_business_count
    return profile


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> ProfileResponse:
    update_data = data.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name"):
        if field in update_data:
            if not update_data[field] or not update_data[field].strip():
                raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be empty")
            update_data[field] = update_data[field].strip()

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return await get_profile(db, user)


async def change_password(db: AsyncSession, user: User, data: ChangePasswordRequest) -> None:
    if not verify_password(data.current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    if not data.passwords_match():
        raise ValidationError("Passwords do not match")
    _check_password_strength(data.new_password)

    user.hashed_password = get_password_hash(data.new_password)
    await db.commit()
    logger.info(f"Password changed for user {user.id}")


async def delete_account(db: AsyncSession, user: User) -> None:
    """Soft-delete the account and everything hanging off it in one transaction"""
    await deactivate_user(db, user)
    await db.commit()


async def _generate_reset_code(db: AsyncSession) -> str:
    while True:
        code = f"{secrets.randbelow(1_000_000):06d}"
        result = await db.execute(
            select(PasswordResetToken.id).where(PasswordResetToken.code == code)
        )
        if result.scalar_one_or_none() is None:
            return code


async def forgot_password(db: AsyncSession, email: str, notifier: EmailService) -> None:
    """Issue a reset code. Unknown emails are ignored silently."""
    user = await get_user_by_email(db, email)
    if not user or not user.is_active:
        return

    # Only the newest code is redeemable
    await db.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.user_id == user.id, PasswordResetToken.is_used == False)
        .values(is_used=True)
    )

    code = await _generate_reset_code(db)
    db.add(PasswordResetToken(
        user_id=user.id,
        code=code,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.RESET_CODE_EXPIRE_MINUTES)
    ))
    await db.commit()
    logger.info(f"Password reset requested for user {user.id}")

    sent = await notifier.send_password_reset_code(user.email, user.full_name, code)
    if not sent:
        logger.warning(f"Password reset email could not be sent to user {user.id}")


async def _find_valid_reset_token(db: AsyncSession, email: str, code: str) -> Tuple[User, PasswordResetToken]:
    invalid = ExpiredOrInvalidTokenError("Invalid or expired reset code")

    user = await get_user_by_email(db, email)
    if not user or not user.is_active:
        raise invalid

    result = await db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.code == code
        )
    )
    token = result.scalar_one_or_none()
    if not token or not token.is_valid():
        raise invalid
    return user, token


async def verify_reset_code(db: AsyncSession, email: str, code: str) -> None:
    await _find_valid_reset_token(db, email, code)


async def reset_password(db: AsyncSession, data: ResetPasswordRequest) -> None:
    if not data.passwords_match():
        raise ValidationError("Passwords do not match")
    _check_password_strength(data.new_password)

    user, token = await _find_valid_reset_token(db, data.email, data.code)

    user.hashed_password = get_password_hash(data.new_password)
    token.is_used = True
    token.used_at = datetime.utcnow()
    await db.commit()

    logger.info(f"Password successfully reset for user {user.id}")


def generate_temp_password(length: int = 8) -> str:
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))


async def create_owner(
    db: AsyncSession,
    data: CreateOwnerRequest,
    notifier: EmailService
) -> Tuple[CreateOwnerResponse, str]:
    """Create an account with a generated password and email it to the owner.

    Returns the response together with the temporary password so the caller
    can surface it when the email could not be delivered.
    """
    if await get_user_by_email(db, data.email):
        raise ConflictError("An account with this email already exists")

    temp_password = generate_temp_password()
    user = User(
        email=normalize_email(data.email),
        hashed_password=get_password_hash(temp_password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        phone_number=data.phone_number,
        is_active=True
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Created owner account {user.id}")

    email_sent = await notifier.send_account_created_email(user.email, user.full_name, temp_password)
    if not email_sent:
        logger.warning(f"Account email could not be sent to user {user.id}")

    return CreateOwnerResponse(user=UserResponse.model_validate(user), email_sent=email_sent), temp_password
