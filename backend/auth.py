from datetime import datetime, timedelta
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from config import settings
from database import get_db
from errors import AuthorizationError, NotFoundError
from models import User, Business, BusinessMember, MemberRole

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """Create a signed JWT for the user. Returns the token and its expiry."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.full_name,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt, expire


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get the current authenticated user"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        user_id = int(user_id)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Get the current active user. Deleted accounts keep no session."""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user


# =============================================================================
# BUSINESS MEMBERSHIP CHECKS
# =============================================================================

async def get_active_business(db: AsyncSession, business_id: int) -> Business:
    result = await db.execute(
        select(Business).where(Business.id == business_id, Business.is_active == True)
    )
    business = result.scalar_one_or_none()
    if not business:
        raise NotFoundError("Business not found")
    return business


async def get_membership(
    db: AsyncSession,
    user_id: int,
    business_id: int,
    active_only: bool = True
) -> Optional[BusinessMember]:
    query = select(BusinessMember).where(
        BusinessMember.user_id == user_id,
        BusinessMember.business_id == business_id
    )
    if active_only:
        query = query.where(BusinessMember.is_active == True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_role_in_business(db: AsyncSession, user: User, business: Business) -> Optional[MemberRole]:
    """Get user's role within a business (locations fall back to the parent membership)"""
    membership = await get_membership(db, user.id, business.id)
    if membership:
        return membership.role

    if business.parent_business_id:
        parent_membership = await get_membership(db, user.id, business.parent_business_id)
        if parent_membership:
            return parent_membership.role

    return None


async def is_owner(db: AsyncSession, user: User, business: Business) -> bool:
    membership = await get_membership(db, user.id, business.id)
    if membership and membership.role == MemberRole.OWNER:
        return True

    # The owner of the parent business administers every location under it
    if business.parent_business_id:
        parent_membership = await get_membership(db, user.id, business.parent_business_id)
        if parent_membership and parent_membership.role == MemberRole.OWNER:
            return True

    return False


async def require_member(db: AsyncSession, user: User, business: Business) -> MemberRole:
    role = await get_role_in_business(db, user, business)
    if role is None:
        raise AuthorizationError("You are not a member of this business")
    return role


async def require_owner(db: AsyncSession, user: User, business: Business) -> None:
    if not await is_owner(db, user, business):
        raise AuthorizationError("Only the business owner can perform this action")
