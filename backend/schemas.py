from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Generic, TypeVar
from datetime import datetime, date
from models import MemberRole, InvitationStatus, LeaveStatus

T = TypeVar("T")


# Response envelope shared by every endpoint
class ServiceResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str = ""
    data: Optional[T] = None
    errors: List[str] = []


# User / Auth Schemas
class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone_number: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileResponse(UserResponse):
    """User profile with a summary of the user's businesses"""
    business_count: int = 0
    owned_business_count: int = 0


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, description="New password (minimum 6 characters)")
    confirm_password: str = Field(..., min_length=6, description="Confirm new password")

    def passwords_match(self) -> bool:
        return self.new_password == self.confirm_password


class ForgotPasswordRequest(BaseModel):
    """Request schema for forgot password"""
    email: EmailStr = Field(..., description="Email address of the account")


class VerifyResetCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code from email")


class ResetPasswordRequest(BaseModel):
    """Request schema for resetting password"""
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code from email")
    new_password: str = Field(..., min_length=6, description="New password (minimum 6 characters)")
    confirm_password: str = Field(..., min_length=6, description="Confirm new password")

    def passwords_match(self) -> bool:
        """Validate that passwords match"""
        return self.new_password == self.confirm_password


class CreateOwnerRequest(BaseModel):
    """Admin-side account creation for a business owner"""
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)


class CreateOwnerResponse(BaseModel):
    user: UserResponse
    email_sent: bool


# Location Schemas
class ProvinceResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class DistrictResponse(BaseModel):
    id: int
    name: str
    province_id: int

    class Config:
        from_attributes = True


class SeedResult(BaseModel):
    province_count: int
    district_count: int


# Business Schemas
class BusinessCreate(BaseModel):
    """Create a root business, or a location when parent_business_id is set"""
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, min_length=10, max_length=500)
    phone_number: Optional[str] = Field(None, max_length=20)
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    location_name: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    parent_business_id: Optional[int] = None


class SubBusinessCreate(BaseModel):
    """Location under a root business; contact details come from the parent"""
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    location_name: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class BusinessUpdate(BaseModel):
    """Partial update - only fields present in the request are changed"""
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, min_length=10, max_length=500)
    phone_number: Optional[str] = Field(None, max_length=20)
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    location_name: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class BusinessResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    address: str
    phone_number: str
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    province_id: int
    province_name: Optional[str] = None
    district_id: int
    district_name: Optional[str] = None
    owner_id: int
    role: Optional[MemberRole] = None  # Caller's effective role
    member_count: int = 0
    parent_business_id: Optional[int] = None
    parent_business_name: Optional[str] = None
    is_sub_business: bool = False
    sub_business_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


# Member Schemas
class DocumentResponse(BaseModel):
    id: int
    member_id: int
    document_type: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    uploaded_at: datetime


class MemberResponse(BaseModel):
    id: int
    user_id: int
    business_id: int
    full_name: str
    email: str
    phone_number: Optional[str] = None
    role: MemberRole
    position: Optional[str] = None
    salary: Optional[float] = None
    national_id: Optional[str] = None
    joined_at: datetime
    is_active: bool
    documents: List[DocumentResponse] = []


class MemberUpdate(BaseModel):
    role: Optional[MemberRole] = None
    position: Optional[str] = Field(None, max_length=100)
    salary: Optional[float] = Field(None, ge=0)
    national_id: Optional[str] = None


# Invitation Schemas
class InvitationCreate(BaseModel):
    business_id: int
    email: EmailStr
    message: Optional[str] = Field(None, max_length=500)


class InvitationCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=16)


class InvitationResponse(BaseModel):
    id: int
    business_id: int
    business_name: Optional[str] = None
    email: str
    code: str
    status: InvitationStatus
    message: Optional[str] = None
    invited_by_user_id: int
    invited_by_name: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None


# Leave Schemas
class LeaveCreate(BaseModel):
    business_id: int
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_date: date
    end_date: date


class LeaveStatusUpdate(BaseModel):
    status: LeaveStatus
    rejection_reason: Optional[str] = Field(None, max_length=1000)


class LeaveResponse(BaseModel):
    id: int
    member_id: int
    business_id: int
    member_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    day_count: int
    status: LeaveStatus
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
