from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Boolean, Text, Enum as SQLEnum, UniqueConstraint, Index, Date, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from database import Base


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    EMPLOYEE = "employee"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # Stored lower-cased
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    memberships = relationship("BusinessMember", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Province(Base):
    """Reference data seeded once from the geography API"""
    __tablename__ = "provinces"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False, index=True)

    districts = relationship("District", back_populates="province")


class District(Base):
    __tablename__ = "districts"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False)
    province_id = Column(Integer, ForeignKey("provinces.id", ondelete="CASCADE"), nullable=False, index=True)

    province = relationship("Province", back_populates="districts")


class Business(Base):
    """A root business or one of its locations (sub-businesses)"""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=False)
    phone_number = Column(String(20), nullable=False)
    province_id = Column(Integer, ForeignKey("provinces.id"), nullable=False)
    district_id = Column(Integer, ForeignKey("districts.id"), nullable=False)

    # Location this row describes (primary location for a root, the site itself for a sub)
    location_name = Column(String(200), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Two-level hierarchy: root (NULL) -> location
    parent_business_id = Column(Integer, ForeignKey("businesses.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("BusinessMember", back_populates="business")

    @property
    def is_sub_business(self) -> bool:
        return self.parent_business_id is not None


class BusinessMember(Base):
    """Membership of a user in one business, carrying the user's role there"""
    __tablename__ = "business_members"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    role = Column(SQLEnum(MemberRole), default=MemberRole.EMPLOYEE, nullable=False)
    position = Column(String(100), nullable=True)
    salary = Column(Numeric(12, 2), nullable=True)
    national_id = Column(String(11), nullable=True)  # TC identity number
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="memberships")
    business = relationship("Business", back_populates="members")
    documents = relationship("MemberDocument", back_populates="member")

    __table_args__ = (
        UniqueConstraint('user_id', 'business_id', name='uq_business_member'),
        Index('idx_business_members_business', 'business_id'),
        Index('idx_business_members_user', 'user_id'),
    )


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)  # Stored lower-cased
    code = Column(String(16), unique=True, nullable=False, index=True)
    invited_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(SQLEnum(InvitationStatus), default=InvitationStatus.PENDING, nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)

    def is_valid(self, now: datetime = None) -> bool:
        """Redeemable only while pending and before expiry"""
        now = now or datetime.utcnow()
        return self.status == InvitationStatus.PENDING and self.expires_at > now

    @property
    def effective_status(self) -> InvitationStatus:
        # Expiry is never written back; it is derived on read
        if self.status == InvitationStatus.PENDING and self.expires_at <= datetime.utcnow():
            return InvitationStatus.EXPIRED
        return self.status


class MemberDocument(Base):
    __tablename__ = "member_documents"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("business_members.id"), nullable=False, index=True)
    document_type = Column(String(100), nullable=False)
    file_name = Column(String(255), nullable=False)  # Original upload name
    file_path = Column(String(500), nullable=False)  # Relative to UPLOAD_DIR
    file_extension = Column(String(10), nullable=False, default=".pdf")
    file_size = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    member = relationship("BusinessMember", back_populates="documents")


class MemberLeave(Base):
    __tablename__ = "member_leaves"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("business_members.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(SQLEnum(LeaveStatus), default=LeaveStatus.PENDING, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def day_count(self) -> int:
        days = (self.end_date - self.start_date).days
        return days if days > 0 else 1


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    code = Column(String(6), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    used_at = Column(DateTime, nullable=True)

    def is_valid(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return not self.is_used and self.expires_at > now
