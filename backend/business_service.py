"""
Business hierarchy: root businesses and the locations (sub-businesses) under them.

A root has parent_business_id = NULL. A location points at an active root
and never has locations of its own.
"""
import logging
import re
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_active_business, get_role_in_business, require_member, require_owner, is_owner
from errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hierarchy import deactivate_businesses
from models import User, Business, BusinessMember, MemberRole, Province, District
from schemas import BusinessCreate, SubBusinessCreate, BusinessUpdate, BusinessResponse

logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    """Strip formatting and check the digit count"""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 10 or len(digits) > 11:
        raise ValidationError("Phone number must contain 10 or 11 digits")
    return digits


async def validate_location(db: AsyncSession, province_id: int, district_id: int) -> None:
    province = await db.get(Province, province_id)
    if not province:
        raise ValidationError("Invalid province")

    district = await db.get(District, district_id)
    if not district or district.province_id != province_id:
        raise ValidationError("District does not belong to the selected province")


async def _ensure_unique_name(
    db: AsyncSession,
    name: str,
    parent_business_id: Optional[int],
    exclude_id: Optional[int] = None
) -> None:
    # Roots are unique among roots, locations among their siblings
    query = select(Business.id).where(
        func.lower(Business.name) == name.strip().lower(),
        Business.is_active == True
    )
    if parent_business_id is None:
        query = query.where(Business.parent_business_id.is_(None))
    else:
        query = query.where(Business.parent_business_id == parent_business_id)
    if exclude_id is not None:
        query = query.where(Business.id != exclude_id)

    result = await db.execute(query)
    if result.first():
        if parent_business_id is None:
            raise ConflictError(f"A business named '{name}' already exists")
        raise ConflictError(f"A location named '{name}' already exists for this business")


async def _ensure_unique_phone(db: AsyncSession, phone: str, exclude_id: Optional[int] = None) -> None:
    query = select(Business.id).where(
        Business.phone_number == phone,
        Business.parent_business_id.is_(None),
        Business.is_active == True
    )
    if exclude_id is not None:
        query = query.where(Business.id != exclude_id)

    result = await db.execute(query)
    if result.first():
        raise ConflictError("A business with this phone number already exists")


async def build_business_response(db: AsyncSession, business: Business, user: User) -> BusinessResponse:
    role = await get_role_in_business(db, user, business)

    result = await db.execute(
        select(func.count(BusinessMember.id)).where(
            BusinessMember.business_id == business.id,
            BusinessMember.is_active == True
        )
    )
    member_count = result.scalar() or 0

    result = await db.execute(
        select(func.count(Business.id)).where(
            Business.parent_business_id == business.id,
            Business.is_active == True
        )
    )
    sub_business_count = result.scalar() or 0

    parent_name = None
    if business.parent_business_id:
        parent = await db.get(Business, business.parent_business_id)
        parent_name = parent.name if parent else None

    province = await db.get(Province, business.province_id)
    district = await db.get(District, business.district_id)

    return BusinessResponse(
        id=business.id,
        name=business.name,
        description=business.description,
        address=business.address,
        phone_number=business.phone_number,
        location_name=business.location_name,
        latitude=business.latitude,
        longitude=business.longitude,
        province_id=business.province_id,
        province_name=province.name if province else None,
        district_id=business.district_id,
        district_name=district.name if district else None,
        owner_id=business.owner_id,
        role=role,
        member_count=member_count,
        parent_business_id=business.parent_business_id,
        parent_business_name=parent_name,
        is_sub_business=business.is_sub_business,
        sub_business_count=sub_business_count,
        created_at=business.created_at,
        updated_at=business.updated_at
    )


async def create_business(db: AsyncSession, user: User, data: BusinessCreate) -> BusinessResponse:
    """Create a root business with its owner membership, or a location when a parent is given"""
    if data.parent_business_id is not None:
        location = SubBusinessCreate(
            name=data.name,
            description=data.description,
            location_name=data.location_name,
            latitude=data.latitude,
            longitude=data.longitude
        )
        return await create_sub_business(db, user, data.parent_business_id, location)

    missing = [
        field for field in ("address", "phone_number", "province_id", "district_id")
        if getattr(data, field) is None
    ]
    if missing:
        raise ValidationError(
            "Missing required business details",
            errors=[f"{field} is required" for field in missing]
        )

    phone = normalize_phone(data.phone_number)
    await _ensure_unique_name(db, data.name, None)
    await _ensure_unique_phone(db, phone)
    await validate_location(db, data.province_id, data.district_id)

    business = Business(
        name=data.name.strip(),
        description=data.description,
        address=data.address.strip(),
        phone_number=phone,
        province_id=data.province_id,
        district_id=data.district_id,
        location_name=data.location_name,
        latitude=data.latitude,
        longitude=data.longitude,
        owner_id=user.id,
        is_active=True
    )
    db.add(business)
    await db.flush()  # Get business ID

    # The creator becomes the owner in the same transaction
    db.add(BusinessMember(
        user_id=user.id,
        business_id=business.id,
        role=MemberRole.OWNER,
        is_active=True
    ))
    await db.commit()
    await db.refresh(business)

    logger.info(f"Business {business.id} created by user {user.id}")
    return await build_business_response(db, business, user)


async def create_sub_business(
    db: AsyncSession,
    user: User,
    parent_id: int,
    data: SubBusinessCreate
) -> BusinessResponse:
    parent = await get_active_business(db, parent_id)

    if parent.parent_business_id is not None:
        raise ValidationError("Locations cannot have locations of their own")
    await require_owner(db, user, parent)
    await _ensure_unique_name(db, data.name, parent.id)

    # Contact details and region come from the parent
    location = Business(
        name=data.name.strip(),
        description=data.description,
        address=parent.address,
        phone_number=parent.phone_number,
        province_id=parent.province_id,
        district_id=parent.district_id,
        location_name=data.location_name or data.name.strip(),
        latitude=data.latitude,
        longitude=data.longitude,
        owner_id=parent.owner_id,
        parent_business_id=parent.id,
        is_active=True
    )
    db.add(location)
    await db.commit()
    await db.refresh(location)

    logger.info(f"Location {location.id} created under business {parent.id}")
    return await build_business_response(db, location, user)


async def get_my_businesses(db: AsyncSession, user: User) -> List[BusinessResponse]:
    result = await db.execute(
        select(Business)
        .join(BusinessMember, BusinessMember.business_id == Business.id)
        .where(
            BusinessMember.user_id == user.id,
            BusinessMember.is_active == True,
            Business.is_active == True
        )
        .order_by(Business.created_at, Business.id)
    )
    return [await build_business_response(db, business, user) for business in result.scalars().all()]


async def get_business(db: AsyncSession, user: User, business_id: int) -> BusinessResponse:
    business = await get_active_business(db, business_id)
    await require_member(db, user, business)
    return await build_business_response(db, business, user)


async def update_business(
    db: AsyncSession,
    user: User,
    business_id: int,
    data: BusinessUpdate
) -> BusinessResponse:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)

    update_data = data.model_dump(exclude_unset=True)

    for field in ("name", "address", "phone_number", "province_id", "district_id"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be empty")

    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        await _ensure_unique_name(db, update_data["name"], business.parent_business_id, exclude_id=business.id)

    if "address" in update_data:
        update_data["address"] = update_data["address"].strip()

    if "phone_number" in update_data:
        update_data["phone_number"] = normalize_phone(update_data["phone_number"])
        if business.parent_business_id is None:
            await _ensure_unique_phone(db, update_data["phone_number"], exclude_id=business.id)

    if "province_id" in update_data or "district_id" in update_data:
        if "province_id" not in update_data or "district_id" not in update_data:
            raise ValidationError("Province and district must be updated together")
        await validate_location(db, update_data["province_id"], update_data["district_id"])

    for field, value in update_data.items():
        setattr(business, field, value)

    await db.commit()
    await db.refresh(business)
    return await build_business_response(db, business, user)


async def delete_business(db: AsyncSession, user: User, business_id: int) -> None:
    """Soft-delete the business, its locations and every membership in one transaction"""
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)

    await deactivate_businesses(db, [business.id])
    await db.commit()
    logger.info(f"Business {business.id} deleted by user {user.id}")


async def _get_sub_business(db: AsyncSession, parent_id: int, sub_id: int) -> Business:
    sub = await get_active_business(db, sub_id)
    if sub.parent_business_id != parent_id:
        raise NotFoundError("Location not found")
    return sub


async def get_sub_businesses(db: AsyncSession, user: User, parent_id: int) -> List[BusinessResponse]:
    parent = await get_active_business(db, parent_id)
    await require_member(db, user, parent)

    result = await db.execute(
        select(Business)
        .where(Business.parent_business_id == parent.id, Business.is_active == True)
        .order_by(Business.name)
    )
    return [await build_business_response(db, sub, user) for sub in result.scalars().all()]


async def get_sub_business(db: AsyncSession, user: User, parent_id: int, sub_id: int) -> BusinessResponse:
    parent = await get_active_business(db, parent_id)
    sub = await _get_sub_business(db, parent.id, sub_id)

    # Members of the parent or of the location itself may read it
    if await get_role_in_business(db, user, sub) is None:
        raise AuthorizationError("You are not a member of this business")
    return await build_business_response(db, sub, user)


async def update_sub_business(
    db: AsyncSession,
    user: User,
    parent_id: int,
    sub_id: int,
    data: BusinessUpdate
) -> BusinessResponse:
    await _get_sub_business(db, parent_id, sub_id)
    return await update_business(db, user, sub_id, data)


async def delete_sub_business(db: AsyncSession, user: User, parent_id: int, sub_id: int) -> None:
    sub = await _get_sub_business(db, parent_id, sub_id)
    if not await is_owner(db, user, sub):
        raise AuthorizationError("Only the business owner can perform this action")

    await deactivate_businesses(db, [sub.id])
    await db.commit()
    logger.info(f"Location {sub.id} deleted by user {user.id}")
