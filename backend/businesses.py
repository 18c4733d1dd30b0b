"""
Business API Endpoints
Handles businesses and the locations (sub-businesses) beneath them
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

import business_service
from auth import get_current_active_user
from database import get_db
from models import User
from schemas import ServiceResponse, BusinessCreate, SubBusinessCreate, BusinessUpdate, BusinessResponse

router = APIRouter(prefix="/api/business", tags=["business"])


@router.post("", response_model=ServiceResponse[BusinessResponse], status_code=status.HTTP_201_CREATED)
async def create_business(
    data: BusinessCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a business owned by the caller (or a location when parent_business_id is set)"""
    business = await business_service.create_business(db, current_user, data)
    return ServiceResponse[BusinessResponse](message="Business created successfully", data=business)


@router.get("", response_model=ServiceResponse[List[BusinessResponse]])
async def get_my_businesses(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    businesses = await business_service.get_my_businesses(db, current_user)
    return ServiceResponse[List[BusinessResponse]](message="Businesses retrieved", data=businesses)


@router.get("/{business_id}", response_model=ServiceResponse[BusinessResponse])
async def get_business(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    business = await business_service.get_business(db, current_user, business_id)
    return ServiceResponse[BusinessResponse](message="Business retrieved", data=business)


@router.put("/{business_id}", response_model=ServiceResponse[BusinessResponse])
async def update_business(
    business_id: int,
    data: BusinessUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner only. Fields left out of the request are not touched."""
    business = await business_service.update_business(db, current_user, business_id, data)
    return ServiceResponse[BusinessResponse](message="Business updated successfully", data=business)


@router.delete("/{business_id}", response_model=ServiceResponse[None])
async def delete_business(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner only. Deactivates the business, its locations and all memberships."""
    await business_service.delete_business(db, current_user, business_id)
    return ServiceResponse[None](message="Business deleted successfully")


# ==================== LOCATIONS ====================

@router.post(
    "/{business_id}/sub-businesses",
    response_model=ServiceResponse[BusinessResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_sub_business(
    business_id: int,
    data: SubBusinessCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    sub = await business_service.create_sub_business(db, current_user, business_id, data)
    return ServiceResponse[BusinessResponse](message="Location created successfully", data=sub)


@router.get("/{business_id}/sub-businesses", response_model=ServiceResponse[List[BusinessResponse]])
async def get_sub_businesses(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    subs = await business_service.get_sub_businesses(db, current_user, business_id)
    return ServiceResponse[List[BusinessResponse]](message="Locations retrieved", data=subs)


@router.get("/{business_id}/sub-businesses/{sub_id}", response_model=ServiceResponse[BusinessResponse])
async def get_sub_business(
    business_id: int,
    sub_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    sub = await business_service.get_sub_business(db, current_user, business_id, sub_id)
    return ServiceResponse[BusinessResponse](message="Location retrieved", data=sub)


@router.put("/{business_id}/sub-businesses/{sub_id}", response_model=ServiceResponse[BusinessResponse])
async def update_sub_business(
    business_id: int,
    sub_id: int,
    data: BusinessUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    sub = await business_service.update_sub_business(db, current_user, business_id, sub_id, data)
    return ServiceResponse[BusinessResponse](message="Location updated successfully", data=sub)


@router.delete("/{business_id}/sub-businesses/{sub_id}", response_model=ServiceResponse[None])
async def delete_sub_business(
    business_id: int,
    sub_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await business_service.delete_sub_business(db, current_user, business_id, sub_id)
    return ServiceResponse[None](message="Location deleted successfully")
