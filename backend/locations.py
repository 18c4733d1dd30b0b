"""
Location API Endpoints
Province / district lookup and the reference data import
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

import location_service
from auth import get_current_active_user
from database import get_db
from models import User
from schemas import ServiceResponse, ProvinceResponse, DistrictResponse, SeedResult

router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("/provinces", response_model=ServiceResponse[List[ProvinceResponse]])
async def get_provinces(db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT"""
    provinces = await location_service.get_provinces(db)
    return ServiceResponse[List[ProvinceResponse]](message="Provinces retrieved", data=provinces)


@router.get("/provinces/{province_id}/districts", response_model=ServiceResponse[List[DistrictResponse]])
async def get_districts(province_id: int, db: AsyncSession = Depends(get_db)):
    """PUBLIC ENDPOINT"""
    districts = await location_service.get_districts(db, province_id)
    return ServiceResponse[List[DistrictResponse]](message="Districts retrieved", data=districts)


@router.post("/seed", response_model=ServiceResponse[SeedResult])
async def seed_locations(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    result = await location_service.seed_locations(db)
    return ServiceResponse[SeedResult](message="Province data imported", data=result)
