"""
Province / district reference data and its one-time import.
"""
import logging
from typing import List

import httpx
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from errors import ConflictError, NotFoundError, UnhandledStoreError
from models import Province, District
from schemas import ProvinceResponse, DistrictResponse, SeedResult

logger = logging.getLogger(__name__)


async def get_provinces(db: AsyncSession) -> List[ProvinceResponse]:
    result = await db.execute(select(Province).order_by(Province.name))
    return [ProvinceResponse.model_validate(province) for province in result.scalars().all()]


async def get_districts(db: AsyncSession, province_id: int) -> List[DistrictResponse]:
    if not await db.get(Province, province_id):
        raise NotFoundError("Province not found")

    result = await db.execute(
        select(District).where(District.province_id == province_id).order_by(District.name)
    )
    return [DistrictResponse.model_validate(district) for district in result.scalars().all()]


async def fetch_provinces() -> list:
    """Download provinces with their districts from the geography API"""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(settings.LOCATION_API_URL, timeout=30.0)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch provinces from {settings.LOCATION_API_URL}: {e}")
        raise UnhandledStoreError("Could not fetch province data")

    # The API wraps the list as {"status": ..., "data": [...]}
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    return payload


async def seed_locations(db: AsyncSession) -> SeedResult:
    """Import provinces and districts once; refuses when data already exists"""
    result = await db.execute(select(func.count(Province.id)))
    if result.scalar():
        raise ConflictError("Province data has already been seeded")

    provinces = await fetch_provinces()

    province_count = 0
    district_count = 0
    for province_id, province_data in enumerate(provinces, start=1):
        db.add(Province(id=province_id, name=province_data["name"]))
        province_count += 1
        for district_data in province_data.get("districts", []):
            district_count += 1
            db.add(District(id=district_count, name=district_data["name"], province_id=province_id))

    await db.commit()
    logger.info(f"Seeded {province_count} provinces and {district_count} districts")
    return SeedResult(province_count=province_count, district_count=district_count)
