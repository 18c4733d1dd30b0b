"""
Leave API Endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

import leave_service
from auth import get_current_active_user
from database import get_db
from models import User
from schemas import ServiceResponse, LeaveCreate, LeaveStatusUpdate, LeaveResponse

router = APIRouter(prefix="/api/leaves", tags=["leaves"])


@router.post("", response_model=ServiceResponse[LeaveResponse], status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    data: LeaveCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    leave = await leave_service.create_leave_request(db, current_user, data)
    return ServiceResponse[LeaveResponse](message="Leave request created", data=leave)


@router.get("/my", response_model=ServiceResponse[List[LeaveResponse]])
async def get_my_leaves(
    business_id: int = Query(...),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    leaves = await leave_service.get_my_leaves(db, current_user, business_id)
    return ServiceResponse[List[LeaveResponse]](message="Leave requests retrieved", data=leaves)


@router.get("/business/{business_id}", response_model=ServiceResponse[List[LeaveResponse]])
async def get_business_leaves(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner only"""
    leaves = await leave_service.get_business_leaves(db, current_user, business_id)
    return ServiceResponse[List[LeaveResponse]](message="Leave requests retrieved", data=leaves)


@router.put("/{leave_id}/status", response_model=ServiceResponse[LeaveResponse])
async def update_leave_status(
    leave_id: int,
    data: LeaveStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    leave = await leave_service.update_leave_status(db, current_user, leave_id, data)
    return ServiceResponse[LeaveResponse](message="Leave status updated", data=leave)


@router.delete("/{leave_id}", response_model=ServiceResponse[None])
async def delete_leave(
    leave_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await leave_service.delete_leave(db, current_user, leave_id)
    return ServiceResponse[None](message="Leave request deleted")
