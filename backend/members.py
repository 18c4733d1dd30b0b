"""
Business Member API Endpoints
Handles members of a business and the documents attached to them
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from urllib.parse import quote

import document_service
import member_service
from auth import get_current_active_user
from database import get_db
from models import User
from schemas import ServiceResponse, MemberResponse, MemberUpdate, DocumentResponse

router = APIRouter(prefix="/api/business/{business_id}/members", tags=["members"])


@router.get("", response_model=ServiceResponse[List[MemberResponse]])
async def get_members(
    business_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    members = await member_service.get_members(db, current_user, business_id)
    return ServiceResponse[List[MemberResponse]](message="Members retrieved", data=members)


@router.get("/{member_id}", response_model=ServiceResponse[MemberResponse])
async def get_member(
    business_id: int,
    member_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    member = await member_service.get_member(db, current_user, business_id, member_id)
    return ServiceResponse[MemberResponse](message="Member retrieved", data=member)


@router.put("/{member_id}", response_model=ServiceResponse[MemberResponse])
async def update_member(
    business_id: int,
    member_id: int,
    data: MemberUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner only. Fields left out of the request are not touched."""
    member = await member_service.update_member(db, current_user, business_id, member_id, data)
    return ServiceResponse[MemberResponse](message="Member updated successfully", data=member)


@router.delete("/{member_id}", response_model=ServiceResponse[None])
async def remove_member(
    business_id: int,
    member_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await member_service.remove_member(db, current_user, business_id, member_id)
    return ServiceResponse[None](message="Member removed successfully")


# ==================== DOCUMENTS ====================

@router.post(
    "/{member_id}/documents",
    response_model=ServiceResponse[DocumentResponse],
    status_code=status.HTTP_201_CREATED
)
async def upload_document(
    business_id: int,
    member_id: int,
    document_type: str = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Owner only. Accepts PDF files."""
    document = await document_service.upload_document(
        db, current_user, business_id, member_id, document_type, file
    )
    return ServiceResponse[DocumentResponse](message="Document uploaded successfully", data=document)


@router.put("/{member_id}/documents/{document_id}", response_model=ServiceResponse[DocumentResponse])
async def update_document(
    business_id: int,
    member_id: int,
    document_id: int,
    document_type: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    document = await document_service.update_document(
        db, current_user, business_id, member_id, document_id, document_type, file
    )
    return ServiceResponse[DocumentResponse](message="Document updated successfully", data=document)


@router.delete("/{member_id}/documents/{document_id}", response_model=ServiceResponse[None])
async def delete_document(
    business_id: int,
    member_id: int,
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await document_service.delete_document(db, current_user, business_id, member_id, document_id)
    return ServiceResponse[None](message="Document deleted successfully")


@router.get("/{member_id}/documents/{document_id}/download")
async def download_document(
    business_id: int,
    member_id: int,
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Raw file bytes for the document's member or the business owner"""
    content, content_type, file_name = await document_service.get_document_file(
        db, current_user, business_id, member_id, document_id
    )
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"}
    )
