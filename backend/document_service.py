"""
Member documents: PDF files attached to a membership.

Rows live in member_documents, bytes live under UPLOAD_DIR. A row whose
file has disappeared is reported as a storage inconsistency on download.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_active_business, is_owner, require_owner
from errors import AuthorizationError, NotFoundError, ValidationError
from file_utils import PDF_MIME_TYPE, save_document, read_document, delete_document_file
from member_service import get_business_member, build_document_response
from models import User, MemberDocument
from schemas import DocumentResponse

logger = logging.getLogger(__name__)


async def _get_document(db: AsyncSession, member_id: int, document_id: int) -> MemberDocument:
    result = await db.execute(
        select(MemberDocument).where(
            MemberDocument.id == document_id,
            MemberDocument.member_id == member_id,
            MemberDocument.is_active == True
        )
    )
    document = result.scalar_one_or_none()
    if not document:
        raise NotFoundError("Document not found")
    return document


async def upload_document(
    db: AsyncSession,
    user: User,
    business_id: int,
    member_id: int,
    document_type: str,
    file: UploadFile
) -> DocumentResponse:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)
    member = await get_business_member(db, business.id, member_id)

    if not document_type or not document_type.strip():
        raise ValidationError("Document type is required")

    file_path, file_size = await save_document(file, business.id, member.id)

    document = MemberDocument(
        member_id=member.id,
        document_type=document_type.strip(),
        file_name=Path(file.filename).name,
        file_path=file_path,
        file_extension=Path(file_path).suffix,
        file_size=file_size,
        is_active=True
    )
    db.add(document)
    try:
        await db.commit()
    except Exception:
        delete_document_file(file_path)
        raise
    await db.refresh(document)

    logger.info(f"Document {document.id} uploaded for member {member.id}")
    return build_document_response(business.id, document)


async def update_document(
    db: AsyncSession,
    user: User,
    business_id: int,
    member_id: int,
    document_id: int,
    document_type: Optional[str] = None,
    file: Optional[UploadFile] = None
) -> DocumentResponse:
    """Change the type label and/or replace the stored file"""
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)
    member = await get_business_member(db, business.id, member_id)
    document = await _get_document(db, member.id, document_id)

    has_file = file is not None and bool(file.filename)
    if document_type is None and not has_file:
        raise ValidationError("Nothing to update")

    if document_type is not None:
        if not document_type.strip():
            raise ValidationError("Document type cannot be empty")
        document.document_type = document_type.strip()

    old_path = None
    new_path = None
    if has_file:
        new_path, file_size = await save_document(file, business.id, member.id)
        old_path = document.file_path
        document.file_path = new_path
        document.file_name = Path(file.filename).name
        document.file_extension = Path(new_path).suffix
        document.file_size = file_size

    try:
        await db.commit()
    except Exception:
        if new_path:
            delete_document_file(new_path)
        raise
    await db.refresh(document)

    # Previous file goes only once the row points at the new one
    if old_path:
        delete_document_file(old_path)

    return build_document_response(business.id, document)


async def delete_document(
    db: AsyncSession,
    user: User,
    business_id: int,
    member_id: int,
    document_id: int
) -> None:
    business = await get_active_business(db, business_id)
    await require_owner(db, user, business)
    member = await get_business_member(db, business.id, member_id)
    document = await _get_document(db, member.id, document_id)

    file_path = document.file_path
    await db.delete(document)
    await db.commit()

    delete_document_file(file_path)
    logger.info(f"Document {document_id} deleted from member {member.id}")


async def get_document_file(
    db: AsyncSession,
    user: User,
    business_id: int,
    member_id: int,
    document_id: int
) -> Tuple[bytes, str, str]:
    """Return (content, content type, original file name) for download"""
    business = await get_active_business(db, business_id)
    member = await get_business_member(db, business.id, member_id)

    # The document's own member or the business owner
    if member.user_id != user.id and not await is_owner(db, user, business):
        raise AuthorizationError("You do not have access to this document")

    document = await _get_document(db, member.id, document_id)
    content = read_document(document.file_path)
    return content, PDF_MIME_TYPE, document.file_name
