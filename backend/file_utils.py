"""File storage utilities for member documents (PDF only)"""
import logging
import uuid
from fastapi import UploadFile
from pathlib import Path
from typing import Tuple

from config import settings
from errors import ValidationError, StorageInconsistencyError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf"}
PDF_MIME_TYPE = "application/pdf"


def get_upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def validate_document_file(file: UploadFile) -> str:
    """Validate the upload is a PDF by extension. Returns the extension."""
    if not file or not file.filename:
        raise ValidationError("A file is required")

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}")
    return file_ext


async def save_document(file: UploadFile, business_id: int, member_id: int) -> Tuple[str, int]:
    """
    Save an uploaded document under the member's folder

    Args:
        file: UploadFile from FastAPI
        business_id: Business the membership belongs to
        member_id: Membership the document is attached to

    Returns:
        Tuple of the path relative to UPLOAD_DIR (e.g. "documents/1/4/<uuid>.pdf") and the size in bytes
    """
    file_ext = validate_document_file(file)

    content = await file.read()
    file_size = len(content)

    if file_size == 0:
        raise ValidationError("Uploaded file is empty")

    max_size = settings.MAX_DOCUMENT_SIZE_MB * 1024 * 1024
    if file_size > max_size:
        raise ValidationError(f"File too large. Maximum size: {settings.MAX_DOCUMENT_SIZE_MB}MB")

    relative_path = Path("documents") / str(business_id) / str(member_id) / f"{uuid.uuid4().hex}{file_ext}"
    file_path = get_upload_root() / relative_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(content)

    logger.info(f"Stored document {relative_path.as_posix()} ({file_size} bytes)")
    return relative_path.as_posix(), file_size


def read_document(relative_path: str) -> bytes:
    """Read a stored document; a missing file means the row and storage disagree"""
    file_path = get_upload_root() / relative_path
    if not file_path.is_file():
        logger.error(f"Document file missing from storage: {relative_path}")
        raise StorageInconsistencyError("Document file is missing from storage")
    return file_path.read_bytes()


def delete_document_file(relative_path: str) -> None:
    """Delete document file from filesystem"""
    file_path = get_upload_root() / relative_path
    try:
        if file_path.exists() and file_path.is_file():
            file_path.unlink()
            logger.info(f"Deleted document file: {relative_path}")
    except OSError as e:
        logger.warning(f"Failed to delete document file {relative_path}: {e}")
