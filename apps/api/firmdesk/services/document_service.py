"""Document service - per-organization file records with review status."""

import logging
import uuid
from typing import BinaryIO
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from firmdesk.core.config import settings
from firmdesk.core.errors import (
    NotFoundError,
    UnsupportedFileTypeError,
    ValidationError,
    validation_error_from,
)
from firmdesk.db.enums import DocumentCategory, DocumentStatus, NotificationEvent
from firmdesk.db.models import Document
from firmdesk.db.types import utcnow
from firmdesk.schemas.document import FileMeta
from firmdesk.services import notification_service, org_service, storage_client

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_MIME_TYPES = {
    # PDF
    "application/pdf",
    # Word processing
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.oasis.opendocument.text",
    "application/rtf",
    "text/plain",
    # Spreadsheets
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.oasis.opendocument.spreadsheet",
    "text/csv",
    # Images
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/tiff",
}

# Checked first: a type on both lists is rejected.
BLOCKED_MIME_TYPES = {
    "application/zip",
    "application/x-zip-compressed",
    "application/x-rar-compressed",
    "application/vnd.rar",
    "application/x-7z-compressed",
    "application/x-tar",
    "application/gzip",
    "application/x-gzip",
    "application/x-bzip2",
    "application/java-archive",
}


def _coerce_meta(file_meta: FileMeta | dict) -> FileMeta:
    if isinstance(file_meta, FileMeta):
        return file_meta
    try:
        return FileMeta(**file_meta)
    except PydanticValidationError as exc:
        raise validation_error_from(exc) from exc


def validate_file_meta(file_meta: FileMeta | dict) -> FileMeta:
    """
    Validate file metadata against the block-list, allow-list and size limit.

    Raises:
        UnsupportedFileTypeError: blocked or unknown content type
        ValidationError: blank name, non-positive or oversized file
    """
    meta = _coerce_meta(file_meta)

    if meta.content_type in BLOCKED_MIME_TYPES:
        raise UnsupportedFileTypeError(f"Content type '{meta.content_type}' is blocked")
    if meta.content_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileTypeError(f"Content type '{meta.content_type}' not allowed")

    if meta.size > settings.MAX_DOCUMENT_SIZE_BYTES:
        max_mb = settings.MAX_DOCUMENT_SIZE_BYTES / (1024 * 1024)
        raise ValidationError(f"File size exceeds {max_mb:.0f} MB limit")

    return meta


def _coerce_category(category: DocumentCategory | str) -> DocumentCategory:
    if isinstance(category, DocumentCategory):
        return category
    if isinstance(category, str) and DocumentCategory.has_value(category):
        return DocumentCategory(category)
    raise ValidationError(f"Unknown document category: {category!r}")


def upload_document(
    db: Session,
    org_id: UUID,
    uploader_id: UUID,
    file_meta: FileMeta | dict,
    file: BinaryIO | None = None,
) -> Document:
    """
    Record an uploaded document in status 'uploaded'.

    When ``file`` is given its bytes are handed to the storage backend; the
    stored object is removed again if the record fails to commit.
    """
    meta = validate_file_meta(file_meta)
    org_service.require_org(db, org_id)

    document_id = uuid.uuid4()
    storage_key = None
    if file is not None:
        ext = f".{meta.extension}" if meta.extension else ""
        storage_key = f"{org_id}/{document_id}{ext}"
        storage_client.store_file(storage_key, file, meta.content_type)

    document = Document(
        id=document_id,
        organization_id=org_id,
        uploaded_by_user_id=uploader_id,
        filename=meta.filename,
        content_type=meta.content_type,
        file_size=meta.size,
        storage_key=storage_key,
        status=DocumentStatus.UPLOADED.value,
    )
    try:
        db.add(document)
        notification_service.emit(
            db, org_id, NotificationEvent.DOCUMENT_UPLOADED, document_id, uploader_id
        )
        db.commit()
    except Exception:
        db.rollback()
        if storage_key:
            storage_client.delete_file(storage_key)
        raise

    logger.info("Uploaded document %s in org %s", document_id, org_id)
    return document


def mark_viewed(db: Session, document: Document, reviewer_id: UUID) -> Document:
    """
    Move a document from 'uploaded' to 'viewed'.

    Idempotent: an already-viewed document is returned unchanged and keeps
    its original reviewer and timestamp.
    """
    if document.status == DocumentStatus.VIEWED.value:
        return document

    document.status = DocumentStatus.VIEWED.value
    document.viewed_at = utcnow()
    document.viewed_by_user_id = reviewer_id
    db.commit()
    logger.info("Document %s viewed by user %s", document.id, reviewer_id)
    return document


def categorize(
    db: Session,
    document: Document,
    category: DocumentCategory | str,
) -> Document:
    """Set a document's category. Valid at any status; status is untouched."""
    document.category = _coerce_category(category).value
    db.commit()
    return document


def get_document(db: Session, org_id: UUID, document_id: UUID) -> Document:
    """
    Get a document scoped to an organization.

    Raises:
        NotFoundError
    """
    document = db.query(Document).filter(
        Document.organization_id == org_id,
        Document.id == document_id,
    ).first()
    if not document:
        raise NotFoundError("Document not found")
    return document


def list_documents(
    db: Session,
    org_id: UUID,
    status: DocumentStatus | None = None,
    category: DocumentCategory | None = None,
) -> list[Document]:
    """List an organization's documents, newest first."""
    query = db.query(Document).filter(Document.organization_id == org_id)
    if status:
        query = query.filter(Document.status == status.value)
    if category:
        query = query.filter(Document.category == category.value)
    return query.order_by(Document.created_at.desc()).all()
