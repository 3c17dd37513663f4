"""Tests for document upload validation and the review workflow."""

import io
import os
import uuid

import pytest

from firmdesk.core.config import settings
from firmdesk.core.errors import NotFoundError, UnsupportedFileTypeError, ValidationError
from firmdesk.db.enums import DocumentCategory, DocumentStatus, NotificationEvent
from firmdesk.db.models import Document
from firmdesk.schemas.document import FileMeta
from firmdesk.services import document_service, notification_service, storage_client


def _meta(filename="statement.pdf", content_type="application/pdf", size=1024):
    return {"filename": filename, "content_type": content_type, "size": size}


def test_upload_pdf_records_uploaded_document(db, test_client_org, test_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())

    assert doc.status == DocumentStatus.UPLOADED.value
    assert doc.organization_id == test_client_org.id
    assert doc.uploaded_by_user_id == test_user.id
    assert doc.filename == "statement.pdf"
    assert doc.file_size == 1024
    assert doc.category is None
    assert doc.viewed_at is None
    assert doc.storage_key is None


def test_upload_accepts_file_meta_instance(db, test_client_org, test_user):
    meta = FileMeta(filename=" notes.txt ", content_type="Text/Plain; charset=utf-8", size=5)

    doc = document_service.upload_document(db, test_client_org.id, test_user.id, meta)

    assert doc.filename == "notes.txt"
    assert doc.content_type == "text/plain"


def test_upload_zip_is_rejected(db, test_client_org, test_user):
    with pytest.raises(UnsupportedFileTypeError):
        document_service.upload_document(
            db, test_client_org.id, test_user.id,
            _meta(filename="archive.zip", content_type="application/zip"),
        )

    assert db.query(Document).count() == 0


@pytest.mark.parametrize(
    "content_type",
    ["application/x-7z-compressed", "application/gzip", "application/octet-stream", "video/mp4"],
)
def test_upload_rejects_blocked_and_unknown_types(db, test_client_org, test_user, content_type):
    with pytest.raises(UnsupportedFileTypeError) as exc_info:
        document_service.upload_document(
            db, test_client_org.id, test_user.id, _meta(content_type=content_type)
        )
    # Unsupported types are a kind of validation failure
    assert isinstance(exc_info.value, ValidationError)


def test_block_list_wins_over_allow_list(monkeypatch):
    monkeypatch.setattr(
        document_service, "ALLOWED_MIME_TYPES",
        document_service.ALLOWED_MIME_TYPES | {"application/zip"},
    )

    with pytest.raises(UnsupportedFileTypeError, match="blocked"):
        document_service.validate_file_meta(_meta(content_type="application/zip"))


@pytest.mark.parametrize("size", [0, -1])
def test_upload_rejects_non_positive_size(db, test_client_org, test_user, size):
    with pytest.raises(ValidationError):
        document_service.upload_document(db, test_client_org.id, test_user.id, _meta(size=size))


def test_upload_rejects_blank_filename(db, test_client_org, test_user):
    with pytest.raises(ValidationError):
        document_service.upload_document(
            db, test_client_org.id, test_user.id, _meta(filename="   ")
        )


def test_upload_rejects_oversized_file(db, test_client_org, test_user, monkeypatch):
    monkeypatch.setattr(settings, "MAX_DOCUMENT_SIZE_BYTES", 100)

    with pytest.raises(ValidationError, match="exceeds"):
        document_service.upload_document(db, test_client_org.id, test_user.id, _meta(size=101))

    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta(size=100))
    assert doc.file_size == 100


def test_upload_to_unknown_org(db, test_user):
    with pytest.raises(NotFoundError):
        document_service.upload_document(db, uuid.uuid4(), test_user.id, _meta())


def test_upload_stores_bytes(db, test_client_org, test_user):
    payload = b"%PDF-1.7 fake"

    doc = document_service.upload_document(
        db, test_client_org.id, test_user.id, _meta(size=len(payload)), file=io.BytesIO(payload)
    )

    assert doc.storage_key == f"{test_client_org.id}/{doc.id}.pdf"
    assert storage_client.read_file(doc.storage_key) == payload


def test_storage_key_ignores_path_in_extension(db, test_client_org, test_user):
    doc = document_service.upload_document(
        db, test_client_org.id, test_user.id,
        _meta(filename="a.x/../../../../etc/passwd", size=4), file=io.BytesIO(b"data"),
    )

    assert doc.storage_key == f"{test_client_org.id}/{doc.id}"
    assert doc.storage_key.count("/") == 1
    assert storage_client.read_file(doc.storage_key) == b"data"


@pytest.mark.parametrize(
    "filename, extension",
    [
        ("Report.PDF", "pdf"),
        ("archive.tar.gz", "gz"),
        ("no-extension", ""),
        ("odd.p$f", ""),
        ("long.abcdefghijk", ""),
        ("trailing.", ""),
    ],
)
def test_file_meta_extension(filename, extension):
    meta = FileMeta(filename=filename, content_type="application/pdf", size=1)

    assert meta.extension == extension


def test_failed_commit_removes_stored_bytes(db, test_client_org, test_user, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise RuntimeError("queue unavailable")

    monkeypatch.setattr(notification_service, "emit", _fail)

    with pytest.raises(RuntimeError):
        document_service.upload_document(
            db, test_client_org.id, test_user.id, _meta(), file=io.BytesIO(b"data")
        )

    assert db.query(Document).count() == 0
    org_dir = os.path.join(settings.LOCAL_STORAGE_PATH, str(test_client_org.id))
    assert not os.path.exists(org_dir) or os.listdir(org_dir) == []


def test_storage_rejects_escaping_keys():
    with pytest.raises(ValidationError):
        storage_client.store_file("../outside.pdf", io.BytesIO(b"x"))


def test_upload_emits_notification(db, test_client_org, test_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())

    events = notification_service.list_events(
        db, test_client_org.id, NotificationEvent.DOCUMENT_UPLOADED
    )
    assert [e["entity_id"] for e in events] == [str(doc.id)]


def test_mark_viewed_is_idempotent(db, test_client_org, test_user, staff_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())

    document_service.mark_viewed(db, doc, staff_user.id)
    first_viewed_at = doc.viewed_at
    document_service.mark_viewed(db, doc, test_user.id)

    assert doc.status == DocumentStatus.VIEWED.value
    assert doc.viewed_at == first_viewed_at
    assert doc.viewed_by_user_id == staff_user.id


def test_categorize_keeps_status(db, test_client_org, test_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())
    document_service.mark_viewed(db, doc, test_user.id)

    document_service.categorize(db, doc, DocumentCategory.INVOICE)
    assert doc.category == "invoice"
    assert doc.status == DocumentStatus.VIEWED.value

    document_service.categorize(db, doc, "receipt")
    assert doc.category == "receipt"

    # Status never regresses
    document_service.mark_viewed(db, doc, test_user.id)
    assert doc.status == DocumentStatus.VIEWED.value


def test_categorize_rejects_unknown_category(db, test_client_org, test_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())

    with pytest.raises(ValidationError):
        document_service.categorize(db, doc, "tax-return")
    assert doc.category is None


def test_get_document_is_org_scoped(db, test_firm, test_client_org, test_user):
    doc = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())

    assert document_service.get_document(db, test_client_org.id, doc.id).id == doc.id
    with pytest.raises(NotFoundError):
        document_service.get_document(db, test_firm.id, doc.id)


def test_list_documents_filters(db, test_client_org, test_user):
    first = document_service.upload_document(db, test_client_org.id, test_user.id, _meta())
    second = document_service.upload_document(
        db, test_client_org.id, test_user.id, _meta(filename="photo.png", content_type="image/png")
    )
    document_service.mark_viewed(db, first, test_user.id)
    document_service.categorize(db, second, DocumentCategory.RECEIPT)

    assert [d.id for d in document_service.list_documents(db, test_client_org.id)] == [
        second.id, first.id,
    ]
    viewed = document_service.list_documents(db, test_client_org.id, status=DocumentStatus.VIEWED)
    assert [d.id for d in viewed] == [first.id]
    receipts = document_service.list_documents(
        db, test_client_org.id, category=DocumentCategory.RECEIPT
    )
    assert [d.id for d in receipts] == [second.id]
