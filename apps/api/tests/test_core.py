"""Tests for token, logging, error and datetime helpers."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import BaseModel, ValidationError as PydanticValidationError

from firmdesk.core.errors import (
    AlreadyAcceptedError,
    DomainError,
    DuplicateMembershipError,
    ExpiredInvitationError,
    InvalidStateError,
    ValidationError,
    validation_error_from,
)
from firmdesk.core.security import generate_token, hash_token, token_matches
from firmdesk.core.structured_logging import build_log_context, configure_logging
from firmdesk.db.types import UTCDateTime, utcnow
from firmdesk.utils.normalization import normalize_content_type, normalize_email, slugify


def test_generate_token_is_url_safe_and_long():
    token = generate_token()

    assert len(token) >= 43
    assert all(c.isalnum() or c in "-_" for c in token)
    assert generate_token() != token


def test_token_matches_digest():
    token = generate_token()
    digest = hash_token(token)

    assert len(digest) == 64
    assert token_matches(token, digest)
    assert not token_matches(token + "a", digest)


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(user_id="user-1", org_id="org-1", event="invitation_issued")

    assert context == {"user_id": "user-1", "org_id": "org-1", "event": "invitation_issued"}


def test_build_log_context_ignores_empty_fields():
    assert build_log_context(user_id="", org_id=None, entity_id="doc-1") == {"entity_id": "doc-1"}


def test_configure_logging_accepts_level_names(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    configure_logging("debug")

    assert calls["level"] == logging.DEBUG


def test_retryable_flags():
    assert ValidationError.retryable
    assert DuplicateMembershipError.retryable
    assert ExpiredInvitationError.retryable
    assert not AlreadyAcceptedError.retryable
    assert not InvalidStateError.retryable
    assert issubclass(ValidationError, DomainError)


def test_validation_error_from_pydantic():
    class Model(BaseModel):
        size: int

    with pytest.raises(PydanticValidationError) as exc_info:
        Model(size="big")

    error = validation_error_from(exc_info.value)
    assert isinstance(error, ValidationError)
    assert str(error).startswith("size:")


def test_utc_datetime_binds_naive_utc_for_sqlite():
    from sqlalchemy.dialects import sqlite

    column_type = UTCDateTime()
    offset = timezone(timedelta(hours=2))
    value = datetime(2024, 1, 1, 12, 0, tzinfo=offset)

    bound = column_type.process_bind_param(value, sqlite.dialect())
    assert bound == datetime(2024, 1, 1, 10, 0)
    loaded = column_type.process_result_value(bound, sqlite.dialect())
    assert loaded == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None


def test_normalization_helpers():
    assert normalize_email("  A@B.COM ") == "a@b.com"
    assert normalize_email("   ") is None
    assert normalize_content_type("Application/PDF; charset=binary") == "application/pdf"
    assert normalize_content_type(None) == ""
    assert slugify("  Acme & Sons, LLP ") == "acme-sons-llp"
