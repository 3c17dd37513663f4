"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite database per test
- User / firm / client factories with memberships
"""
import os
import uuid
from typing import Callable, Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from firmdesk.core.config import settings  # noqa: E402
from firmdesk.db.base import Base  # noqa: E402
from firmdesk.db.enums import Role  # noqa: E402
from firmdesk.db.models import Firm, Organization, User  # noqa: E402
from firmdesk.db.session import build_engine  # noqa: E402
from firmdesk.services import membership_service, org_service, user_service  # noqa: E402


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    """Session on a fresh schema; services may commit freely."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Keep document bytes inside the test's temp directory."""
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "storage"))


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(email: str | None = None, display_name: str = "Test User") -> User:
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        return user_service.create_user(db, email=email, display_name=display_name)

    return _make_user


@pytest.fixture
def test_user(make_user) -> User:
    """Owner of test_firm (admin)."""
    return make_user(display_name="Owner")


@pytest.fixture
def test_firm(db: Session, test_user: User) -> Firm:
    return org_service.create_firm(db, "Test Firm", owner_user_id=test_user.id)


@pytest.fixture
def test_client_org(db: Session, test_firm: Firm) -> Organization:
    return org_service.create_client(db, "Test Client", parent_firm_id=test_firm.id)


@pytest.fixture
def staff_user(db: Session, make_user, test_firm: Firm) -> User:
    user = make_user(display_name="Staff Member")
    membership_service.grant(db, test_firm.id, user.id, Role.STAFF)
    return user
