"""Tests for the Alembic baseline against the ORM metadata."""

from sqlalchemy import inspect

from firmdesk.core.migrations import get_migration_status, run_migrations
from firmdesk.db.base import Base
from firmdesk.db.session import build_engine


def test_run_migrations_reaches_head(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'migrate.db'}")
    try:
        assert get_migration_status(engine).is_up_to_date is False

        status = run_migrations(engine)

        assert status.is_up_to_date
        assert status.current_heads == status.head_revisions
    finally:
        engine.dispose()


def test_baseline_matches_models(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    try:
        run_migrations(engine)
        inspector = inspect(engine)
        tables = set(inspector.get_table_names()) - {"alembic_version"}

        assert tables == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {col["name"] for col in inspector.get_columns(name)}
            assert migrated == set(table.columns.keys()), name
    finally:
        engine.dispose()
