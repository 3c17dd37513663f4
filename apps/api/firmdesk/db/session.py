from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from firmdesk.core.config import settings


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT works with pysqlite.

    Transactions start IMMEDIATE: SQLite cannot upgrade a read lock while
    another writer is committing, so writers take the lock up front.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine with per-dialect connection setup."""
    backend = make_url(url).get_backend_name()
    connect_args = kwargs.pop("connect_args", {})
    if backend.startswith("postgresql"):
        connect_args.setdefault("options", "-c timezone=utc")
        kwargs.setdefault("pool_pre_ping", True)
    elif backend == "sqlite":
        connect_args.setdefault("check_same_thread", False)

    engine = create_engine(url, connect_args=connect_args, **kwargs)
    if backend == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
