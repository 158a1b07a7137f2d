"""
Database engine and session lifecycle.

SQLite is the default backend. Services rely on SAVEPOINTs (begin_nested) so
one failed heartbeat does not undo the rest of a batch; pysqlite needs the
transaction handling below for that to work.
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from livecount.config import settings


def _is_memory_database(database: Optional[str]) -> bool:
    return not database or database == ":memory:" or "mode=memory" in database


def _ensure_sqlite_directory(database: str) -> None:
    if database.startswith("file:"):
        return
    directory = os.path.dirname(database)
    if directory:
        os.makedirs(directory, exist_ok=True)


def _configure_sqlite(engine: Engine) -> None:
    """Foreign keys, WAL, and explicit BEGIN so SAVEPOINT works."""

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build an engine for `database_url` (default settings.database_url).

    SQLite gets cross-thread access for the API threadpool and the pragmas
    above. In-memory databases share a single connection (StaticPool) so
    every session sees the same data; file databases keep the default pool
    so each session holds its own connection. Other backends get
    pool_pre_ping.
    """
    url = make_url(database_url or settings.database_url)
    echo = settings.app_debug if echo is None else echo

    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine_args = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if _is_memory_database(url.database):
        engine_args["poolclass"] = StaticPool
    else:
        _ensure_sqlite_directory(url.database)

    engine = create_engine(url, **engine_args)
    _configure_sqlite(engine)
    return engine


engine = create_db_engine()
SessionLocal = sessionmaker(autoflush=False, bind=engine)


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for scripts: commits on success, rolls back on error.

    Usage:
        with get_db_context() as db:
            HeartbeatService(db).record_heartbeat(ref, ip)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI routes.

    Route handlers commit; anything left uncommitted is rolled back.

    Usage:
        @router.get("/")
        def index(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_all_tables(engine_instance: Optional[Engine] = None) -> None:
    """Create every model's table on `engine_instance` (default: global engine)."""
    from livecount import models

    models.create_all_tables(engine_instance or engine)


def drop_all_tables(engine_instance: Optional[Engine] = None) -> None:
    from livecount import models

    models.drop_all_tables(engine_instance or engine)
