"""Engine and session lifecycle.

One engine per process, created by ``init_database`` at start-up. Every unit of
work goes through ``get_session()``, which commits on success and rolls back
on any exception.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from qalam.logging import get_logger

from .exceptions import DatabaseConnectionError

_engine: Engine | None = None
_session_factory: sessionmaker | None = None

logger = get_logger(__name__, component="database")


def init_database(database_url: str) -> None:
    """Create the engine, check connectivity and create missing tables.

    Args:
        database_url: SQLAlchemy URL, e.g. "sqlite:///./data/qalam_notifications.db"

    Raises:
        DatabaseConnectionError: If initialisation fails
    """
    global _engine, _session_factory

    if not database_url or not isinstance(database_url, str):
        raise DatabaseConnectionError("Database URL must be a non-empty string")

    logger.info(
        "Initializing database",
        extra={"event": "database.initializing", "database_url": _redact_url(database_url)},
    )

    try:
        is_sqlite = database_url.startswith("sqlite")
        in_memory = is_sqlite and (database_url.endswith(":memory:") or database_url == "sqlite://")

        if is_sqlite and not in_memory and database_url.startswith("sqlite:///"):
            db_file = Path(database_url.replace("sqlite:///", "", 1))
            if not db_file.parent.exists():
                db_file.parent.mkdir(parents=True, exist_ok=True)

        engine_kwargs = {"echo": False, "pool_pre_ping": True}
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if in_memory:
            # A single shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool

        _engine = create_engine(database_url, **engine_kwargs)

        if is_sqlite:
            _configure_sqlite(_engine, wal=not in_memory)

        _validate_connection(_engine)

        _session_factory = sessionmaker(
            bind=_engine,
            autoflush=True,
            expire_on_commit=False,
        )

        from .schema import create_schema

        create_schema(_engine)

        logger.info(
            "Database initialized",
            extra={"event": "database.initialised", "database_url": _redact_url(database_url)},
        )

    except DatabaseConnectionError:
        raise
    except Exception as e:
        logger.error(
            f"Failed to initialize database: {e}",
            exc_info=True,
            extra={"event": "database.init_failed"},
        )
        raise DatabaseConnectionError(f"Failed to initialize database: {e}") from e


def _configure_sqlite(engine: Engine, wal: bool = True) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def _validate_connection(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to validate database connection: {e}") from e


def _redact_url(url: str) -> str:
    """Hide the password in non-SQLite URLs."""
    if url.startswith("sqlite") or "@" not in url:
        return url
    credentials, _, host = url.rpartition("@")
    scheme, _, user_info = credentials.partition("://")
    user = user_info.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session that commits on exit and rolls back on error.

    Raises:
        DatabaseConnectionError: If init_database() has not been called
    """
    if _session_factory is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_session()"
        )

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.debug(
            f"Database session rolled back: {e}",
            extra={"event": "database.session.rolled_back", "error_type": type(e).__name__},
        )
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    """Return the initialised engine."""
    if _engine is None:
        raise DatabaseConnectionError(
            "Database not initialized. Call init_database() before using get_engine()"
        )
    return _engine


def close_database() -> None:
    """Dispose of the engine. Safe to call when nothing was initialised."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connections closed", extra={"event": "database.closed"})
