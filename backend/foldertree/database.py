"""Database configuration and session management.

The engine (and its connection pool) is created once per process here;
repositories only ever see a ``Session`` checked out from it.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import Settings, settings

DATABASE_URL = settings.database_url


def create_db_engine(config: Settings) -> Engine:
    """Build an engine tuned for the configured backend."""
    if config.is_postgresql:
        return create_engine(
            config.database_url,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=config.db_pool_recycle,
            # Detects stale connections before use instead of failing the request.
            pool_pre_ping=True,
            connect_args={"options": f"-c statement_timeout={config.db_statement_timeout_ms}"},
        )

    db_engine = create_engine(
        config.database_url,
        connect_args={
            "check_same_thread": False,
            # sqlite3 busy timeout, in seconds. Writers queued behind
            # TreeStore.lock_user_tree wait at most this long.
            "timeout": config.db_statement_timeout_ms / 1000,
        },
    )

    # SQLite defaults foreign_keys to OFF; the parent_id reference is
    # only enforced when it is switched on for every connection.
    @event.listens_for(db_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return db_engine


engine = create_db_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(db_engine: Engine = engine) -> None:
    """Create tables and indexes that do not exist yet."""
    from . import models  # noqa: F401  (registers mappers on Base.metadata)

    Base.metadata.create_all(bind=db_engine)


def get_db():
    """Dependency for FastAPI routes to get database session.

    Rolls back the transaction on unhandled exceptions so that the
    connection is returned to the pool in a clean state.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
