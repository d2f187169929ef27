"""
Database configuration and session management.

Uses synchronous SQLAlchemy with session_scope pattern for transaction management.
The durable cache tier is the only consumer.
"""

from collections.abc import Generator
from contextlib import contextmanager

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lingomesh.core.config import settings
from lingomesh.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


# =============================================================================
# Database Engine Configuration
# =============================================================================


def get_engine_args(database_url: str) -> dict:
    """
    Get database engine arguments for the given URL.

    Returns:
        dict: Engine configuration arguments
    """
    args = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.debug,
    }

    # SQLite doesn't support connection pools in the same way
    if database_url.startswith("sqlite"):
        args["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            args["poolclass"] = StaticPool
    else:
        args["pool_size"] = settings.db_pool_size
        args["max_overflow"] = settings.db_max_overflow
        args["pool_recycle"] = 3600  # Recycle connections after 1 hour

    return args


def create_db_engine(database_url: str | None = None) -> sa.Engine:
    """Create an engine for the configured (or given) database URL."""
    url = database_url or settings.database_url
    return sa.create_engine(url, **get_engine_args(url))


def create_session_factory(engine: sa.Engine) -> sessionmaker[Session]:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# Process-wide engine and session factory, used by the API and Celery workers
engine = create_db_engine()
SessionLocal = create_session_factory(engine)


# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope for database operations.

    This context manager handles session lifecycle:
    - Creates a new session
    - Commits on successful completion
    - Rolls back on exception
    - Closes the session in all cases

    Yields:
        Session: SQLAlchemy database session
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database transaction failed, rolling back: {e}")
        raise
    finally:
        session.close()


# =============================================================================
# Database Initialization and Health Check
# =============================================================================


def init_db(db_engine: sa.Engine | None = None) -> None:
    """
    Initialize the database.

    Verifies connectivity and creates missing tables. Alembic migrations remain
    the source of truth for production schemas.
    """
    from lingomesh.models import TranslationCacheEntry  # noqa: F401  (registers table)

    target = db_engine or engine
    try:
        with target.connect() as conn:
            conn.execute(sa.text("SELECT 1"))
        Base.metadata.create_all(bind=target)
        logger.info(f"Database connection established: {settings.db_vendor}")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}", exc_info=True)
        raise


def check_db_health(db_engine: sa.Engine | None = None) -> bool:
    """
    Check if the database is accessible and healthy.

    Returns:
        bool: True if database is healthy, False otherwise
    """
    try:
        with (db_engine or engine).connect() as conn:
            conn.execute(sa.text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def close_db(db_engine: sa.Engine | None = None) -> None:
    """
    Close all database connections.

    This function should be called at application shutdown.
    """
    try:
        (db_engine or engine).dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}", exc_info=True)
