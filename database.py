"""
Database connection and session management for CareLedger
"""

import logging
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator

from config import settings


logger = logging.getLogger(__name__)


# Create SQLAlchemy engine
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite busy timeout bounds every blocking write
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.DATABASE_TIMEOUT_SECONDS,
        },
        poolclass=StaticPool,
        echo=settings.DATABASE_ECHO
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    # PostgreSQL: connect and statement timeouts
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_timeout=settings.DATABASE_TIMEOUT_SECONDS,
        connect_args={
            "connect_timeout": settings.DATABASE_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={settings.DATABASE_TIMEOUT_SECONDS * 1000}",
        },
    )

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get database session.
    Automatically closes session after request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database session.
    Use this for background tasks or non-FastAPI contexts.

    Usage:
        with get_db_context() as db:
            db.query(Medication).all()
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


def init_db() -> None:
    """
    Initialize database tables.
    Creates all tables defined in models.
    """
    # Import models to register them with Base
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


class DatabaseHealthCheck:
    """Database health check utilities"""

    @staticmethod
    def is_connected() -> bool:
        """Check if database is connected"""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False


# Export commonly used items
__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "get_db",
    "get_db_context",
    "init_db",
    "DatabaseHealthCheck"
]
