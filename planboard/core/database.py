"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support (SQLite in-memory via StaticPool)
- Table definitions for plan documents
"""
from typing import Optional
from contextlib import contextmanager
import logging
import os

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Text, Index, ForeignKey, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker

from planboard.core.config import settings

logger = logging.getLogger("planboard")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def _is_sqlite_memory(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"))


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if _is_sqlite_memory(url):
        # One shared connection, otherwise every checkout sees an empty database
        _engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.DB_ECHO,
        )
    elif url.startswith("sqlite"):
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.DB_ECHO,
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=settings.DB_ECHO,
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def dispose_engine() -> None:
    """Drop the current engine so the next call re-initializes it."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, ValueError) as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Plan documents. Searchable fields are denormalized into columns;
# `content` holds the full document as submitted.
plans = Table(
    'plans',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('uploader_id', String(100), nullable=False, index=True),
    Column('uploader_name', String(200), nullable=True),
    Column('stage_name', String(200), nullable=True),
    Column('doc_title', Text, nullable=True),
    Column('doc_details', Text, nullable=True),
    Column('views', Integer, nullable=False, default=0, server_default='0'),
    Column('content', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    Index('idx_plans_uploader_name', 'uploader_name'),
    Index('idx_plans_stage_name', 'stage_name'),
    Index('idx_plans_created_at', 'created_at'),
)

# Operator names referenced by a plan, one row per entry (ordered)
plan_operators = Table(
    'plan_operators',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('plan_id', String(64), ForeignKey('plans.id', ondelete='CASCADE'), nullable=False, index=True),
    Column('position', Integer, nullable=False),
    Column('name', String(200), nullable=False),
    Index('idx_plan_operators_plan_name', 'plan_id', 'name'),
)
