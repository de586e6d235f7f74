"""
Database configuration and session management.

This module sets up the SQLAlchemy engine and session factory for PostgreSQL.
"""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

# Base class for declarative models
Base = declarative_base()


@lru_cache
def get_engine() -> Engine:
    """
    Create the SQLAlchemy engine on first use.

    - pool_pre_ping: Verify connections are alive before using them
    - pool_size: Number of connections to keep in pool
    - max_overflow: Number of connections to allow beyond pool_size
    - statement_timeout: PostgreSQL aborts statements slower than
      ``database_timeout_seconds``
    """
    settings = get_settings()
    connect_args = {}
    if settings.database_url.startswith("postgresql"):
        timeout_ms = int(settings.database_timeout_seconds * 1000)
        connect_args["options"] = f"-c statement_timeout={timeout_ms}"
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        echo=settings.sql_debug,
        connect_args=connect_args,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the application engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=get_engine(),
    )


def init_db(engine: Engine | None = None) -> None:
    """
    Initialize the database by creating all tables.

    Note: In production, use Alembic migrations instead.
    """
    # Import models to ensure they are registered with Base
    from . import models_db  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
