"""
Database configuration and session management.

This module sets up the SQLAlchemy engine and session factory, and provides
a transactional session scope used by every store operation.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    In-memory SQLite databases share a single connection (``StaticPool``) so
    every session sees the same data. SQLite foreign keys are switched on so
    cascade deletes behave like they do on PostgreSQL.
    """
    kwargs: dict = {"echo": echo, "future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # type: ignore
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a configured session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,  # Returned records are read after commit
    )


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Transactional scope around a series of operations.

    Commits when the block exits normally. On any exception the whole
    transaction is rolled back and the exception is re-raised, so callers
    never observe a partially applied change.

    Example:
        ```python
        with session_scope(factory) as db:
            db.add(record)
        ```
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database transaction failed: {e}")
        raise
    except Exception:
        # Validation and lookup errors are expected business outcomes.
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(engine: Engine) -> None:
    """
    Create all tables defined on ``Base``.

    Safe to call multiple times; existing tables are left alone.
    """
    # Import models so they register with Base.metadata
    from clinicsched.storage import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create database tables: {e}")
        raise


def drop_tables(engine: Engine) -> None:
    """
    Drop all tables defined on ``Base``.

    WARNING: This permanently deletes all data in the tables.
    """
    from clinicsched.storage import models  # noqa: F401

    try:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to drop database tables: {e}")
        raise
