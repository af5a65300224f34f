"""
Database connection and session management.

Provides the SQLAlchemy engine factory, session factory and a session
context manager for the SQL record store and CLI commands.
"""

import logging
import time
from pathlib import Path
from typing import Generator, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, event, make_url
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from vidqa.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SLOW_QUERY_SECONDS = 0.5


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine with pooling suited to the database type.

    In-memory SQLite uses a single shared connection so the database
    survives across sessions. File-backed SQLite gets a connection per
    thread, which the pipeline workers need.
    """
    if database_url.startswith("sqlite"):
        in_memory = database_url in ("sqlite://", "sqlite:///:memory:")
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
            echo=echo,
        )
    else:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before use
            echo=echo,
        )

    if echo:
        _log_slow_queries(engine)

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def engine_from_settings(settings: Optional[Settings] = None) -> Engine:
    settings = settings or get_settings()
    if settings.is_sqlite:
        database = make_url(settings.database_url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    return create_db_engine(settings.database_url, echo=settings.log_level == "DEBUG")


@contextmanager
def get_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_session(SessionLocal) as db:
            db.query(Video).all()
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine, drop: bool = False):
    """
    Initialize database tables.

    Call this on service startup to ensure all tables exist.
    """
    from vidqa.core.models.base import Base

    # Import all models so they're registered with Base
    from vidqa.core.models import video  # noqa: F401

    if drop:
        logger.info("Dropping database tables...")
        Base.metadata.drop_all(bind=engine)

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def _log_slow_queries(engine: Engine):
    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total = time.time() - conn.info["query_start_time"].pop()
        if total > SLOW_QUERY_SECONDS:
            logger.warning(f"Slow query ({total:.2f}s): {statement[:100]}...")
