"""
Database connection management for the extraction stage.

PostgreSQL in deployments; any SQLAlchemy URL (SQLite for tests and local runs)
can be passed explicitly.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator, Optional
import logging

from extraction_service.core.config import get_settings
from extraction_service.models.unified_models import Base

logger = logging.getLogger(__name__)


def _is_sqlite_memory(url: str) -> bool:
    """True for in-memory SQLite URLs (sqlite://, sqlite:///:memory:, mode=memory)."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return False
    return parsed.database in (None, "", ":memory:") or parsed.query.get("mode") == "memory"


class Database:
    """SQLAlchemy connection manager."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or get_settings().database_url
        self.engine = None
        self.SessionLocal = None
        self._initialize_engine()

    def _initialize_engine(self):
        """Initializes SQLAlchemy engine for the configured URL."""
        try:
            if _is_sqlite_memory(self.url):
                # Single shared connection so in-memory databases survive across sessions
                self.engine = create_engine(
                    self.url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False
                )
            elif self.url.startswith("sqlite"):
                # One connection per session: a rollback must never reach another session's transaction
                self.engine = create_engine(
                    self.url,
                    connect_args={"check_same_thread": False},
                    echo=False
                )
            else:
                settings = get_settings()
                self.engine = create_engine(
                    self.url,
                    poolclass=QueuePool,
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                    pool_recycle=settings.DB_POOL_RECYCLE,
                    pool_pre_ping=True,
                    echo=False  # Disable SQLAlchemy logging completely
                )

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )

            logger.info(f"Database connection initialized ({self.engine.dialect.name})")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            raise

    def get_session(self) -> Session:
        """Returns a new database session."""
        if not self.SessionLocal:
            raise RuntimeError("Database not initialized")
        return self.SessionLocal()

    @contextmanager
    def get_write_session_context(self) -> Generator[Session, None, None]:
        """Context manager for write operations: commit on success, rollback on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    @contextmanager
    def get_read_session_context(self) -> Generator[Session, None, None]:
        """Context manager for read operations (never commits)."""
        session = self.get_session()
        try:
            yield session
        finally:
            session.rollback()
            session.close()

    def create_tables(self):
        """Creates all tables in the database."""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    def dispose(self):
        """Release pooled connections."""
        if self.engine is not None:
            self.engine.dispose()

