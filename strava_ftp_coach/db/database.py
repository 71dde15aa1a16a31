"""SQLAlchemy engine and session handling for the coach database."""

import logging
from typing import Generator, Optional
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import config
from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or config.DATABASE_URL

        # One shared connection for SQLite: keeps in-memory databases alive and
        # lets the OAuth callback thread use the same file
        if self.database_url.startswith("sqlite"):
            self.engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(self.database_url)

        # Stores hand rows back as plain values after the session closes
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self):
        """Create activity, plan, recommendation, workout and token tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Tables ready on {self.engine.url.drivername}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on any error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        self.engine.dispose()


_db: Optional[Database] = None


def get_db() -> Database:
    """Shared database for the configured URL, created with its tables on first use."""
    global _db
    if _db is None:
        _db = Database()
        _db.create_tables()
    return _db


def close_db():
    """Dispose of the shared database; the next get_db() opens a new one."""
    global _db
    if _db is not None:
        _db.close()
        _db = None
