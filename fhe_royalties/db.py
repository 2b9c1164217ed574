# fhe_royalties/db.py
"""Database session and connection management for the royalty ledger"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from fhe_royalties.models.db import Base, RewardPoolRecord
from fhe_royalties.db_config import DatabaseManager

logger = logging.getLogger(__name__)

class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None

    @property
    def initialized(self) -> bool:
        return self._SessionLocal is not None

    def init(self, url: Optional[str] = None) -> None:
        """
        Initialize database connection and create tables.

        This should be called once at application startup. The reward pool
        row is created here so deposits can always be applied as an
        in-place increment.

        Args:
            url: Database URL, defaults to the DATABASE_URL setting

        Raises:
            ValueError: If the URL is not supported
            SQLAlchemyError: If database initialization fails
        """
        options = DatabaseManager.initialize_from_env(url)
        try:
            self._engine = create_engine(options.url, **options.engine_kwargs)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine, expire_on_commit=False)

            with self.session() as session:
                if session.get(RewardPoolRecord, RewardPoolRecord.SINGLETON_ID) is None:
                    session.add(RewardPoolRecord(id=RewardPoolRecord.SINGLETON_ID, balance=0))

            logger.info("Database initialized successfully")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of database operations.

        Usage:
            with db.session() as session:
                session.add(some_object)

        The session is committed on a clean exit and rolled back when the
        block raises.

        Yields:
            Session: SQLAlchemy database session

        Raises:
            RuntimeError: If database not initialized
            SQLAlchemyError: If database operations fail
        """
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Check the database answers a trivial query"""
        if not self._engine:
            return False
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database ping failed: {e}")
            return False

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None

# Global database instance
db = Database()
