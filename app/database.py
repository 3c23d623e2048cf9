"""
Database engine, session factory and the FastAPI session dependency.

The `Database` object owns the connection pool. It is constructed by whoever owns the
process lifecycle (main.py startup, tests, scripts) and must be closed by the same owner.
"""
import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for declarative ORM models.
Base = declarative_base()


class Database:
    """Connection pool + session factory for one database URL."""

    def __init__(
        self,
        url: str,
        *,
        pool_min: int = 5,
        pool_max: int = 20,
        pool_timeout: float = 30.0,
        echo: bool = False,
    ):
        self.url = url
        if url.startswith("sqlite"):
            # In-memory SQLite must share one connection across sessions
            self.engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        else:
            self.engine = create_engine(
                url,
                pool_size=pool_min,
                max_overflow=max(pool_max - pool_min, 0),
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
                echo=echo,
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self._closed = False

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_min=settings.DB_POOL_MIN,
            pool_max=settings.DB_POOL_MAX,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    def session(self) -> Session:
        return self.SessionLocal()

    def create_all(self) -> None:
        from app import models  # noqa: F401 - register all models with Base

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return False

    def close(self) -> None:
        """Dispose the pool. Checked-out connections are closed when returned."""
        if self._closed:
            return
        self.engine.dispose()
        self._closed = True
        logger.info("Database pool closed")


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency to get a DB session for a single request."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database is not initialised; startup did not run")
    db = database.session()
    try:
        yield db
    finally:
        # Ensure the session is always closed after the request is finished.
        db.close()
