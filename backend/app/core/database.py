"""Database configuration and session management"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Any, Dict, Generator
from app.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options per backend; SQLite needs cross-thread access for the threadpool."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


_database_url = settings.get_database_url()

engine = create_engine(
    _database_url,
    echo=settings.DEBUG,
    **_engine_options(_database_url)
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()

# Import models after Base is defined so metadata is populated.
from app import models  # noqa: E402,F401


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session

    Yields:
        Session: Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize database according to configured strategy.

    DB_INIT_MODE:
      - create_all: create missing tables from model metadata
      - off: skip initialization
    """
    mode = settings.DB_INIT_MODE.lower().strip()
    if mode == "off":
        logger.info("DB initialization skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured via create_all")
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {settings.DB_INIT_MODE}")
