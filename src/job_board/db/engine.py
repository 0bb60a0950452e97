"""
Database engine and session management
PostgreSQL in staging/prod, SQLite allowed for local development and tests
"""
import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ..config import config

logger = logging.getLogger(__name__)


def create_database_engine(database_url: str):
    """Create the engine with settings appropriate to the backend"""
    if database_url.startswith("sqlite"):
        logger.info("DATABASE_URL configured for SQLite (local development)")
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    logger.info(
        f"PostgreSQL engine configured: pool_size={config.DB_POOL_SIZE}, "
        f"max_overflow={config.DB_MAX_OVERFLOW}, pool_recycle={config.DB_POOL_RECYCLE}s"
    )
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_timeout=config.DB_POOL_TIMEOUT,
        # Read committed is the minimum the pending-transaction uniqueness check relies on
        isolation_level="READ COMMITTED",
        echo=False,
        connect_args={
            "connect_timeout": 10,
            "application_name": "job_board",
        },
    )


engine = create_database_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator:
    """
    Get database session
    Use as FastAPI dependency: db: Session = Depends(get_db)
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
