"""
Database session management with SQLAlchemy.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
from contextlib import contextmanager

from procureflow.core.config import settings
from procureflow.core.logging import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    # SQLite (dev/tests) shares one in-process connection
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Create tables and run startup tasks.

    Startup order:
    1. Register models and create any missing tables
    2. Seed demo RFQs ONLY if SEED_DEMO=true (never in production)
    """
    from procureflow.db import models  # noqa

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database schema ready: {len(Base.metadata.tables)} tables")

    if settings.SEED_DEMO:
        from procureflow.db.seed import seed_demo_rfqs
        from procureflow.repositories import rfq_repository, quote_repository
        count = seed_demo_rfqs(rfq_repository, quote_repository)
        logger.info(f"SEED_DEMO=true: seeded {count} demo RFQ(s)")
    else:
        logger.info("SEED_DEMO=false: Skipping demo data seeding")
