"""
Database session management.
One session per unit of work; commit on success, rollback on error, always close.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fluentrepo.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,  # Verify connections before use
)

# Session factory: one session per unit of work
SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """Yield a session. Rolls back and re-raises on error, closes on exit."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        logger.warning("Rolling back session after error", exc_info=True)
        session.rollback()
        raise
    finally:
        session.close()
