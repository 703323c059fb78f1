"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy.orm import Session, sessionmaker

from app.database.engine import engine
from app.services.storage_service import SQLRecordRepository, StorageService

logger = logging.getLogger("app.database")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Yields:
        Database session, rolled back if the request fails
    """
    session = SessionLocal()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {e}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def storage_session() -> Iterator[StorageService]:
    """
    Storage service over a fresh session, for code running outside a request.

    Celery tasks and scripts use this; the session is committed on success and
    rolled back on error.
    """
    session = SessionLocal()
    try:
        yield StorageService(SQLRecordRepository(session))
        session.commit()
    except Exception as e:
        logger.error(f"Storage session error: {e}")
        session.rollback()
        raise
    finally:
        session.close()
