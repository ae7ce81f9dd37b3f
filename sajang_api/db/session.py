"""Database session management.

The engine is built lazily on first use so importing the app (tests,
migrations) does not require a reachable database.
"""

from functools import lru_cache
from typing import Generator

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from sajang_api.config import env
from sajang_api.db.engine import build_engine, build_sessionmaker


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Build the process-wide engine from DATABASE_URL.

    Raises:
        ValueError: If DATABASE_URL is missing in production
    """
    return build_engine(env.get_database_url())


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker[Session]:
    return build_sessionmaker(get_engine())


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
