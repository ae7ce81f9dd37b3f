"""Database engine builder.

- Default pool: NullPool (Supabase pooler in transaction mode does the pooling)
- ENV: SAJANG_DB_POOL=nullpool|queuepool (default: nullpool)
- sqlite:// URLs are accepted for local runs and tests
"""

import logging
import os
import re
from typing import Any

from sqlalchemy import Engine, NullPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def build_engine(database_url: str) -> Engine:
    """
    Build SQLAlchemy engine.

    Args:
        database_url: Database URL.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        ValueError: If database_url is empty or SAJANG_DB_POOL is invalid.

    Environment Variables:
        SAJANG_DB_POOL: Pool mode - "nullpool" (default) | "queuepool"
        SAJANG_DB_POOL_SIZE: QueuePool size (default: 5, only for queuepool)
        SAJANG_DB_MAX_OVERFLOW: QueuePool overflow (default: 10, only for queuepool)
    """
    if not database_url:
        raise ValueError("database_url is required.")

    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    connect_args: dict[str, Any] = {}
    app_name = os.getenv("SAJANG_DB_APPLICATION_NAME", "sajang-api")
    if app_name:
        connect_args["application_name"] = app_name

    pool_mode = os.getenv("SAJANG_DB_POOL", "nullpool").lower()

    if pool_mode == "nullpool":
        engine = create_engine(
            database_url,
            poolclass=NullPool,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    elif pool_mode == "queuepool":
        pool_size = int(os.getenv("SAJANG_DB_POOL_SIZE", "5"))
        max_overflow = int(os.getenv("SAJANG_DB_MAX_OVERFLOW", "10"))
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=max_overflow,
            connect_args=connect_args,
        )
    else:
        raise ValueError(
            f"Invalid SAJANG_DB_POOL value: {pool_mode}. "
            "Must be 'nullpool' or 'queuepool'."
        )

    # DO NOT log full URL with password
    logger.debug(
        "Database engine created: pool=%s, url=%s",
        engine.pool.__class__.__name__,
        _mask_password(database_url),
    )
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """
    Build SQLAlchemy sessionmaker.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        sessionmaker instance configured with autocommit=False, autoflush=False.
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
