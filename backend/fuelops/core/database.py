"""Database configuration and session management.

This module constructs an asynchronous SQLAlchemy engine and session
factory for the application.  The connection string comes from
`DATABASE_URL`.  When it is unset a local SQLite database is used in
development if `DB_DEV_FALLBACK_SQLITE` allows it.
"""

from __future__ import annotations

import logging
import os
from typing import AsyncGenerator, Dict, Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base

from fuelops.core.config import settings

logger = logging.getLogger(__name__)

USING_SQLITE_FALLBACK: bool = False
LAST_DB_INIT_ERROR: Optional[str] = None


def normalize_database_url(raw_url: str) -> str:
    """Return ``raw_url`` rewritten for an async driver.

    - ``sqlite`` becomes ``sqlite+aiosqlite``
    - ``postgres``/``postgresql``/``postgresql+psycopg2``/``postgresql+asyncpg``
      become ``postgresql+psycopg`` with ``sslmode=require`` unless set.
    """
    try:
        url_obj = make_url(raw_url)
    except ArgumentError:
        return raw_url
    driver = url_obj.drivername or ""
    if driver == "sqlite":
        return url_obj.set(drivername="sqlite+aiosqlite").render_as_string(hide_password=False)
    if driver in {"postgresql", "postgres", "postgresql+psycopg2", "postgresql+asyncpg"}:
        q = dict(url_obj.query or {})
        if not q.get("sslmode"):
            q["sslmode"] = "require"
        return url_obj.set(drivername="postgresql+psycopg", query=q).render_as_string(hide_password=False)
    return url_obj.render_as_string(hide_password=False)


# -----------------------------------------------------------------------------
# Determine the connection string to use.

db_url = settings.DATABASE_URL or os.getenv("DATABASE_URL")
if not db_url:
    if not settings.DB_DEV_FALLBACK_SQLITE:
        raise RuntimeError(
            "No database URL provided via DATABASE_URL; with "
            "DB_DEV_FALLBACK_SQLITE=false, a Postgres URL is required."
        )
    db_url = settings.SQLITE_FALLBACK_URL
    USING_SQLITE_FALLBACK = True

db_url = normalize_database_url(db_url)

engine_kwargs: dict[str, Any] = dict(echo=False, pool_pre_ping=True)

engine = create_async_engine(db_url, **engine_kwargs)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Declarative base
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields a database session.

    This function is intended for FastAPI dependency injection.  Each
    session is scoped to the request and closed after use.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables declared on the declarative `Base`.

    Typically called during application startup.  Errors are recorded for
    the debug endpoint and re-raised.
    """
    global LAST_DB_INIT_ERROR
    try:
        async with engine.begin() as conn:
            # Import all models to ensure metadata is populated
            from fuelops.models import tables  # noqa: F401
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        LAST_DB_INIT_ERROR = str(e)
        logger.error("DB init failed: %s", e)
        raise


def get_db_debug_info() -> Dict[str, Any]:
    """Return non-sensitive information about the current DB engine for debugging."""
    info: Dict[str, Any] = {
        "using_sqlite_fallback": USING_SQLITE_FALLBACK,
        "environment": (settings.ENVIRONMENT or "development"),
    }
    if LAST_DB_INIT_ERROR:
        info["last_db_init_error"] = LAST_DB_INIT_ERROR
    url_obj = engine.url
    info.update(
        {
            "drivername": url_obj.drivername,
            "host": url_obj.host,
            "port": url_obj.port,
            "database": url_obj.database,
            "url": url_obj.render_as_string(hide_password=True),
        }
    )
    return info
