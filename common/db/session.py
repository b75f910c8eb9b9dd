"""Async engine and the session factory every scoped session is opened from."""

from uuid import uuid4

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


def async_database_url(url: str) -> str:
    """Route plain postgresql:// URLs through the asyncpg driver."""
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://") :]
    return url


def engine_options(url: str, use_nullpool: bool) -> dict:
    """
    Engine keyword arguments for the API server or the sweep worker.

    The worker runs once and exits, so it opens a connection per operation
    (NullPool). The API server keeps a bounded pool.
    """
    options = {"echo": settings.debug, "pool_pre_ping": True}

    if "+asyncpg" in url:
        # PgBouncer in transaction mode cannot see asyncpg's per-connection statement names
        options["connect_args"] = {
            "prepared_statement_name_func": lambda: f"__asyncpg_{uuid4()}__",
        }

    if use_nullpool:
        options["poolclass"] = pool.NullPool
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_pool_overflow
        options["pool_recycle"] = 3600
    return options


ASYNC_DATABASE_URL = async_database_url(settings.database_url)

engine = create_async_engine(
    ASYNC_DATABASE_URL, **engine_options(ASYNC_DATABASE_URL, settings.db_use_nullpool)
)
logger.info(
    "Database engine configured",
    extra={
        "nullpool": settings.db_use_nullpool,
        "pool_size": None if settings.db_use_nullpool else settings.db_pool_size,
    },
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
