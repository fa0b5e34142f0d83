from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from invoice_ingest.config.settings import Settings
from invoice_ingest.logging.logger import Log

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
    )


def init_pool(settings: Settings, max_size: int | None = None) -> None:
    """Open the global pool, sized for the concurrent upload limit."""
    global _pool  # noqa: PLW0603
    size = max_size or max(2, settings.max_concurrent_uploads + 1)
    _pool = ConnectionPool(build_conninfo(settings), min_size=1, max_size=size, open=True)
    _pool.wait(timeout=10)
    Log.info(f"Database pool ready for {settings.db_host}:{settings.db_port}/{settings.db_database}")


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn
