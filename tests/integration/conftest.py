import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from invoice_ingest.config.settings import Settings
from invoice_ingest.database import connection
from invoice_ingest.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(connection.__file__).parent / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "invoices_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_HOST, DB_PORT, DB_DATABASE, DB_USERNAME and DB_PASSWORD"
        )
    try:
        schema = SCHEMA_PATH.read_text()
        with get_connection() as conn:
            conn.execute(schema)
            conn.commit()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def db_user(db_conn: psycopg.Connection[Any]) -> Generator[str, None, None]:
    """A throwaway user id whose invoices are deleted after the test."""
    user_id = f"it-{uuid.uuid4().hex[:12]}"
    yield user_id
    with db_conn.cursor() as cur:
        cur.execute("DELETE FROM invoices WHERE user_id = %s", (user_id,))
    db_conn.commit()


@pytest.fixture
def local_settings(tmp_path: Path) -> Settings:
    """Settings for a database-free run: example provider, local disk, memory store."""
    return Settings(
        extraction_provider="example",
        storage_backend="local",
        storage_local_root=str(tmp_path / "objects"),
        persistence_backend="memory",
    )
