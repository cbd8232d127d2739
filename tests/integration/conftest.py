import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from docanalysis.config.settings import Settings
from docanalysis.database.connection import apply_schema, close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docanalysis_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def run_id(integration_pool: None) -> Generator[str, None, None]:
    """Unique prefix for logical/request ids; rows carrying it are removed afterwards."""
    prefix = f"it-{uuid.uuid4().hex[:12]}"
    yield prefix
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM analysis_jobs WHERE request_id LIKE %s", (f"{prefix}%",))
            cur.execute("DELETE FROM artifacts WHERE logical_id LIKE %s", (f"{prefix}%",))
        conn.commit()
