from __future__ import annotations

import os
from pathlib import Path
import tempfile

# Point the app at a throwaway SQLite file before any pawgate module reads settings.
_DB_PATH = Path(tempfile.mkdtemp(prefix="pawgate-tests-")) / "pawgate.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ.setdefault("PARTNER_JWT_SECRET", "test-partner-secret")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from sqlalchemy import create_engine

from pawgate.domain.models import Base
from pawgate.persistence.db import engine


_sync_engine = create_engine(f"sqlite:///{_DB_PATH}")


@pytest.fixture(scope="session", autouse=True)
def create_schema() -> None:
    # Build tables from ORM metadata; migrations target Postgres.
    Base.metadata.create_all(_sync_engine)
    yield
    Base.metadata.drop_all(_sync_engine)
    _sync_engine.dispose()


@pytest.fixture(autouse=True)
def reset_tables(create_schema) -> None:
    # Keep every test isolated from rows written by earlier tests.
    with _sync_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture(autouse=True)
async def dispose_engine_between_tests() -> None:
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    yield
    await engine.dispose()
