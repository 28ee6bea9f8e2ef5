"""Pytest configuration for test isolation.

The application reads its configuration from the environment
(``DATABASE_URL``, ``BALANCE_USER_ID``, ``BALANCE_LOG_LEVEL``,
``BALANCE_NOTIFY_LOG_LEVEL``, ``BALANCE_IMPORT_WORKERS``). A developer's shell or a stray ``.env`` must not
leak into tests, so an autouse fixture clears those variables and runs each
test from its own temporary working directory.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

_ENV_VARS = (
    "DATABASE_URL",
    "BALANCE_USER_ID",
    "BALANCE_LOG_LEVEL",
    "BALANCE_NOTIFY_LOG_LEVEL",
    "BALANCE_IMPORT_WORKERS",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # ``load_dotenv`` in the CLI looks for ``.env`` in the working directory.
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def database_url(tmp_path: Path) -> Iterator[str]:
    """A fresh SQLite database with the full schema."""

    from db.client import dispose_engines

    from tests.helpers.db import bootstrap_sqlite_db

    url = bootstrap_sqlite_db(tmp_path / "db" / "balance.sqlite3")
    yield url
    dispose_engines()
