from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from db import metadata

_ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "libs" / "db" / "alembic"


def _config(url: str) -> Config:
    # No ini file: keeps alembic from reconfiguring logging for the test process.
    cfg = Config()
    cfg.set_main_option("script_location", str(_ALEMBIC_DIR))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_creates_the_orm_tables_and_downgrade_drops_them(tmp_path, monkeypatch):
    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)
    cfg = _config(url)

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert set(metadata.tables) <= tables
        budget_uniques = inspect(engine).get_unique_constraints("bal_budgets")
        assert any(
            set(u["column_names"]) == {"user_id", "category", "month_year"} for u in budget_uniques
        )

        command.downgrade(cfg, "base")
        assert not set(metadata.tables) & set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
