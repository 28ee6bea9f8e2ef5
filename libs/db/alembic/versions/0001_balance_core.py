# ruff: noqa: I001
"""Personal finance core tables: expenses, income, budgets, categories, profiles.

Revision ID: 0001_balance_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_balance_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _amount() -> sa.Column:
    return sa.Column("amount", sa.Numeric(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "bal_expenses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _amount(),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount > 0", name="ck_bal_expenses_amount_positive"),
    )
    op.create_index("ix_bal_expenses_user_id", "bal_expenses", ["user_id"])

    op.create_table(
        "bal_income",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _amount(),
        sa.Column("date", sa.Text(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount > 0", name="ck_bal_income_amount_positive"),
    )
    op.create_index("ix_bal_income_user_id", "bal_income", ["user_id"])

    # Budgets are keyed by (user, category, month); upserts conflict on it.
    op.create_table(
        "bal_budgets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        _amount(),
        sa.Column("month_year", sa.String(7), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "category", "month_year", name="uq_bal_budgets_owner_key"
        ),
        sa.CheckConstraint("amount > 0", name="ck_bal_budgets_amount_positive"),
    )

    op.create_table(
        "bal_categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.UniqueConstraint("user_id", "name", name="uq_bal_categories_user_name"),
    )

    op.create_table(
        "bal_profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("bal_profiles")
    op.drop_table("bal_categories")
    op.drop_table("bal_budgets")
    op.drop_index("ix_bal_income_user_id", table_name="bal_income")
    op.drop_table("bal_income")
    op.drop_index("ix_bal_expenses_user_id", table_name="bal_expenses")
    op.drop_table("bal_expenses")
