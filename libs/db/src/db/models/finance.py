from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# Unscaled so amounts keep every digit the records carry; read back as ``float``.
_AMOUNT = Numeric(asdecimal=False)


# ---------------------------
# Core: bal_expenses
# ---------------------------


class BalExpense(Base):
    __tablename__ = "bal_expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(_AMOUNT, nullable=False)
    # Usually ISO ``YYYY-MM-DD``; unbounded text so imported values round-trip verbatim.
    date: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bal_expenses_amount_positive"),
        Index("ix_bal_expenses_user_id", "user_id"),
    )


# ---------------------------
# Core: bal_income
# ---------------------------


class BalIncome(Base):
    __tablename__ = "bal_income"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(_AMOUNT, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bal_income_amount_positive"),
        Index("ix_bal_income_user_id", "user_id"),
    )


# ---------------------------
# Core: bal_budgets
# ---------------------------


class BalBudget(Base):
    __tablename__ = "bal_budgets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[float] = mapped_column(_AMOUNT, nullable=False)
    # ``YYYY-MM``
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Upserts target this key: re-saving (user, category, month) overwrites amount.
    __table_args__ = (
        UniqueConstraint("user_id", "category", "month_year", name="uq_bal_budgets_owner_key"),
        CheckConstraint("amount > 0", name="ck_bal_budgets_amount_positive"),
    )


# ---------------------------
# Reference: bal_categories
# ---------------------------


class BalCategory(Base):
    __tablename__ = "bal_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_bal_categories_user_name"),)


# ---------------------------
# Reference: bal_profiles
# ---------------------------


class BalProfile(Base):
    __tablename__ = "bal_profiles"

    # One row per user; the primary key is the user id itself.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)


__all__ = [
    "Base",
    "BalBudget",
    "BalCategory",
    "BalExpense",
    "BalIncome",
    "BalProfile",
]
