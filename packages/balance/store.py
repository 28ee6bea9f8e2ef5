"""Persistence for ``balance`` records on the shared ``db`` library.

:class:`SqlFinanceStore` is the store the ledger talks to. Every method takes
the owning ``user_id`` explicitly and scopes reads and writes to it; a missing
user raises :class:`~balance.errors.NotAuthenticatedError` before a session is
opened. Driver and constraint failures surface as
:class:`~balance.errors.StoreError` carrying the database's message verbatim.

Each call runs in its own transaction (``db.client.session_scope``). Calls are
independent of one another: a failed income insert does not roll back an
expense insert that already committed.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from db.client import get_engine, session_scope
from db.models.finance import BalBudget, BalCategory, BalExpense, BalIncome, BalProfile
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotAuthenticatedError, StoreError
from .logging_setup import get_logger
from .models import Budget, Expense, Income, UserProfile, dedupe_budgets

_logger = get_logger("balance.store")


def _to_expense(row: BalExpense) -> Expense:
    return Expense(
        id=row.id,
        description=row.description,
        amount=float(row.amount),
        date=row.date,
        category=row.category,
    )


def _to_income(row: BalIncome) -> Income:
    return Income(
        id=row.id,
        description=row.description,
        amount=float(row.amount),
        date=row.date,
        source=row.source,
    )


def _to_budget(row: BalBudget) -> Budget:
    return Budget(
        id=row.id,
        category=row.category,
        amount=float(row.amount),
        month_year=row.month_year,
    )


class SqlFinanceStore:
    """Store interface for expenses, income, budgets, categories and profiles."""

    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self, operation: str, user_id: str | None) -> Iterator[Session]:
        if not user_id:
            raise NotAuthenticatedError(operation)
        _logger.debug("%s (user=%s)", operation, user_id)
        try:
            with session_scope(database_url=self._database_url) as session:
                yield session
        except SQLAlchemyError as exc:
            message = str(getattr(exc, "orig", None) or exc)
            _logger.error("store operation %r failed: %s", operation, message)
            raise StoreError(operation, message) from exc

    def _dialect(self) -> str:
        return get_engine(database_url=self._database_url).dialect.name

    def _insert(self, model: type[Any]) -> Any:
        """Dialect-specific ``INSERT`` construct supporting ``ON CONFLICT``."""

        dialect = self._dialect()
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise StoreError("upsert", f"Upsert is not supported on dialect {dialect!r}")

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def select_expenses(self, user_id: str) -> list[Expense]:
        with self._session("load expenses", user_id) as s:
            rows = s.scalars(
                select(BalExpense)
                .where(BalExpense.user_id == user_id)
                .order_by(BalExpense.date, BalExpense.created_at)
            ).all()
            return [_to_expense(r) for r in rows]

    def insert_expenses(self, user_id: str, expenses: Sequence[Expense]) -> list[Expense]:
        """Insert ``expenses`` under ``user_id``; identifiers are always assigned here."""

        with self._session("import expenses", user_id) as s:
            rows = [
                BalExpense(
                    user_id=user_id,
                    description=e.description,
                    amount=e.amount,
                    date=e.date,
                    category=e.category,
                )
                for e in expenses
            ]
            s.add_all(rows)
            s.flush()
            _logger.info("inserted %d expenses for user %s", len(rows), user_id)
            return [_to_expense(r) for r in rows]

    def update_expense(self, user_id: str, expense: Expense) -> Expense:
        with self._session("update expense", user_id) as s:
            result = s.execute(
                update(BalExpense)
                .where(BalExpense.id == expense.id, BalExpense.user_id == user_id)
                .values(
                    description=expense.description,
                    amount=expense.amount,
                    date=expense.date,
                    category=expense.category,
                )
            )
            if result.rowcount == 0:
                raise StoreError("update expense", f"Expense {expense.id} not found")
            return expense

    def delete_expense(self, user_id: str, expense_id: str) -> None:
        with self._session("delete expense", user_id) as s:
            s.execute(
                delete(BalExpense).where(
                    BalExpense.id == expense_id, BalExpense.user_id == user_id
                )
            )

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def select_income(self, user_id: str) -> list[Income]:
        with self._session("load income", user_id) as s:
            rows = s.scalars(
                select(BalIncome)
                .where(BalIncome.user_id == user_id)
                .order_by(BalIncome.date, BalIncome.created_at)
            ).all()
            return [_to_income(r) for r in rows]

    def insert_income(self, user_id: str, income: Sequence[Income]) -> list[Income]:
        with self._session("import income", user_id) as s:
            rows = [
                BalIncome(
                    user_id=user_id,
                    description=i.description,
                    amount=i.amount,
                    date=i.date,
                    source=i.source,
                )
                for i in income
            ]
            s.add_all(rows)
            s.flush()
            _logger.info("inserted %d income entries for user %s", len(rows), user_id)
            return [_to_income(r) for r in rows]

    def update_income(self, user_id: str, income: Income) -> Income:
        with self._session("update income", user_id) as s:
            result = s.execute(
                update(BalIncome)
                .where(BalIncome.id == income.id, BalIncome.user_id == user_id)
                .values(
                    description=income.description,
                    amount=income.amount,
                    date=income.date,
                    source=income.source,
                )
            )
            if result.rowcount == 0:
                raise StoreError("update income", f"Income {income.id} not found")
            return income

    def delete_income(self, user_id: str, income_id: str) -> None:
        with self._session("delete income", user_id) as s:
            s.execute(
                delete(BalIncome).where(BalIncome.id == income_id, BalIncome.user_id == user_id)
            )

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def select_budgets(self, user_id: str) -> list[Budget]:
        with self._session("load budgets", user_id) as s:
            rows = s.scalars(
                select(BalBudget)
                .where(BalBudget.user_id == user_id)
                .order_by(BalBudget.month_year, BalBudget.category)
            ).all()
            return [_to_budget(r) for r in rows]

    def upsert_budgets(self, user_id: str, budgets: Sequence[Budget]) -> list[Budget]:
        """Insert or overwrite budgets keyed on ``(user_id, category, month_year)``.

        Rows sharing a key within ``budgets`` collapse to the last one before
        the statement is built; a single ``ON CONFLICT`` statement may not touch
        the same row twice. Returns the persisted budgets in batch order.
        """

        batch = dedupe_budgets(budgets, owner=user_id)
        if not batch:
            return []
        with self._session("import budgets", user_id) as s:
            stmt = self._insert(BalBudget).values(
                [
                    {
                        "id": str(uuid.uuid4()),
                        "user_id": user_id,
                        "category": b.category,
                        "amount": b.amount,
                        "month_year": b.month_year,
                    }
                    for b in batch
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[BalBudget.user_id, BalBudget.category, BalBudget.month_year],
                set_={"amount": stmt.excluded.amount, "updated_at": func.now()},
            )
            s.execute(stmt)

            keys = {(b.category, b.month_year) for b in batch}
            stored = {
                (r.category, r.month_year): r
                for r in s.scalars(select(BalBudget).where(BalBudget.user_id == user_id))
                if (r.category, r.month_year) in keys
            }
            _logger.info("upserted %d budgets for user %s", len(batch), user_id)
            return [_to_budget(stored[(b.category, b.month_year)]) for b in batch]

    def delete_budget(self, user_id: str, category: str, month_year: str) -> None:
        with self._session("delete budget", user_id) as s:
            s.execute(
                delete(BalBudget).where(
                    BalBudget.user_id == user_id,
                    BalBudget.category == category,
                    BalBudget.month_year == month_year,
                )
            )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def select_categories(self, user_id: str) -> list[str]:
        with self._session("load categories", user_id) as s:
            return list(
                s.scalars(select(BalCategory.name).where(BalCategory.user_id == user_id))
            )

    def insert_categories(self, user_id: str, names: Iterable[str]) -> None:
        with self._session("add categories", user_id) as s:
            s.add_all(BalCategory(user_id=user_id, name=n) for n in names)

    def delete_categories(self, user_id: str, names: Iterable[str]) -> None:
        names = list(names)
        if not names:
            return
        with self._session("delete categories", user_id) as s:
            s.execute(
                delete(BalCategory).where(
                    BalCategory.user_id == user_id, BalCategory.name.in_(names)
                )
            )

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, user_id: str) -> UserProfile:
        """Return the user's profile; a user without a row gets an empty one."""

        with self._session("load profile", user_id) as s:
            row = s.get(BalProfile, user_id)
            if row is None:
                return UserProfile(id=user_id)
            return UserProfile(id=row.id, first_name=row.first_name, last_name=row.last_name)

    def upsert_profile(
        self, user_id: str, *, first_name: str | None, last_name: str | None
    ) -> UserProfile:
        with self._session("update profile", user_id) as s:
            stmt = self._insert(BalProfile).values(
                id=user_id, first_name=first_name, last_name=last_name
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[BalProfile.id],
                set_={"first_name": stmt.excluded.first_name, "last_name": stmt.excluded.last_name},
            )
            s.execute(stmt)
            return UserProfile(id=user_id, first_name=first_name, last_name=last_name)


__all__ = ["SqlFinanceStore"]
