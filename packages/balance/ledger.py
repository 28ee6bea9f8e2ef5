"""Client-side cache of one user's financial data, kept in step with the store.

``FinancialData`` holds the expenses, income, budgets, categories and profile
of exactly one identity. The store is authoritative: every mutation calls the
store first and updates the cache only after the store confirms it. A failed
call raises and leaves the cache untouched. Switching identity drops the cache
and refetches.

Nothing here notifies the user; callers (the import orchestration, the CLI)
turn raised :class:`~balance.errors.BalanceError` values into messages.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import date
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .categories import effective_categories, normalize_name, validate_name
from .errors import InvalidRecordError, NotAuthenticatedError
from .importer import ImportTargets
from .logging_setup import get_logger
from .models import Budget, Expense, Income, UserProfile, dedupe_budgets
from .store import SqlFinanceStore

_logger = get_logger("balance.ledger")

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _build(model: type[ModelT], **values: object) -> ModelT:
    try:
        return model.model_validate(values)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or model.__name__
        raise InvalidRecordError(f"Invalid {field}: {first.get('msg')}") from exc


def _check_date(value: str) -> None:
    message = f"Invalid date {value!r}: expected YYYY-MM-DD"
    if not _ISO_DATE_RE.fullmatch(value):
        raise InvalidRecordError(message)
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidRecordError(message) from exc


class FinancialData:
    """The signed-in user's records, refetched on identity switch."""

    def __init__(self, store: SqlFinanceStore, *, user_id: str | None = None) -> None:
        self._store = store
        self._user_id: str | None = None
        self._clear()
        if user_id:
            self.switch_user(user_id)

    # ------------------------------------------------------------------
    # Identity and loading
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def _clear(self) -> None:
        self._expenses: list[Expense] = []
        self._income: list[Income] = []
        self._budgets: list[Budget] = []
        self._categories: list[str] = effective_categories(())
        self._profile: UserProfile | None = None

    def _require_user(self, action: str) -> str:
        if not self._user_id:
            raise NotAuthenticatedError(action)
        return self._user_id

    def switch_user(self, user_id: str | None) -> None:
        """Make ``user_id`` the cache's identity; ``None`` signs out."""

        if user_id != self._user_id:
            _logger.info("switching user %s -> %s", self._user_id, user_id)
        self._user_id = user_id or None
        self._clear()
        if self._user_id:
            self.refresh()

    def refresh(self) -> None:
        """Reload everything for the current user.

        The cache is replaced only once every fetch has succeeded.
        """

        user = self._require_user("load data")
        expenses = self._store.select_expenses(user)
        income = self._store.select_income(user)
        budgets = self._store.select_budgets(user)
        categories = self._store.select_categories(user)
        profile = self._store.get_profile(user)

        self._expenses = expenses
        self._income = income
        self._budgets = budgets
        self._categories = effective_categories(categories)
        self._profile = profile
        _logger.info(
            "loaded %d expenses, %d income entries, %d budgets for user %s",
            len(expenses),
            len(income),
            len(budgets),
            user,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def income(self) -> list[Income]:
        return list(self._income)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def income_sources(self) -> list[str]:
        """Distinct income sources in first-seen order."""

        return list(dict.fromkeys(i.source for i in self._income))

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def _check_category(self, category: str) -> None:
        if category not in self._categories:
            raise InvalidRecordError(f"Unknown category {category!r}")

    def add_expense(self, *, description: str, amount: float, date: str, category: str) -> Expense:
        user = self._require_user("add expenses")
        record = _build(
            Expense, description=description, amount=amount, date=date, category=category
        )
        _check_date(record.date)
        self._check_category(record.category)
        (persisted,) = self._store.insert_expenses(user, [record])
        self._expenses.append(persisted)
        return persisted

    def update_expense(self, expense: Expense) -> Expense:
        user = self._require_user("update expenses")
        if expense.id is None:
            raise InvalidRecordError("Cannot update an expense that was never saved")
        record = _build(Expense, **expense.model_dump())
        _check_date(record.date)
        self._check_category(record.category)
        persisted = self._store.update_expense(user, record)
        self._expenses = [persisted if e.id == persisted.id else e for e in self._expenses]
        return persisted

    def delete_expense(self, expense_id: str) -> None:
        user = self._require_user("delete expenses")
        self._store.delete_expense(user, expense_id)
        self._expenses = [e for e in self._expenses if e.id != expense_id]

    def import_expenses(self, expenses: Sequence[Expense]) -> list[Expense]:
        """Insert a decoded batch and merge the persisted copies into the cache."""

        user = self._require_user("import expenses")
        persisted = self._store.insert_expenses(user, expenses)
        self._expenses.extend(persisted)
        return persisted

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def add_income(self, *, description: str, amount: float, date: str, source: str) -> Income:
        user = self._require_user("add income")
        record = _build(Income, description=description, amount=amount, date=date, source=source)
        _check_date(record.date)
        (persisted,) = self._store.insert_income(user, [record])
        self._income.append(persisted)
        return persisted

    def update_income(self, income: Income) -> Income:
        user = self._require_user("update income")
        if income.id is None:
            raise InvalidRecordError("Cannot update an income entry that was never saved")
        record = _build(Income, **income.model_dump())
        _check_date(record.date)
        persisted = self._store.update_income(user, record)
        self._income = [persisted if i.id == persisted.id else i for i in self._income]
        return persisted

    def delete_income(self, income_id: str) -> None:
        user = self._require_user("delete income")
        self._store.delete_income(user, income_id)
        self._income = [i for i in self._income if i.id != income_id]

    def import_income(self, income: Sequence[Income]) -> list[Income]:
        user = self._require_user("import income")
        persisted = self._store.insert_income(user, income)
        self._income.extend(persisted)
        return persisted

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def save_budget(self, *, category: str, amount: float, month_year: str) -> Budget:
        """Create or overwrite the budget for ``(category, month_year)``."""

        user = self._require_user("save budgets")
        record = _build(Budget, category=category, amount=amount, month_year=month_year)
        (persisted,) = self._store.upsert_budgets(user, [record])
        self._merge_budgets([persisted])
        return persisted

    def delete_budget(self, category: str, month_year: str) -> None:
        user = self._require_user("delete budgets")
        self._store.delete_budget(user, category, month_year)
        self._budgets = [
            b for b in self._budgets if (b.category, b.month_year) != (category, month_year)
        ]

    def import_budgets(self, budgets: Sequence[Budget]) -> list[Budget]:
        """Upsert a decoded batch; rows sharing a key keep the last amount."""

        user = self._require_user("import budgets")
        batch = dedupe_budgets(budgets, owner=user)
        if len(batch) < len(budgets):
            _logger.info(
                "collapsed %d budget rows sharing a key", len(budgets) - len(batch)
            )
        persisted = self._store.upsert_budgets(user, batch)
        self._merge_budgets(persisted)
        return persisted

    def _merge_budgets(self, persisted: Sequence[Budget]) -> None:
        # Stored rows replace cached rows with the same key; new keys append.
        merged = list(self._budgets)
        position = {(b.category, b.month_year): i for i, b in enumerate(merged)}
        for budget in persisted:
            key = (budget.category, budget.month_year)
            if key in position:
                merged[position[key]] = budget
            else:
                position[key] = len(merged)
                merged.append(budget)
        self._budgets = merged

    # ------------------------------------------------------------------
    # Categories and profile
    # ------------------------------------------------------------------

    def update_categories(self, names: Iterable[str]) -> list[str]:
        """Replace the user's category list, adding and deleting the difference."""

        user = self._require_user("update categories")
        wanted: list[str] = []
        for raw in names:
            name = normalize_name(raw)
            check = validate_name(name)
            if not check.ok:
                raise InvalidRecordError(f"Invalid category name {raw!r}: {check.reason}")
            if name not in wanted:
                wanted.append(name)

        current = set(self._store.select_categories(user))
        to_add = [n for n in wanted if n not in current]
        to_delete = [n for n in current if n not in set(wanted)]
        if to_add:
            self._store.insert_categories(user, to_add)
        if to_delete:
            self._store.delete_categories(user, to_delete)
        self._categories = effective_categories(wanted)
        return self.categories

    def update_profile(self, *, first_name: str | None, last_name: str | None) -> UserProfile:
        user = self._require_user("update your profile")
        self._profile = self._store.upsert_profile(
            user, first_name=first_name, last_name=last_name
        )
        return self._profile

    # ------------------------------------------------------------------
    # Import wiring
    # ------------------------------------------------------------------

    def import_targets(self) -> ImportTargets:
        return ImportTargets(
            expenses=self.import_expenses,
            income=self.import_income,
            budgets=self.import_budgets,
        )


__all__ = ["FinancialData"]
