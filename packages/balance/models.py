"""Record models and type aliases for ``balance``.

The three record kinds (expense, income, budget) are immutable pydantic models
whose validators enforce the invariants shared by every construction path:
manual create/edit flows and CSV import alike. ``id`` is ``None`` until the
store assigns one on insert.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# ``YYYY-MM`` with a real month (01-12).
MONTH_YEAR_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class RecordKind(StrEnum):
    """Discriminator values used by the combined CSV format."""

    EXPENSE = "expense"
    INCOME = "income"
    BUDGET = "budget"


class CsvKind(StrEnum):
    """The four CSV payloads: one per record kind plus the combined file."""

    EXPENSES = "expenses"
    INCOME = "income"
    BUDGETS = "budgets"
    COMBINED = "combined"


def _require_text(v: str, name: str) -> str:
    if not v.strip():
        raise ValueError(f"{name} must be non-empty")
    return v


def _require_positive_amount(v: float) -> float:
    if not math.isfinite(v) or v <= 0:
        raise ValueError("amount must be a finite number greater than 0")
    return v


# ---------------------------------------------------------------------------
# Record kinds
# ---------------------------------------------------------------------------


class Expense(BaseModel):
    """A single expense. ``category`` membership is checked by create/edit flows only."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str | None = None
    description: str
    amount: float
    date: str
    category: str

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: float) -> float:
        return _require_positive_amount(v)

    @field_validator("description", "date", "category")
    @classmethod
    def _non_empty(cls, v: str, info: ValidationInfo) -> str:
        return _require_text(v, info.field_name)


class Income(BaseModel):
    """A single income entry; ``source`` is free text (salary, gift, ...)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str | None = None
    description: str
    amount: float
    date: str
    source: str

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: float) -> float:
        return _require_positive_amount(v)

    @field_validator("description", "date", "source")
    @classmethod
    def _non_empty(cls, v: str, info: ValidationInfo) -> str:
        return _require_text(v, info.field_name)


class Budget(BaseModel):
    """A monthly spending limit for one category.

    ``month_year`` is exposed under the ``monthYear`` alias so CSV headers map
    onto the model directly.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str | None = None
    category: str
    amount: float
    month_year: str = Field(alias="monthYear")

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: float) -> float:
        return _require_positive_amount(v)

    @field_validator("category")
    @classmethod
    def _category_non_empty(cls, v: str) -> str:
        return _require_text(v, "category")

    @field_validator("month_year")
    @classmethod
    def _month_year_format(cls, v: str) -> str:
        if not MONTH_YEAR_RE.fullmatch(v):
            raise ValueError("monthYear must be formatted YYYY-MM")
        return v

    def key(self, owner: str) -> BudgetKey:
        return BudgetKey(owner=owner, category=self.category, month_year=self.month_year)


class BudgetKey(NamedTuple):
    """Composite identity of a budget: re-saving the same key overwrites amount."""

    owner: str
    category: str
    month_year: str


def dedupe_budgets(budgets: Sequence[Budget], *, owner: str) -> list[Budget]:
    """Collapse budgets sharing a :class:`BudgetKey`, keeping the last one.

    The surviving record takes the position of the key's first occurrence so
    the batch order stays stable.
    """

    by_key: dict[BudgetKey, Budget] = {}
    for b in budgets:
        by_key[b.key(owner)] = b
    return list(by_key.values())


# ---------------------------------------------------------------------------
# Combined interchange row
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CombinedRow:
    """One row of the combined CSV file.

    Carries the union of all record fields; fields irrelevant to ``type`` are
    empty strings. Exists only while encoding or decoding, never persisted.
    """

    type: str
    id: str
    description: str
    amount: str
    date: str
    category: str
    source: str
    month_year: str


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    first_name: str | None = None
    last_name: str | None = None


__all__ = [
    "MONTH_YEAR_RE",
    "Budget",
    "BudgetKey",
    "CombinedRow",
    "CsvKind",
    "Expense",
    "Income",
    "RecordKind",
    "UserProfile",
    "dedupe_budgets",
]
