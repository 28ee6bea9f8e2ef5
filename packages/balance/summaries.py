"""Derived views over cached records: totals, budget status, balance, filters.

All functions are pure: they take records and return new values. Records whose
``date`` does not parse as ``YYYY-MM-DD`` (possible for imported rows, which
are not date-checked) are skipped with a warning wherever a date is needed.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Literal, TypeVar

from .categories import fold_name
from .logging_setup import get_logger
from .models import Budget, Expense, Income

_logger = get_logger("balance.summaries")

RecordT = TypeVar("RecordT", Expense, Income)

SortColumn = Literal["description", "amount", "date", "category", "source"]


def parse_record_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        _logger.warning("skipping record with unparseable date %r", value)
        return None


def month_key(value: str) -> str | None:
    """``"2024-03-15"`` -> ``"2024-03"``; ``None`` when the date is unparseable."""

    d = parse_record_date(value)
    return f"{d.year:04d}-{d.month:02d}" if d else None


def _in_month(records: Iterable[RecordT], month_year: str) -> list[RecordT]:
    return [r for r in records if month_key(r.date) == month_year]


# ---------------------------
# Monthly totals
# ---------------------------


@dataclass(frozen=True, slots=True)
class MonthlyTotal:
    month_year: str
    total: float

    @property
    def label(self) -> str:
        """Display label ``MM/YYYY``."""

        year, month = self.month_year.split("-")
        return f"{month}/{year}"


def monthly_totals(records: Iterable[Expense | Income]) -> list[MonthlyTotal]:
    """Sum amounts per calendar month, most recent month first."""

    sums: dict[str, float] = defaultdict(float)
    for r in records:
        key = month_key(r.date)
        if key is not None:
            sums[key] += r.amount
    return [MonthlyTotal(k, sums[k]) for k in sorted(sums, reverse=True)]


def category_totals(expenses: Iterable[Expense], *, month_year: str | None = None) -> dict[str, float]:
    """Spending per category, optionally restricted to one month."""

    selected = _in_month(expenses, month_year) if month_year else list(expenses)
    totals: dict[str, float] = defaultdict(float)
    for e in selected:
        totals[e.category] += e.amount
    return dict(totals)


# ---------------------------
# Budget status
# ---------------------------


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    category: str
    budgeted: float
    spent: float
    remaining: float
    # Capped at 100 for progress display; see ``over_budget`` for overspend.
    percentage: float
    over_budget: bool


def budget_status(
    budgets: Iterable[Budget], expenses: Iterable[Expense], month_year: str
) -> list[BudgetStatus]:
    """Budgeted vs. spent for every budget of ``month_year``."""

    spent_by_category = category_totals(expenses, month_year=month_year)
    out: list[BudgetStatus] = []
    for b in budgets:
        if b.month_year != month_year:
            continue
        spent = spent_by_category.get(b.category, 0.0)
        remaining = b.amount - spent
        percentage = (spent / b.amount) * 100 if b.amount > 0 else 0.0
        out.append(
            BudgetStatus(
                category=b.category,
                budgeted=b.amount,
                spent=spent,
                remaining=remaining,
                percentage=min(100.0, percentage),
                over_budget=remaining < 0,
            )
        )
    return out


# ---------------------------
# Balance and overview
# ---------------------------


@dataclass(frozen=True, slots=True)
class CumulativeBalance:
    as_of: date
    total_income: float
    total_expenses: float

    @property
    def balance(self) -> float:
        return self.total_income - self.total_expenses


def balance_cutoff(month_year: str, *, today: date | None = None) -> date:
    """Today when ``month_year`` is the current month, else that month's last day."""

    today = today or date.today()
    year, month = (int(p) for p in month_year.split("-"))
    if (year, month) == (today.year, today.month):
        return today
    return date(year, month, calendar.monthrange(year, month)[1])


def cumulative_balance(
    expenses: Iterable[Expense],
    income: Iterable[Income],
    month_year: str,
    *,
    today: date | None = None,
) -> CumulativeBalance:
    """All income minus all expenses dated on or before the cutoff."""

    cutoff = balance_cutoff(month_year, today=today)

    def _on_or_before(record: Expense | Income) -> bool:
        d = parse_record_date(record.date)
        return d is not None and d <= cutoff

    def _total(records: Iterable[Expense | Income]) -> float:
        return total_amount(r for r in records if _on_or_before(r))

    return CumulativeBalance(as_of=cutoff, total_income=_total(income), total_expenses=_total(expenses))


@dataclass(frozen=True, slots=True)
class MonthlyOverview:
    month_year: str
    total_income: float
    total_expenses: float

    @property
    def net_savings(self) -> float:
        return self.total_income - self.total_expenses


def monthly_overview(
    expenses: Iterable[Expense], income: Iterable[Income], month_year: str
) -> MonthlyOverview:
    return MonthlyOverview(
        month_year=month_year,
        total_income=total_amount(_in_month(income, month_year)),
        total_expenses=total_amount(_in_month(expenses, month_year)),
    )


# ---------------------------
# List filtering and sorting
# ---------------------------


def filter_records(
    records: Iterable[RecordT],
    *,
    month_year: str | None = None,
    start: date | None = None,
    end: date | None = None,
    category: str | None = None,
    source: str | None = None,
    search: str = "",
) -> list[RecordT]:
    """Filter a record list the way the expense and income lists do.

    A date range (``start`` and/or ``end``, inclusive) takes precedence over
    ``month_year``. ``category`` applies to expenses and ``source`` to income;
    ``None`` means all. ``search`` is a case-insensitive substring of the
    description.
    """

    needle = search.casefold()
    out: list[RecordT] = []
    for r in records:
        if start is not None or end is not None:
            d = parse_record_date(r.date)
            if d is None or (start is not None and d < start) or (end is not None and d > end):
                continue
        elif month_year is not None and month_key(r.date) != month_year:
            continue
        if category is not None and getattr(r, "category", None) != category:
            continue
        if source is not None and getattr(r, "source", None) != source:
            continue
        if needle and needle not in r.description.casefold():
            continue
        out.append(r)
    return out


def sort_records(
    records: Sequence[RecordT], column: SortColumn | None, *, descending: bool = False
) -> list[RecordT]:
    """Stable sort by ``column``; ``None`` keeps the given order."""

    if column is None:
        return list(records)
    if column == "amount":
        return sorted(records, key=lambda r: r.amount, reverse=descending)
    if column == "date":
        return sorted(records, key=lambda r: parse_record_date(r.date) or date.min, reverse=descending)
    return sorted(records, key=lambda r: fold_name(str(getattr(r, column, ""))), reverse=descending)


def total_amount(records: Iterable[Expense | Income]) -> float:
    """Sum of ``amount`` over ``records``; ``0.0`` when there are none."""

    return sum((r.amount for r in records), 0.0)


__all__ = [
    "BudgetStatus",
    "CumulativeBalance",
    "MonthlyOverview",
    "MonthlyTotal",
    "balance_cutoff",
    "budget_status",
    "category_totals",
    "cumulative_balance",
    "filter_records",
    "month_key",
    "monthly_overview",
    "monthly_totals",
    "sort_records",
    "total_amount",
]
