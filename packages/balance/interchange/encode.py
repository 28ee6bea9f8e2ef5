"""Single-kind CSV encoders (expenses, income, budgets).

Each encoder writes a fixed header followed by one line per record, in input
order. Text containing a comma, double quote or line break is quoted with
inner quotes doubled; numbers and dates are written as-is. An empty input is a
"nothing to export" condition and produces no text.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from decimal import Decimal
from io import StringIO

from ..errors import NothingToExportError
from ..models import Budget, Expense, Income

EXPENSE_HEADER: tuple[str, ...] = ("id", "description", "amount", "date", "category")
INCOME_HEADER: tuple[str, ...] = ("id", "description", "amount", "date", "source")
BUDGET_HEADER: tuple[str, ...] = ("category", "amount", "monthYear")


def format_amount(value: float) -> str:
    """Render an amount as plain decimal text, never in exponent form.

    ``50000.0`` becomes ``"50000"`` and ``1e-05`` becomes ``"0.00001"``.
    """

    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def write_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Serialize ``header`` and ``rows`` with minimal quoting and ``\\n`` line ends."""

    with StringIO() as buf:
        writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
        return buf.getvalue()


def encode_expenses(expenses: Sequence[Expense]) -> str:
    if not expenses:
        raise NothingToExportError("No expense data to export.")
    return write_csv(
        EXPENSE_HEADER,
        (
            (e.id or "", e.description, format_amount(e.amount), e.date, e.category)
            for e in expenses
        ),
    )


def encode_income(income: Sequence[Income]) -> str:
    if not income:
        raise NothingToExportError("No income data to export.")
    return write_csv(
        INCOME_HEADER,
        ((i.id or "", i.description, format_amount(i.amount), i.date, i.source) for i in income),
    )


def encode_budgets(budgets: Sequence[Budget]) -> str:
    # Budgets are exported by their composite key; the store id is not part of the file.
    if not budgets:
        raise NothingToExportError("No budget data to export.")
    return write_csv(
        BUDGET_HEADER,
        ((b.category, format_amount(b.amount), b.month_year) for b in budgets),
    )


__all__ = [
    "BUDGET_HEADER",
    "EXPENSE_HEADER",
    "INCOME_HEADER",
    "encode_budgets",
    "encode_expenses",
    "encode_income",
    "format_amount",
    "write_csv",
]
