"""Combined CSV format: expenses, income and budgets multiplexed into one file.

Header (exact order)::

    type,id,description,amount,date,category,source,monthYear

``type`` is the discriminator (``expense`` | ``income`` | ``budget``). Fields
that do not apply to a row's kind are written empty. Export order is all
expenses, then all income, then all budgets, each in input order.

Decoding is a tagged-variant parse. The amount check runs first for every row
(a bad amount is reported as such even when the type is also wrong). The
discriminator then selects one strict validator. An unknown or missing
discriminator is its own error variant, never a fallthrough.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import astuple, dataclass, field

from ..errors import NothingToExportError
from ..logging_setup import get_logger
from ..models import Budget, CombinedRow, Expense, Income, RecordKind
from .decode import (
    AMOUNT_REASON,
    RowRejected,
    budget_from_row,
    build_record,
    expense_from_row,
    income_from_row,
    parse_amount,
)
from .encode import format_amount, write_csv
from .reader import RowError, SourceRow, read_rows

COMBINED_HEADER: tuple[str, ...] = (
    "type",
    "id",
    "description",
    "amount",
    "date",
    "category",
    "source",
    "monthYear",
)

_logger = get_logger("balance.interchange.combined")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def to_combined_rows(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    budgets: Sequence[Budget],
) -> Iterator[CombinedRow]:
    """Flatten the three collections into combined rows (expenses, income, budgets)."""

    for e in expenses:
        yield CombinedRow(
            type=RecordKind.EXPENSE.value,
            id=e.id or "",
            description=e.description,
            amount=format_amount(e.amount),
            date=e.date,
            category=e.category,
            source="",
            month_year="",
        )
    for i in income:
        yield CombinedRow(
            type=RecordKind.INCOME.value,
            id=i.id or "",
            description=i.description,
            amount=format_amount(i.amount),
            date=i.date,
            category="",
            source=i.source,
            month_year="",
        )
    for b in budgets:
        yield CombinedRow(
            type=RecordKind.BUDGET.value,
            id="",
            description="",
            amount=format_amount(b.amount),
            date="",
            category=b.category,
            source="",
            month_year=b.month_year,
        )


def encode_combined(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    budgets: Sequence[Budget],
) -> str:
    if not (expenses or income or budgets):
        raise NothingToExportError("No data to export.")
    # CombinedRow's field order matches COMBINED_HEADER.
    return write_csv(
        COMBINED_HEADER,
        (astuple(r) for r in to_combined_rows(expenses, income, budgets)),
    )


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CombinedDecodeResult:
    """Per-kind buckets plus one error per rejected row."""

    expenses: list[Expense] = field(default_factory=list)
    income: list[Income] = field(default_factory=list)
    budgets: list[Budget] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.expenses or self.income or self.budgets)


_VALIDATORS: dict[str, Callable[[SourceRow, float], Expense | Income | Budget]] = {
    RecordKind.EXPENSE.value: expense_from_row,
    RecordKind.INCOME.value: income_from_row,
    RecordKind.BUDGET.value: budget_from_row,
}


def decode_combined(csv_text: str) -> CombinedDecodeResult:
    _header, rows = read_rows(csv_text)
    result = CombinedDecodeResult()
    buckets: dict[str, list] = {
        RecordKind.EXPENSE.value: result.expenses,
        RecordKind.INCOME.value: result.income,
        RecordKind.BUDGET.value: result.budgets,
    }

    for row in rows:
        try:
            amount = parse_amount(row.values.get("amount"))
            if amount is None:
                raise RowRejected(AMOUNT_REASON)
            kind = row.get("type").strip()
            validator = _VALIDATORS.get(kind)
            if validator is None:
                raise RowRejected(f"unrecognized type {kind!r}")
            record = build_record(row, amount, validator)
        except RowRejected as exc:
            _logger.warning("rejected combined row on line %d: %s", row.line, exc)
            result.errors.append(RowError(line=row.line, raw=row.raw, reason=str(exc)))
            continue
        buckets[kind].append(record)

    _logger.debug(
        "decoded combined csv: %d expenses, %d income, %d budgets, %d rejected",
        len(result.expenses),
        len(result.income),
        len(result.budgets),
        len(result.errors),
    )
    return result


__all__ = [
    "COMBINED_HEADER",
    "CombinedDecodeResult",
    "decode_combined",
    "encode_combined",
    "to_combined_rows",
]
