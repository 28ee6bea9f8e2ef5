"""Single-kind CSV decoders and the per-kind row validators they share.

Each data row is validated on its own:

1. ``amount`` must parse as a finite float greater than zero;
2. the kind's required fields must be present and non-blank;
3. budgets additionally need ``monthYear`` formatted ``YYYY-MM`` (month 01-12).

The first failing rule rejects the row with one :class:`RowError`; accepted
rows become records without identifiers. Structural problems with the file
itself raise :class:`~balance.errors.CsvStructureError` from
:func:`~balance.interchange.reader.read_rows`.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import ValidationError

from ..logging_setup import get_logger
from ..models import MONTH_YEAR_RE, Budget, Expense, Income
from .reader import RowError, SourceRow, read_rows

RecordT = TypeVar("RecordT", Expense, Income, Budget)

_logger = get_logger("balance.interchange.decode")

AMOUNT_REASON = "amount must be a number greater than 0"


class RowRejected(ValueError):
    """Raised by a row validator; the message becomes the row's reason."""


@dataclass(slots=True)
class DecodeResult(Generic[RecordT]):
    """Accepted records plus one error per rejected row, in file order."""

    records: list[RecordT] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def rows_seen(self) -> int:
        return len(self.records) + len(self.errors)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def parse_amount(raw: str | None) -> float | None:
    """Return the amount when it is a finite number > 0, else ``None``."""

    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _require(row: SourceRow, names: Sequence[str]) -> None:
    missing = [n for n in names if not row.get(n).strip()]
    if missing:
        raise RowRejected("missing " + ", ".join(missing))


# ---------------------------------------------------------------------------
# Per-kind validators (shared with the combined decoder)
# ---------------------------------------------------------------------------


def expense_from_row(row: SourceRow, amount: float) -> Expense:
    _require(row, ("description", "date", "category"))
    return Expense(
        description=row.get("description"),
        amount=amount,
        date=row.get("date"),
        category=row.get("category"),
    )


def income_from_row(row: SourceRow, amount: float) -> Income:
    _require(row, ("description", "date", "source"))
    return Income(
        description=row.get("description"),
        amount=amount,
        date=row.get("date"),
        source=row.get("source"),
    )


def budget_from_row(row: SourceRow, amount: float) -> Budget:
    _require(row, ("category", "monthYear"))
    month_year = row.get("monthYear").strip()
    if not MONTH_YEAR_RE.fullmatch(month_year):
        raise RowRejected(f"monthYear {month_year!r} is not formatted YYYY-MM")
    return Budget(category=row.get("category"), amount=amount, month_year=month_year)


def build_record(
    row: SourceRow, amount: float, builder: Callable[[SourceRow, float], RecordT]
) -> RecordT:
    """Run ``builder`` and fold model validation failures into :class:`RowRejected`."""

    try:
        return builder(row, amount)
    except ValidationError as exc:
        reasons = "; ".join(str(e.get("msg", "")) for e in exc.errors())
        raise RowRejected(reasons or "invalid record") from exc


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def _decode(
    csv_text: str, builder: Callable[[SourceRow, float], RecordT], kind: str
) -> DecodeResult[RecordT]:
    _header, rows = read_rows(csv_text)
    result: DecodeResult[RecordT] = DecodeResult()
    for row in rows:
        amount = parse_amount(row.values.get("amount"))
        try:
            if amount is None:
                raise RowRejected(AMOUNT_REASON)
            record = build_record(row, amount, builder)
        except RowRejected as exc:
            _logger.warning("rejected %s row on line %d: %s", kind, row.line, exc)
            result.errors.append(RowError(line=row.line, raw=row.raw, reason=str(exc)))
            continue
        result.records.append(record)
    _logger.debug(
        "decoded %s csv: %d accepted, %d rejected",
        kind,
        len(result.records),
        len(result.errors),
    )
    return result


def decode_expenses(csv_text: str) -> DecodeResult[Expense]:
    """Decode an ``id,description,amount,date,category`` file (``id`` is ignored)."""

    return _decode(csv_text, expense_from_row, "expense")


def decode_income(csv_text: str) -> DecodeResult[Income]:
    """Decode an ``id,description,amount,date,source`` file (``id`` is ignored)."""

    return _decode(csv_text, income_from_row, "income")


def decode_budgets(csv_text: str) -> DecodeResult[Budget]:
    """Decode a ``category,amount,monthYear`` file."""

    return _decode(csv_text, budget_from_row, "budget")


__all__ = [
    "AMOUNT_REASON",
    "DecodeResult",
    "RowRejected",
    "budget_from_row",
    "build_record",
    "decode_budgets",
    "decode_expenses",
    "decode_income",
    "expense_from_row",
    "income_from_row",
    "parse_amount",
]
