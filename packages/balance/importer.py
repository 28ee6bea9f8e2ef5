"""Import orchestration: decode a CSV payload, report, and hand buckets to consumers.

The decoders never talk to storage. Each non-empty bucket is handed to a
caller-supplied consumer (normally :meth:`balance.ledger.FinancialData.import_expenses`
and friends). Batches are independent: a consumer that raises a
:class:`~balance.errors.BalanceError` fails only its own batch, and the report
says so. Other exceptions propagate.

Every outcome is also sent to the :class:`~balance.notify.Notifier`:

- a file-structure error aborts with one message;
- each rejected row gets its own message;
- "no valid data" is reported only when nothing was accepted *and* no row
  was rejected;
- each dispatched batch reports success or its store error;
- a mix of successes and failures is reported as partial success.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from os import PathLike
from typing import Any

from .errors import BalanceError, CsvStructureError
from .interchange.combined import CombinedDecodeResult, decode_combined
from .interchange.decode import DecodeResult, decode_budgets, decode_expenses, decode_income
from .interchange.files import parse_csv_file_async, read_csv_file
from .interchange.reader import RowError
from .logging_setup import get_logger
from .models import Budget, CsvKind, Expense, Income, RecordKind
from .notify import Notifier

_logger = get_logger("balance.importer")

_NOUNS: dict[RecordKind, str] = {
    RecordKind.EXPENSE: "expenses",
    RecordKind.INCOME: "income entries",
    RecordKind.BUDGET: "budgets",
}

_DECODERS: dict[CsvKind, Callable[[str], Any]] = {
    CsvKind.EXPENSES: decode_expenses,
    CsvKind.INCOME: decode_income,
    CsvKind.BUDGETS: decode_budgets,
    CsvKind.COMBINED: decode_combined,
}

_SINGLE_KINDS: dict[CsvKind, RecordKind] = {
    CsvKind.EXPENSES: RecordKind.EXPENSE,
    CsvKind.INCOME: RecordKind.INCOME,
    CsvKind.BUDGETS: RecordKind.BUDGET,
}


@dataclass(frozen=True, slots=True)
class ImportTargets:
    """The three consumers that receive accepted records, one per kind.

    A consumer may return the persisted records; their count is reported.
    """

    expenses: Callable[[list[Expense]], Sequence[Expense] | None]
    income: Callable[[list[Income]], Sequence[Income] | None]
    budgets: Callable[[list[Budget]], Sequence[Budget] | None]

    def for_kind(self, kind: RecordKind) -> Callable[[list[Any]], Sequence[Any] | None]:
        if kind is RecordKind.EXPENSE:
            return self.expenses
        if kind is RecordKind.INCOME:
            return self.income
        return self.budgets


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    kind: RecordKind
    attempted: int
    persisted: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ImportReport:
    """What happened to one import, never collapsed into a single pass/fail."""

    kind: CsvKind
    batches: list[BatchOutcome] = field(default_factory=list)
    row_errors: list[RowError] = field(default_factory=list)
    structure_error: str | None = None
    no_valid_data: bool = False

    @property
    def succeeded_batches(self) -> list[BatchOutcome]:
        return [b for b in self.batches if b.ok]

    @property
    def failed_batches(self) -> list[BatchOutcome]:
        return [b for b in self.batches if not b.ok]

    @property
    def ok(self) -> bool:
        return (
            self.structure_error is None
            and not self.no_valid_data
            and not self.row_errors
            and not self.failed_batches
        )

    @property
    def partial(self) -> bool:
        """Some records reached the store while other rows or batches failed."""

        return bool(self.succeeded_batches) and bool(self.row_errors or self.failed_batches)

    def summary(self) -> str:
        if self.structure_error is not None:
            return f"Failed to parse CSV file: {self.structure_error}"
        parts = [f"{b.persisted} {_NOUNS[b.kind]} imported" for b in self.succeeded_batches]
        parts += [f"{b.attempted} {_NOUNS[b.kind]} failed" for b in self.failed_batches]
        if self.row_errors:
            parts.append(f"{len(self.row_errors)} rows skipped")
        if self.no_valid_data:
            parts.append("no valid data found")
        return ", ".join(parts) or "nothing imported"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def dispatch_records(
    kind: RecordKind,
    records: list[Any],
    consumer: Callable[[list[Any]], Sequence[Any] | None],
    *,
    notifier: Notifier,
) -> BatchOutcome:
    """Hand one non-empty bucket to its consumer and report the outcome."""

    noun = _NOUNS[kind]
    _logger.info("dispatching %d %s", len(records), noun)
    try:
        persisted = consumer(records)
    except BalanceError as exc:
        _logger.error("import of %d %s failed: %s", len(records), noun, exc)
        notifier.error(f"Failed to import {noun}: {exc}")
        return BatchOutcome(kind=kind, attempted=len(records), error=str(exc))
    count = len(persisted) if persisted is not None else len(records)
    notifier.success(f"Imported {count} {noun}.")
    return BatchOutcome(kind=kind, attempted=len(records), persisted=count)


def _report_rows(report: ImportReport, errors: list[RowError], notifier: Notifier) -> None:
    for err in errors:
        notifier.error(err.message())
    report.row_errors.extend(errors)


def _finish(report: ImportReport, notifier: Notifier) -> ImportReport:
    if report.partial:
        notifier.error(f"Import partially succeeded: {report.summary()}.")
    _logger.info("import %s finished: %s", report.kind.value, report.summary())
    return report


def report_single(
    kind: CsvKind,
    result: DecodeResult[Any],
    consumer: Callable[[list[Any]], Sequence[Any] | None],
    *,
    notifier: Notifier,
) -> ImportReport:
    record_kind = _SINGLE_KINDS[kind]
    report = ImportReport(kind=kind)
    _report_rows(report, result.errors, notifier)
    if result.records:
        report.batches.append(
            dispatch_records(record_kind, result.records, consumer, notifier=notifier)
        )
    elif not result.errors:
        report.no_valid_data = True
        notifier.error(f"No valid {_NOUNS[record_kind]} found in the file.")
    return _finish(report, notifier)


def report_combined(
    result: CombinedDecodeResult,
    targets: ImportTargets,
    *,
    notifier: Notifier,
) -> ImportReport:
    report = ImportReport(kind=CsvKind.COMBINED)
    _report_rows(report, result.errors, notifier)
    buckets: tuple[tuple[RecordKind, list[Any]], ...] = (
        (RecordKind.EXPENSE, result.expenses),
        (RecordKind.INCOME, result.income),
        (RecordKind.BUDGET, result.budgets),
    )
    for kind, records in buckets:
        # Empty buckets never reach their consumer.
        if records:
            report.batches.append(
                dispatch_records(kind, records, targets.for_kind(kind), notifier=notifier)
            )
    if result.is_empty and not result.errors:
        report.no_valid_data = True
        notifier.error("No valid data found in the file.")
    return _finish(report, notifier)


def _report_decoded(
    kind: CsvKind, decoded: Any, targets: ImportTargets, notifier: Notifier
) -> ImportReport:
    if kind is CsvKind.COMBINED:
        return report_combined(decoded, targets, notifier=notifier)
    return report_single(
        kind, decoded, targets.for_kind(_SINGLE_KINDS[kind]), notifier=notifier
    )


def _structure_failure(kind: CsvKind, exc: Exception, notifier: Notifier) -> ImportReport:
    report = ImportReport(kind=kind, structure_error=str(exc))
    _logger.error("import %s aborted: %s", kind.value, exc)
    notifier.error(report.summary())
    return report


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def import_csv(
    kind: CsvKind,
    csv_text: str,
    targets: ImportTargets,
    *,
    notifier: Notifier,
) -> ImportReport:
    """Decode ``csv_text`` as ``kind`` and dispatch the accepted records."""

    try:
        decoded = _DECODERS[kind](csv_text)
    except CsvStructureError as exc:
        return _structure_failure(kind, exc, notifier)
    return _report_decoded(kind, decoded, targets, notifier)


def import_csv_file(
    kind: CsvKind,
    csv_path: str | PathLike[str],
    targets: ImportTargets,
    *,
    notifier: Notifier,
) -> ImportReport:
    """Synchronous variant of :func:`import_csv_file_async`."""

    try:
        csv_text = read_csv_file(csv_path)
    except (CsvStructureError, OSError) as exc:
        return _structure_failure(kind, exc, notifier)
    return import_csv(kind, csv_text, targets, notifier=notifier)


def import_csv_file_async(
    kind: CsvKind,
    csv_path: str | PathLike[str],
    targets: ImportTargets,
    *,
    notifier: Notifier,
    on_complete: Callable[[ImportReport], None] | None = None,
    executor: ThreadPoolExecutor | None = None,
) -> Future[ImportReport]:
    """Parse ``csv_path`` off the calling thread, then dispatch and report.

    Returns a future resolving to the :class:`ImportReport`; ``on_complete``
    (when given) receives the same report. Unreadable or malformed files
    resolve to a report carrying ``structure_error``; unexpected exceptions
    are set on the future.
    """

    report_future: Future[ImportReport] = Future()

    def _resolve(build: Callable[[], ImportReport]) -> None:
        try:
            report = build()
            if on_complete is not None:
                on_complete(report)
        except Exception as exc:  # noqa: BLE001 - forwarded to the future
            report_future.set_exception(exc)
            return
        report_future.set_result(report)

    def _on_decoded(decoded: Any) -> None:
        _resolve(lambda: _report_decoded(kind, decoded, targets, notifier))

    def _on_error(exc: Exception) -> None:
        if isinstance(exc, (CsvStructureError, OSError)):
            _resolve(lambda: _structure_failure(kind, exc, notifier))
        else:
            report_future.set_exception(exc)

    parse_csv_file_async(
        csv_path,
        _DECODERS[kind],
        on_complete=_on_decoded,
        on_error=_on_error,
        executor=executor,
    )
    return report_future


__all__ = [
    "BatchOutcome",
    "ImportReport",
    "ImportTargets",
    "dispatch_records",
    "import_csv",
    "import_csv_file",
    "import_csv_file_async",
    "report_combined",
    "report_single",
]
