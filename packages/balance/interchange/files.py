"""File I/O for the CSV interchange formats and the non-blocking parse.

Export is synchronous: encode, then write the text as UTF-8. Import reads are
offered through :func:`parse_csv_file_async`, which runs read + decode on a
small worker pool and reports through completion callbacks. The pool does not
serialize imports for the caller: do not start a second import over the same
collections before the first has completed.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from os import PathLike
from pathlib import Path
from typing import TypeVar

from ..errors import CsvStructureError
from ..logging_setup import get_logger
from ..models import CsvKind

ResultT = TypeVar("ResultT")

DEFAULT_FILENAMES: dict[CsvKind, str] = {
    CsvKind.EXPENSES: "expenses.csv",
    CsvKind.INCOME: "income.csv",
    CsvKind.BUDGETS: "budgets.csv",
    CsvKind.COMBINED: "all_financial_data.csv",
}

_logger = get_logger("balance.interchange.files")

_EXECUTOR: ThreadPoolExecutor | None = None


def _resolve_workers() -> int:
    """Worker count for the parse pool; ``BALANCE_IMPORT_WORKERS`` overrides 1."""

    raw = os.getenv("BALANCE_IMPORT_WORKERS")
    try:
        n = int(raw) if raw else 1
    except ValueError:
        _logger.warning("ignoring non-integer BALANCE_IMPORT_WORKERS=%r", raw)
        n = 1
    return max(1, min(n, 8))


def _executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    if _EXECUTOR is None:
        _EXECUTOR = ThreadPoolExecutor(
            max_workers=_resolve_workers(), thread_name_prefix="balance-import"
        )
    return _EXECUTOR


def read_csv_file(csv_path: str | PathLike[str]) -> str:
    """Read a CSV file as UTF-8 text (a leading BOM is dropped).

    Undecodable bytes raise :class:`CsvStructureError`; ``OSError`` (missing
    file, permissions) propagates unchanged.
    """

    p = Path(csv_path)
    try:
        with p.open(encoding="utf-8-sig", newline="") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise CsvStructureError(f"File is not valid UTF-8 text: {p}") from exc


def write_csv_file(csv_path: str | PathLike[str], csv_text: str) -> Path:
    p = Path(csv_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as f:
        f.write(csv_text)
    _logger.info("wrote %s (%d bytes)", p, len(csv_text.encode("utf-8")))
    return p


def parse_csv_file_async(
    csv_path: str | PathLike[str],
    decoder: Callable[[str], ResultT],
    *,
    on_complete: Callable[[ResultT], None],
    on_error: Callable[[Exception], None],
    executor: ThreadPoolExecutor | None = None,
) -> Future[ResultT]:
    """Read and decode ``csv_path`` off the calling thread.

    Exactly one of ``on_complete`` (with the decoder's result) or ``on_error``
    (with the exception, e.g. :class:`CsvStructureError` or ``OSError``) is
    invoked once the work settles. The returned future may be waited on but
    cannot cancel work that has already started.
    """

    def _run() -> ResultT:
        return decoder(read_csv_file(csv_path))

    def _done(fut: Future[ResultT]) -> None:
        exc = fut.exception()
        if exc is None:
            on_complete(fut.result())
        elif isinstance(exc, Exception):
            on_error(exc)

    fut = (executor or _executor()).submit(_run)
    fut.add_done_callback(_done)
    return fut


__all__ = [
    "DEFAULT_FILENAMES",
    "parse_csv_file_async",
    "read_csv_file",
    "write_csv_file",
]
