"""CLI for the ``balance`` package.

Command handlers (``cmd_*``) return a process exit code and are callable
directly; the Typer app below wraps them. Environment variables
(``DATABASE_URL``, ``BALANCE_USER_ID``, ``BALANCE_LOG_LEVEL``) are loaded from
a local ``.env`` using ``python-dotenv`` before any command runs. Every
user-visible outcome goes through a :class:`~balance.notify.Notifier`; any
reported error makes the command exit with status 1.
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import BalanceError, NotAuthenticatedError, NothingToExportError
from .logging_setup import configure_logging
from .models import CsvKind


class EchoNotifier:
    """Print successes to stdout and errors to stderr; remembers any error."""

    def __init__(self) -> None:
        self.failed = False

    def success(self, message: str) -> None:
        typer.echo(message)

    def error(self, message: str) -> None:
        self.failed = True
        typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_user(user_id: str | None) -> str | None:
    return user_id or os.getenv("BALANCE_USER_ID") or None


def _open_ledger(database_url: str | None, user_id: str | None, notifier: EchoNotifier):
    """Build the store-backed cache for ``user_id``; ``None`` after reporting a failure."""

    from .ledger import FinancialData
    from .store import SqlFinanceStore

    try:
        return FinancialData(SqlFinanceStore(database_url), user_id=_resolve_user(user_id))
    except (BalanceError, RuntimeError) as e:
        notifier.error(f"Failed to load data: {e}")
        return None


def _current_month() -> str:
    today = date.today()
    return f"{today.year:04d}-{today.month:02d}"


def _money(value: float) -> str:
    return f"{value:,.2f}"


# ---- Command handlers ---------------------------------------------------------


def cmd_init_db(*, database_url: str | None = None) -> int:
    """Create every ``bal_*`` table on the configured database."""

    from db import Base
    from db.client import get_engine

    try:
        engine = get_engine(database_url=database_url)
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        typer.secho(f"Error: failed to initialize database: {e}", err=True, fg=typer.colors.RED)
        return 1
    typer.echo("Database initialized.")
    return 0


def cmd_export(
    kind: str,
    out: Path | None,
    *,
    database_url: str | None = None,
    user_id: str | None = None,
) -> int:
    """Export one kind, the combined file, or (``all``) the three single-kind files.

    ``out`` is a file path for a single export and a directory for ``all``;
    when omitted the default file names are written to the current directory.
    """

    from .interchange import (
        DEFAULT_FILENAMES,
        encode_budgets,
        encode_combined,
        encode_expenses,
        encode_income,
        write_csv_file,
    )

    notifier = EchoNotifier()
    ledger = _open_ledger(database_url, user_id, notifier)
    if ledger is None:
        return 1
    if ledger.user_id is None:
        notifier.error(str(NotAuthenticatedError("export data")))
        return 1

    encoders = {
        CsvKind.EXPENSES: lambda: encode_expenses(ledger.expenses),
        CsvKind.INCOME: lambda: encode_income(ledger.income),
        CsvKind.BUDGETS: lambda: encode_budgets(ledger.budgets),
        CsvKind.COMBINED: lambda: encode_combined(ledger.expenses, ledger.income, ledger.budgets),
    }

    if kind == "all":
        out_dir = out or Path.cwd()
        targets = [
            (k, out_dir / DEFAULT_FILENAMES[k])
            for k in (CsvKind.EXPENSES, CsvKind.INCOME, CsvKind.BUDGETS)
        ]
    else:
        k = CsvKind(kind)
        targets = [(k, out or Path.cwd() / DEFAULT_FILENAMES[k])]

    for k, path in targets:
        try:
            written = write_csv_file(path, encoders[k]())
        except NothingToExportError as e:
            notifier.error(str(e))
            continue
        except OSError as e:
            notifier.error(f"Failed to write {path}: {e}")
            continue
        notifier.success(f"Exported {k.value} to {written}")
    return 1 if notifier.failed else 0


def cmd_import(
    kind: str,
    csv_path: Path,
    *,
    database_url: str | None = None,
    user_id: str | None = None,
) -> int:
    """Import a CSV file; rows and batches are reported one by one."""

    from .importer import import_csv_file_async

    notifier = EchoNotifier()
    ledger = _open_ledger(database_url, user_id, notifier)
    if ledger is None:
        return 1

    report = import_csv_file_async(
        CsvKind(kind), csv_path, ledger.import_targets(), notifier=notifier
    ).result()
    return 0 if report.ok else 1


def cmd_summary(
    month: str | None,
    *,
    database_url: str | None = None,
    user_id: str | None = None,
) -> int:
    """Print the monthly overview, budget status and cumulative balance."""

    from .models import MONTH_YEAR_RE
    from .summaries import budget_status, cumulative_balance, monthly_overview, monthly_totals

    notifier = EchoNotifier()
    month_year = month or _current_month()
    if not MONTH_YEAR_RE.fullmatch(month_year):
        notifier.error(f"Month {month_year!r} is not formatted YYYY-MM")
        return 1
    ledger = _open_ledger(database_url, user_id, notifier)
    if ledger is None:
        return 1
    if ledger.user_id is None:
        notifier.error(str(NotAuthenticatedError("view a summary")))
        return 1

    overview = monthly_overview(ledger.expenses, ledger.income, month_year)
    typer.echo(f"Month {month_year}")
    typer.echo(f"  income:      {_money(overview.total_income)}")
    typer.echo(f"  expenses:    {_money(overview.total_expenses)}")
    typer.echo(f"  net savings: {_money(overview.net_savings)}")

    statuses = budget_status(ledger.budgets, ledger.expenses, month_year)
    if statuses:
        typer.echo("Budgets")
        for s in statuses:
            flag = " (over budget)" if s.over_budget else ""
            typer.echo(
                f"  {s.category}: spent {_money(s.spent)} of {_money(s.budgeted)}"
                f" ({s.percentage:.0f}%){flag}"
            )

    totals = monthly_totals(ledger.expenses)
    if totals:
        typer.echo("Monthly expenses")
        for t in totals:
            typer.echo(f"  {t.label}: {_money(t.total)}")

    balance = cumulative_balance(ledger.expenses, ledger.income, month_year)
    typer.echo(f"Balance as of {balance.as_of:%d/%m/%Y}: {_money(balance.balance)}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Export, import and summarize personal finance data. "
        "Loads DATABASE_URL and BALANCE_USER_ID from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
USER_ID_OPTION: OptionInfo = typer.Option(
    None, "--user-id", help="Signed-in user id (falls back to BALANCE_USER_ID)."
)
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to the CSV file to import",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports unreadable files itself
)


@app.command("init-db")
def init_db_cmd(
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Create the tables on the configured database."""

    raise typer.Exit(cmd_init_db(database_url=database_url))


@app.command("export")
def export_cmd(
    kind: str = typer.Option(
        ..., "--kind", help="One of: expenses, income, budgets, combined, all."
    ),
    out: Path | None = typer.Option(
        None, "--out", help="Output file (a directory for --kind all)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    user_id: str | None = USER_ID_OPTION,
) -> None:
    """Write the signed-in user's data as CSV."""

    if kind != "all" and kind not in {k.value for k in CsvKind}:
        raise typer.BadParameter(f"unknown kind {kind!r}", param_hint="--kind")
    raise typer.Exit(cmd_export(kind, out, database_url=database_url, user_id=user_id))


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    kind: str = typer.Option(
        ..., "--kind", help="One of: expenses, income, budgets, combined."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
    user_id: str | None = USER_ID_OPTION,
) -> None:
    """Import a CSV file into the signed-in user's data."""

    if kind not in {k.value for k in CsvKind}:
        raise typer.BadParameter(f"unknown kind {kind!r}", param_hint="--kind")
    raise typer.Exit(cmd_import(kind, csv_path, database_url=database_url, user_id=user_id))


@app.command("summary")
def summary_cmd(
    month: str | None = typer.Option(None, "--month", help="Month as YYYY-MM (default: current)."),
    database_url: str | None = DATABASE_URL_OPTION,
    user_id: str | None = USER_ID_OPTION,
) -> None:
    """Show monthly totals, budget status and cumulative balance."""

    raise typer.Exit(cmd_summary(month, database_url=database_url, user_id=user_id))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m balance.cli`
    app()
