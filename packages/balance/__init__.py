"""Public interface for the ``balance`` package.

Re-exports the record models, the CSV interchange entry points, the import
orchestration and the store-backed cache. There is no runtime logic here, only
symbol re-exports.
"""

from .errors import (
    BalanceError,
    CsvStructureError,
    InvalidRecordError,
    NotAuthenticatedError,
    NothingToExportError,
    StoreError,
)
from .importer import (
    BatchOutcome,
    ImportReport,
    ImportTargets,
    import_csv,
    import_csv_file,
    import_csv_file_async,
)
from .interchange import (
    decode_budgets,
    decode_combined,
    decode_expenses,
    decode_income,
    encode_budgets,
    encode_combined,
    encode_expenses,
    encode_income,
)
from .ledger import FinancialData
from .models import Budget, BudgetKey, CsvKind, Expense, Income, RecordKind, UserProfile
from .notify import LoggingNotifier, Notifier, RecordingNotifier
from .store import SqlFinanceStore

__all__ = [
    # Models
    "Budget",
    "BudgetKey",
    "CsvKind",
    "Expense",
    "Income",
    "RecordKind",
    "UserProfile",
    # Interchange
    "decode_budgets",
    "decode_combined",
    "decode_expenses",
    "decode_income",
    "encode_budgets",
    "encode_combined",
    "encode_expenses",
    "encode_income",
    # Import orchestration
    "BatchOutcome",
    "ImportReport",
    "ImportTargets",
    "import_csv",
    "import_csv_file",
    "import_csv_file_async",
    # Store and cache
    "FinancialData",
    "SqlFinanceStore",
    # Notifications
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    # Errors
    "BalanceError",
    "CsvStructureError",
    "InvalidRecordError",
    "NotAuthenticatedError",
    "NothingToExportError",
    "StoreError",
]
