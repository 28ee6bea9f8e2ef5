"""CSV interchange: single-kind and combined encoders/decoders plus file I/O."""

from .combined import COMBINED_HEADER, CombinedDecodeResult, decode_combined, encode_combined
from .decode import DecodeResult, decode_budgets, decode_expenses, decode_income
from .encode import (
    BUDGET_HEADER,
    EXPENSE_HEADER,
    INCOME_HEADER,
    encode_budgets,
    encode_expenses,
    encode_income,
)
from .files import DEFAULT_FILENAMES, parse_csv_file_async, read_csv_file, write_csv_file
from .reader import RowError, SourceRow, read_rows

__all__ = [
    "BUDGET_HEADER",
    "COMBINED_HEADER",
    "DEFAULT_FILENAMES",
    "EXPENSE_HEADER",
    "INCOME_HEADER",
    "CombinedDecodeResult",
    "DecodeResult",
    "RowError",
    "SourceRow",
    "decode_budgets",
    "decode_combined",
    "decode_expenses",
    "decode_income",
    "encode_budgets",
    "encode_combined",
    "encode_expenses",
    "encode_income",
    "parse_csv_file_async",
    "read_csv_file",
    "read_rows",
    "write_csv_file",
]
