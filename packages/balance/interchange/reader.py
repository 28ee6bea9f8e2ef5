"""CSV text → header-keyed rows with structural validation.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module (UTF-8, quoted
fields with embedded commas and newlines, doubled quotes). Any structural
problem, such as broken quoting or a row whose field count disagrees with the
header, raises :class:`~balance.errors.CsvStructureError` and aborts the whole
payload. Blank lines are skipped; rows made only of empty fields are kept and
left to row validation.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from io import StringIO

from ..errors import CsvStructureError

# DictReader stores surplus fields under this key.
_EXTRA = "__extra__"


@dataclass(frozen=True, slots=True)
class SourceRow:
    """One data row keyed by header name, with its 1-based physical line."""

    line: int
    values: dict[str, str]

    @property
    def raw(self) -> str:
        """The row as shown in diagnostics (JSON object of header → value)."""

        return json.dumps(self.values, ensure_ascii=False)

    def get(self, name: str) -> str:
        return self.values.get(name, "")


@dataclass(frozen=True, slots=True)
class RowError:
    """A rejected row: skipped, reported once, does not stop the import."""

    line: int
    raw: str
    reason: str

    def message(self) -> str:
        return f"Invalid data in row {self.line}: {self.raw}. Skipping this row ({self.reason})."


def read_rows(csv_text: str) -> tuple[list[str], list[SourceRow]]:
    """Parse ``csv_text`` and return ``(header, rows)``.

    An empty payload yields no header and no rows; deciding what that means is
    left to the caller.
    """

    # Tolerate a UTF-8 byte-order mark left over from spreadsheet exports.
    if csv_text.startswith("\ufeff"):
        csv_text = csv_text[1:]

    rows: list[SourceRow] = []
    with StringIO(csv_text, newline="") as f:
        reader = csv.DictReader(f, restkey=_EXTRA, strict=True)
        try:
            header = list(reader.fieldnames or [])
            for row in reader:
                if _EXTRA in row:
                    raise CsvStructureError(
                        f"Too many fields on line {reader.line_num}: expected "
                        f"{len(header)} but parsed {len(header) + len(row[_EXTRA])}",
                        line=reader.line_num,
                    )
                missing = sum(1 for v in row.values() if v is None)
                if missing:
                    raise CsvStructureError(
                        f"Too few fields on line {reader.line_num}: expected "
                        f"{len(header)} but parsed {len(header) - missing}",
                        line=reader.line_num,
                    )
                rows.append(SourceRow(line=reader.line_num, values=dict(row)))
        except csv.Error as exc:
            raise CsvStructureError(
                f"Malformed CSV near line {reader.line_num}: {exc}", line=reader.line_num
            ) from exc

    return header, rows


__all__ = ["RowError", "SourceRow", "read_rows"]
