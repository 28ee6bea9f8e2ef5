"""Category list helpers: defaults, name validation and display ordering.

Categories are plain names owned per user. A user with no stored categories
sees :data:`DEFAULT_CATEGORIES`. Lists are shown sorted alphabetically with
accents and case ignored, except that :data:`OTHER_CATEGORY` always comes
last.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass

OTHER_CATEGORY = "Khác"

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Ăn uống",
    "Di chuyển",
    "Mua sắm",
    "Giải trí",
    "Hóa đơn",
    OTHER_CATEGORY,
)

# ---------------------------
# Name normalization/validation
# ---------------------------

# Letters (any script), digits, spaces and ``& - /``.
_ALLOWED_RE = re.compile(r"^[^\W_]+(?:[ &\-/]+[^\W_]+)*[ &\-/]*$")


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Composes accents (NFC); does not change case.
    """

    return " ".join(unicodedata.normalize("NFC", name).strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Validate a category name after :func:`normalize_name`.

    Rules
    -----
    - Length bounds 1..64 after trimming.
    - Allowed characters: letters (accented included), numbers, spaces, and
      ``& - /``; the name must start with a letter or number.
    """

    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / are allowed")
    return NameValidation(True, None)


# ---------------------------
# Ordering
# ---------------------------


def fold_name(name: str) -> str:
    """Accent- and case-insensitive sort key (``"Ăn uống"`` -> ``"an uong"``)."""

    decomposed = unicodedata.normalize("NFD", name.replace("đ", "d").replace("Đ", "D"))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def sort_categories(names: Iterable[str]) -> list[str]:
    """Sort for display; :data:`OTHER_CATEGORY` is pinned to the end."""

    return sorted(names, key=lambda n: (n == OTHER_CATEGORY, fold_name(n)))


def effective_categories(stored: Iterable[str]) -> list[str]:
    """The user's categories for display, falling back to the defaults."""

    stored = list(stored)
    return sort_categories(stored or DEFAULT_CATEGORIES)


__all__ = [
    "DEFAULT_CATEGORIES",
    "OTHER_CATEGORY",
    "NameValidation",
    "effective_categories",
    "fold_name",
    "normalize_name",
    "sort_categories",
    "validate_name",
]
