"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the personal finance models used by ``balance``.
"""

from .finance import Base, BalBudget, BalCategory, BalExpense, BalIncome, BalProfile

__all__ = [
    "Base",
    "BalBudget",
    "BalCategory",
    "BalExpense",
    "BalIncome",
    "BalProfile",
]
