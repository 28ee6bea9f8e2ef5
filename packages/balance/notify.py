"""User-facing notifications (the app's success/error toasts).

``Notifier`` is the seam: import/export flows report every outcome through it
and never print directly. Two implementations live here; the CLI adds one that
echoes to the terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol

from .logging_setup import NOTIFY_LOGGER_NAME, get_logger

Level = Literal["success", "error"]


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Route notifications to the ``balance.notify`` logger."""

    def __init__(self, name: str = NOTIFY_LOGGER_NAME) -> None:
        self._logger = get_logger(name)

    def success(self, message: str) -> None:
        self._logger.info(message)

    def error(self, message: str) -> None:
        self._logger.error(message)


@dataclass(slots=True)
class RecordingNotifier:
    """Keep notifications in order; handy for tests and batch summaries."""

    messages: list[tuple[Level, str]] = field(default_factory=list)

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    @property
    def successes(self) -> list[str]:
        return [m for lvl, m in self.messages if lvl == "success"]

    @property
    def errors(self) -> list[str]:
        return [m for lvl, m in self.messages if lvl == "error"]


__all__ = ["LoggingNotifier", "Notifier", "RecordingNotifier"]
