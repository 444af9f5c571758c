"""Status display for running waits.

Waits push short best-effort hints ("waiting for ok.png...") through a
StatusReporter. The CLI renders them on one terminal line; library callers
get them in the log.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class StatusReporter(ABC):
    """Base status sink. Must never block or raise into the wait loop."""

    @abstractmethod
    def show_status(self, message: str) -> None:
        """Display a one-line status hint."""
        ...

    def clear(self) -> None:
        """Remove the current hint, if the sink keeps one on screen."""


class LogStatusReporter(StatusReporter):
    """Routes status hints to the logging system."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def show_status(self, message: str) -> None:
        logger.log(self._level, "status: %s", message)


class CLIStatusReporter(StatusReporter):
    """Terminal status line using typer. Repeated messages are not re-drawn."""

    def __init__(self) -> None:
        self._last: str | None = None

    def show_status(self, message: str) -> None:
        import typer

        if message == self._last:
            return
        self._last = message
        typer.echo(f"\r\033[K{message}", nl=False, err=True)

    def clear(self) -> None:
        import typer

        if self._last is not None:
            typer.echo("\r\033[K", nl=False, err=True)
            self._last = None


class StatusBuffer(StatusReporter):
    """Collects status hints in memory (embedding hosts, tests)."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def show_status(self, message: str) -> None:
        self.messages.append(message)

    def clear(self) -> None:
        self.messages.append("")

    def to_text(self) -> str:
        return "\n".join(m for m in self.messages if m)
