"""Progress and status reporting.

Components report user-facing progress through a ProgressReporter passed
in by the caller. Reporters are purely observational; nothing they return
is used by the cache logic.
"""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.status import Status

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Observer for cache status and progress events."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str, error: BaseException | None = None) -> None: ...

    def start_progress(self, message: str) -> None: ...

    def update_progress(self, message: str) -> None: ...

    def stop_progress(self, message: str, success: bool = True) -> None: ...


class NullReporter:
    """Reporter that discards all events."""

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass

    def error(self, message: str, error: BaseException | None = None) -> None:
        pass

    def start_progress(self, message: str) -> None:
        pass

    def update_progress(self, message: str) -> None:
        pass

    def stop_progress(self, message: str, success: bool = True) -> None:
        pass


class LoggingReporter:
    """Reporter that forwards events to the standard logging module.

    Progress updates are logged at DEBUG to keep INFO output readable.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def info(self, message: str) -> None:
        self._log.info(message)

    def success(self, message: str) -> None:
        self._log.info(message)

    def warn(self, message: str) -> None:
        self._log.warning(message)

    def error(self, message: str, error: BaseException | None = None) -> None:
        if error is not None:
            self._log.error("%s: %s", message, error)
        else:
            self._log.error(message)

    def start_progress(self, message: str) -> None:
        self._log.info(message)

    def update_progress(self, message: str) -> None:
        self._log.debug(message)

    def stop_progress(self, message: str, success: bool = True) -> None:
        if not message:
            return
        if success:
            self._log.info(message)
        else:
            self._log.warning(message)


class ConsoleReporter:
    """Reporter rendering to a rich console with a status spinner."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self._status: Status | None = None

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]! {message}[/yellow]")

    def error(self, message: str, error: BaseException | None = None) -> None:
        self.console.print(f"[red]✗ {message}[/red]")
        if error is not None:
            self.console.print(f"[red]  └─ {error}[/red]")

    def start_progress(self, message: str) -> None:
        if self._status is None:
            self._status = self.console.status(message)
            self._status.start()
        else:
            self._status.update(message)

    def update_progress(self, message: str) -> None:
        if self._status is None:
            self.start_progress(message)
        else:
            self._status.update(message)

    def stop_progress(self, message: str, success: bool = True) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        if not message:
            return
        if success:
            self.success(message)
        else:
            self.console.print(f"[red]✗ {message}[/red]")


__all__ = [
    "ConsoleReporter",
    "LoggingReporter",
    "NullReporter",
    "ProgressReporter",
]
