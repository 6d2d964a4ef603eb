"""TinyVector CLI error handling.

Renders errors as Rich panels and maps them to exit codes.

Exit codes:
    0 - Success
    1 - General error
    2 - Configuration error
    3 - Vector store error (missing collection, bad dimension, ...)
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Generator

from rich.console import Console
from rich.panel import Panel

from tinyvector.vectordb.exceptions import VectorStoreError

EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_STORE_ERROR = 3


class CLIError(Exception):
    """Base exception for CLI errors.

    Parameters
    ----------
    message:
        Human-readable error description.
    exit_code:
        Process exit code (default :data:`EXIT_GENERAL_ERROR`).
    """

    def __init__(self, message: str, exit_code: int = EXIT_GENERAL_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigError(CLIError):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=EXIT_CONFIG_ERROR)


_stderr = Console(stderr=True)


def _panel(message: str, title: str) -> Panel:
    return Panel(
        f"[bold red]{message}[/bold red]",
        title=f"[red]{title}[/red]",
        border_style="red",
    )


@contextmanager
def error_handler(console: Console | None = None) -> Generator[None, None, None]:
    """Catch exceptions, print a Rich error panel and exit.

    Parameters
    ----------
    console:
        Rich console to use for output. Defaults to a stderr console.

    Raises
    ------
    SystemExit
        Always raised when an exception is caught, with the matching
        exit code.
    """
    out = console or _stderr
    try:
        yield
    except CLIError as exc:
        out.print(_panel(exc.message, "Error"))
        sys.exit(exc.exit_code)
    except VectorStoreError as exc:
        out.print(_panel(str(exc), type(exc).__name__))
        sys.exit(EXIT_STORE_ERROR)
    except KeyboardInterrupt:
        out.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    except Exception as exc:
        out.print(_panel(str(exc), "Unexpected Error"))
        sys.exit(EXIT_GENERAL_ERROR)
