"""CLI context management."""

import sys
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import typer
from rich.console import Console

from handlekit.application.propagation import EXIT_FAILURE, report_unhandled
from handlekit.cli.utils.output import OutputFormatter
from handlekit.core.errors import ClassifiedError
from handlekit.infrastructure.exceptions import translate_os_error
from handlekit.infrastructure.filesystem import DirectoryManager

R = TypeVar("R")


@dataclass
class CLIContext:
    """Context object passed through CLI commands."""

    debug: bool
    encoding: str
    formatter: OutputFormatter
    console: Console
    directories: DirectoryManager

    def run(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """
        Run a command body as the outermost frame.

        Classified errors are reported with their kind, message and causal
        chain on stderr and the command exits with status 1.
        """
        try:
            return fn(*args, **kwargs)
        except ClassifiedError as e:
            report_unhandled(e, sys.stderr)
            raise typer.Exit(EXIT_FAILURE)
        except (OSError, UnicodeError) as e:
            report_unhandled(translate_os_error(e), sys.stderr)
            raise typer.Exit(EXIT_FAILURE)
