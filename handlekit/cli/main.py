"""handlekit command line tool."""

from typing import Optional

import typer
from rich.console import Console

from handlekit import __version__
from handlekit.cli.commands import dirs, files
from handlekit.cli.utils.context import CLIContext
from handlekit.cli.utils.output import OutputFormatter
from handlekit.core.config import get_settings
from handlekit.infrastructure.filesystem import DirectoryManager
from handlekit.infrastructure.logging import bind_context, clear_context, setup_logging

app = typer.Typer(
    name="handlekit",
    help="handlekit - file handles and directory operations from the command line",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)

console = Console()


def version_callback(value: bool):
    """Display version and exit."""
    if value:
        console.print(f"handlekit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug logging",
    ),
    output_format: str = typer.Option(
        "table",
        "--output",
        "-o",
        help="Output format: table, json, yaml",
    ),
    encoding: Optional[str] = typer.Option(
        None,
        "--encoding",
        "-e",
        help="Text encoding (default: HANDLEKIT_DEFAULT_ENCODING or utf-8)",
    ),
):
    """
    handlekit CLI

    Read and write files and manage directories with classified errors.
    """
    settings = get_settings()
    if debug:
        settings.log_level = "DEBUG"
        setup_logging()

    clear_context()
    if ctx.invoked_subcommand:
        bind_context(operation=ctx.invoked_subcommand)

    ctx.obj = CLIContext(
        debug=debug,
        encoding=encoding or settings.default_encoding or "utf-8",
        formatter=OutputFormatter(output_format, console),
        console=console,
        directories=DirectoryManager(),
    )


app.add_typer(files.app, name="file", help="Read and write files")
app.add_typer(dirs.app, name="dir", help="Manage directories")


if __name__ == "__main__":
    app()
