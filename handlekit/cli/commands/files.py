"""File reading and writing commands."""

from typing import Optional

import typer

from handlekit.cli.utils.context import CLIContext
from handlekit.core.types import BaseMode, Mode
from handlekit.infrastructure.filesystem import open_file

app = typer.Typer(help="Read and write files")


@app.command("cat")
def cat_file(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to print"),
    binary: bool = typer.Option(False, "--binary", "-b", help="Copy raw bytes"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Print only the first N lines"),
):
    """
    Print a file to stdout.

    Example:
        handlekit file cat notes.txt
        handlekit file cat notes.txt --lines 5
    """
    cli_ctx: CLIContext = ctx.obj

    def body():
        mode = Mode(BaseMode.READ, binary=binary)
        with open_file(path, mode, None if binary else cli_ctx.encoding) as handle:
            if lines is None:
                typer.echo(handle.read(), nl=False)
                return
            for index, line in enumerate(handle):
                if index >= lines:
                    break
                typer.echo(line, nl=False)

    cli_ctx.run(body)


@app.command("write")
def write_file(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to write"),
    text: str = typer.Argument(..., help="Text to write"),
    append: bool = typer.Option(False, "--append", "-a", help="Append instead of truncating"),
    exclusive: bool = typer.Option(False, "--exclusive", "-x", help="Fail if the file exists"),
    newline: bool = typer.Option(True, "--newline/--no-newline", help="Terminate the text with a newline"),
):
    """
    Write text to a file.

    Example:
        handlekit file write notes.txt "first line"
        handlekit file write notes.txt "another line" --append
    """
    cli_ctx: CLIContext = ctx.obj

    if append and exclusive:
        cli_ctx.console.print("[red]Error: --append and --exclusive cannot be combined[/red]")
        raise typer.Exit(2)

    if append:
        base = BaseMode.APPEND
    elif exclusive:
        base = BaseMode.EXCLUSIVE_CREATE
    else:
        base = BaseMode.WRITE

    def body():
        with open_file(path, Mode(base), cli_ctx.encoding) as handle:
            return handle.write(text + "\n" if newline else text)

    count = cli_ctx.run(body)
    cli_ctx.formatter.print_success(f"Wrote {count} characters to {path}")
