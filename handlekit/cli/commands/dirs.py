"""Directory management commands."""

import os
from typing import Optional

import typer
from rich.prompt import Confirm

from handlekit.cli.utils.context import CLIContext

app = typer.Typer(help="Manage directories")


@app.command("ls")
def list_entries(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="Directory to list (default: current)"),
    sort: bool = typer.Option(True, "--sort/--no-sort", help="Sort entries by name"),
    no_headers: bool = typer.Option(False, "--no-headers", help="Hide table headers"),
):
    """
    List the entries of a directory.

    Example:
        handlekit dir ls
        handlekit dir ls build --output json
    """
    cli_ctx: CLIContext = ctx.obj
    directories = cli_ctx.directories

    def body():
        base = path if path is not None else directories.current_directory()
        items = []
        for name in directories.list_entries(path, sort=sort):
            full = os.path.join(base, name)
            # links are described, not followed; a dangling one is still listed
            if os.path.islink(full):
                entry_type = "symlink"
            elif directories.is_directory(full):
                entry_type = "directory"
            else:
                entry_type = "file"
            items.append(
                {
                    "name": name,
                    "type": entry_type,
                    "size": None if entry_type == "directory" else os.lstat(full).st_size,
                }
            )
        return items

    items = cli_ctx.run(body)
    cli_ctx.formatter.print_list(
        items,
        columns=["name", "type", "size"],
        title=path or None,
        no_headers=no_headers,
    )


@app.command("pwd")
def print_working_directory(ctx: typer.Context):
    """Print the current working directory."""
    cli_ctx: CLIContext = ctx.obj
    typer.echo(cli_ctx.run(cli_ctx.directories.current_directory))


@app.command("mkdir")
def make_directory(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Directory to create"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parents"),
):
    """
    Create a directory.

    Example:
        handlekit dir mkdir build
        handlekit dir mkdir build/cache/objects --parents
    """
    cli_ctx: CLIContext = ctx.obj
    if parents:
        cli_ctx.run(cli_ctx.directories.make_directories, path, exist_ok=True)
    else:
        cli_ctx.run(cli_ctx.directories.make_directory, path)
    cli_ctx.formatter.print_success(f"Created directory {path}")


@app.command("mv")
def rename_entry(
    ctx: typer.Context,
    old_path: str = typer.Argument(..., help="Existing file or directory"),
    new_path: str = typer.Argument(..., help="New name"),
):
    """Rename a file or directory."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.run(cli_ctx.directories.rename, old_path, new_path)
    cli_ctx.formatter.print_success(f"Renamed {old_path} to {new_path}")


@app.command("rm")
def remove_file(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to remove"),
):
    """Remove a file."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.run(cli_ctx.directories.remove_file, path)
    cli_ctx.formatter.print_success(f"Removed {path}")


@app.command("rmdir")
def remove_empty_directory(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Empty directory to remove"),
):
    """Remove an empty directory."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.run(cli_ctx.directories.remove_empty_directory, path)
    cli_ctx.formatter.print_success(f"Removed directory {path}")


@app.command("rmtree")
def remove_tree(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Directory tree to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Remove a directory and everything in it.

    Example:
        handlekit dir rmtree build --yes
    """
    cli_ctx: CLIContext = ctx.obj

    if not yes and not Confirm.ask(f"Remove {path} and all of its contents?"):
        cli_ctx.formatter.print_warning("Aborted")
        raise typer.Exit(0)

    cli_ctx.run(cli_ctx.directories.remove_tree, path)
    cli_ctx.formatter.print_success(f"Removed tree {path}")
