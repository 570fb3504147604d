"""Output formatting utilities for CLI."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.table import Table


class OutputFormat(Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


class OutputFormatter:
    """Handle output formatting for different formats."""

    def __init__(self, format_type: str = "table", console: Optional[Console] = None):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
            console: Console to print to (a new stdout console by default)
        """
        self.console = console or Console()
        try:
            self.format = OutputFormat(format_type.lower())
        except ValueError:
            self.format = OutputFormat.TABLE

    def _dump(self, data: Any) -> None:
        if self.format == OutputFormat.JSON:
            text = json.dumps(data, indent=2, default=str)
        else:
            text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def print_list(
        self,
        items: List[Dict[str, Any]],
        columns: Optional[List[str]] = None,
        title: Optional[str] = None,
        no_headers: bool = False,
    ):
        """
        Print a list of items.

        Args:
            items: List of items to print
            columns: Column names to display (for table format)
            title: Table title (for table format)
            no_headers: Whether to hide headers (for table format)
        """
        if self.format != OutputFormat.TABLE:
            self._dump(items)
            return

        if not items:
            self.console.print("[dim]No entries[/dim]")
            return

        if not columns:
            columns = list(items[0].keys())

        table = Table(title=title, show_header=not no_headers)
        for col in columns:
            table.add_column(col.replace("_", " ").title())

        for item in items:
            row = []
            for col in columns:
                value = item.get(col, "")
                if value is None:
                    value = "[dim]-[/dim]"
                elif isinstance(value, bool):
                    value = "[green]✓[/green]" if value else "[red]✗[/red]"
                else:
                    value = str(value)
                row.append(value)
            table.add_row(*row)

        self.console.print(table)

    def print_success(self, message: str):
        """Print success message."""
        if self.format != OutputFormat.TABLE:
            self._dump({"status": "success", "message": message})
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def print_warning(self, message: str):
        """Print warning message."""
        if self.format != OutputFormat.TABLE:
            self._dump({"status": "warning", "message": message})
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
