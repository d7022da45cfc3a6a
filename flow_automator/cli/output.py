"""Output formatting utilities for the Flow Automator CLI.

Standardized rendering of tables, JSON and operation results, shared by
the command modules.
"""

import json
from typing import Any, Dict, List

from rich.console import Console
from rich.json import JSON as RichJSON
from rich.table import Table

# Default console for output
console = Console()


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print data as formatted JSON.

    Args:
        data: Data to print (must be JSON-serializable)
        console_instance: Optional custom console instance
    """
    prog_console = console_instance or console

    json_str = json.dumps(data, indent=2, default=str)
    # Long values must not be cropped to the terminal width
    prog_console.print(RichJSON(json_str), soft_wrap=True)


def print_table(
    data: List[Dict[str, Any]],
    columns: List[str],
    title: str | None = None,
    column_styles: Dict[str, str] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print data as a formatted table.

    Args:
        data: List of dictionaries containing row data
        columns: List of column keys to display
        title: Optional table title
        column_styles: Optional dict mapping column names to Rich styles
        console_instance: Optional custom console instance

    Example:
        rows = [
            {"position": 1, "kind": "text_to_video", "prompt": "A red fox"},
            {"position": 2, "kind": "image_to_video", "prompt": "Slow zoom"},
        ]
        print_table(rows, ["position", "kind", "prompt"], title="Queue")
    """
    prog_console = console_instance or console
    column_styles = column_styles or {}

    table = Table(title=title)

    for col in columns:
        style = column_styles.get(col)
        header = col.replace("_", " ").title()
        table.add_column(header, style=style)

    for row in data:
        values = []
        for col in columns:
            value = row.get(col, "")
            if value is None:
                value = ""
            elif isinstance(value, bool):
                value = "[green]Yes[/green]" if value else "[red]No[/red]"
            values.append(str(value))

        table.add_row(*values)

    prog_console.print(table)


def print_result(
    success: bool,
    message: str,
    details: Dict[str, Any] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print operation result with appropriate styling.

    Args:
        success: Whether the operation succeeded
        message: Result message
        details: Optional dictionary of additional details
        console_instance: Optional custom console instance

    Example:
        print_result(True, "Queued 3 jobs", {"queue length": 7})
    """
    prog_console = console_instance or console

    icon = "[green]✓[/green]" if success else "[red]✗[/red]"
    prog_console.print(f"{icon} {message}")

    if details:
        for key, value in details.items():
            if value is not None:
                prog_console.print(f"  [dim]{key}:[/dim] {value}")


def format_duration_ms(milliseconds: int) -> str:
    """Format a millisecond duration in human-readable form.

    Example:
        format_duration_ms(7500)    # Returns "7.5s"
        format_duration_ms(90000)   # Returns "1m 30s"
    """
    seconds = milliseconds / 1000
    if seconds < 60:
        return f"{seconds:g}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs}s"
