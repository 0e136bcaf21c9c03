"""Output formatters for task lists and status messages."""

import json
from collections.abc import Sequence

from rich.markup import escape
from rich.table import Table

from todovault.models import Task
from todovault.utils.ui.console import get_console


def format_error(message: str) -> None:
    """Format and display an error message."""
    get_console().print(f"[bold red]Error:[/bold red] {message}")


def format_success(message: str) -> None:
    """Format and display a success message."""
    get_console().print(f"[bold green]Success:[/bold green] {message}")


def format_warning(message: str) -> None:
    """Format and display a warning message."""
    get_console().print(f"[bold yellow]Warning:[/bold yellow] {message}")


def format_info(message: str) -> None:
    """Format and display an info message."""
    get_console().print(f"[bold blue]Info:[/bold blue] {message}")


def truncate(text: str, width: int = 60) -> str:
    """Shorten long text for one-line messages."""
    return text if len(text) <= width else text[: width - 3] + "..."


def format_tasks(tasks: Sequence[Task], output_format: str = "table") -> None:
    """Display tasks as a table or as JSON."""
    if output_format == "json":
        print(json.dumps([task.model_dump() for task in tasks], indent=2))
        return

    console = get_console()
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Done", justify="center")
    table.add_column("Title")
    table.add_column("Description", style="dim")

    for task in tasks:
        table.add_row(
            str(task.id),
            "✓" if task.is_completed else "✗",
            escape(task.title),
            escape(task.description) or "-",
        )

    console.print(table)
