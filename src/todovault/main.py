"""Main entry point for TodoVault CLI."""

import typer

from todovault import __version__
from todovault.commands import tasks
from todovault.utils.ui.console import get_console

app = typer.Typer(
    name="todovault",
    help="A personal task manager with an encrypted local vault",
    no_args_is_help=True,
)

console = get_console()

app.add_typer(tasks.app, name="tasks", help="Task management commands")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]TodoVault[/bold] version [cyan]{__version__}[/cyan]")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
