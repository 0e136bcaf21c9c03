"""Task management commands."""

import asyncio
from enum import Enum
from typing import Annotated

import typer
from rich.markup import escape

from todovault.models import Task
from todovault.utils.ui.console import get_console
from todovault.utils.ui.formatters import (
    format_info,
    format_success,
    format_tasks,
    format_warning,
    truncate,
)

from .decorators import command_wrapper
from .utils import find_task, load_coordinator, require_task

app = typer.Typer(help="Task management commands")
console = get_console()


class StatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


def _filter_tasks(tasks: tuple[Task, ...], status: StatusFilter) -> list[Task]:
    if status is StatusFilter.ACTIVE:
        return [task for task in tasks if not task.is_completed]
    if status is StatusFilter.COMPLETED:
        return [task for task in tasks if task.is_completed]
    return list(tasks)


@app.command("add")
@command_wrapper
async def add_command(
    title: Annotated[str, typer.Argument(help="Task title")],
    description: Annotated[
        str, typer.Option("--description", "-d", help="Task description")
    ] = "",
) -> None:
    """Add a new task."""
    coordinator = await load_coordinator()
    task = await coordinator.add_task(title, description)
    format_success(f"Added #{task.id}: {escape(truncate(task.title))}")


@app.command("list")
@command_wrapper
async def list_command(
    status: Annotated[
        StatusFilter, typer.Option("--status", "-s", help="all, active or completed")
    ] = StatusFilter.ALL,
    json_opt: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List tasks."""
    coordinator = await load_coordinator()
    format_tasks(
        _filter_tasks(coordinator.tasks, status),
        "json" if json_opt else "table",
    )


@app.command("complete")
@command_wrapper
async def complete_command(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
) -> None:
    """Mark a task as completed."""
    coordinator = await load_coordinator()
    task = require_task(coordinator, task_id)
    await coordinator.complete_task(task, completed=True)
    format_success(f"✓ Completed: {escape(truncate(task.title))}")
    console.print(f"[dim]To undo: todovault tasks reopen {task_id}[/dim]")


@app.command("reopen")
@command_wrapper
async def reopen_command(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
) -> None:
    """Mark a completed task as not completed."""
    coordinator = await load_coordinator()
    task = require_task(coordinator, task_id)
    await coordinator.complete_task(task, completed=False)
    format_success(f"Reopened: {escape(truncate(task.title))}")


@app.command("delete")
@command_wrapper
async def delete_command(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation")
    ] = False,
) -> None:
    """Delete a task permanently."""
    coordinator = await load_coordinator()
    task = find_task(coordinator, task_id)
    if task is None:
        format_warning(f"Task {task_id} does not exist; nothing to delete")
        return

    if not force and not typer.confirm(f"Delete task '{truncate(task.title)}'?"):
        format_info("Cancelled")
        raise typer.Exit(0)

    await coordinator.delete_task(task)
    format_success(f"Deleted #{task_id}")


@app.command("clear-completed")
@command_wrapper
async def clear_completed_command() -> None:
    """Delete all completed tasks."""
    coordinator = await load_coordinator()
    removed = await coordinator.clear_completed_tasks()
    if removed:
        format_success(f"Cleared {removed} completed task(s)")
    else:
        format_info("No completed tasks to clear")


@app.command("watch")
@command_wrapper
async def watch_command() -> None:
    """Show the task list and redraw it whenever it changes (Ctrl-C to stop)."""
    coordinator = await load_coordinator()

    def render(tasks: tuple[Task, ...]) -> None:
        console.clear()
        format_tasks(tasks)

    unsubscribe = coordinator.subscribe(render)
    await coordinator.start()
    try:
        await asyncio.Event().wait()
    finally:
        unsubscribe()
        await coordinator.stop()
