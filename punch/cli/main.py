"""
Main CLI entry point for punch.

This module provides the command-line interface using typer and rich.
"""

import logging
import re
import sys
from contextlib import contextmanager
from datetime import timedelta
from logging.handlers import RotatingFileHandler
from typing import Generator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..core.time_tracker import TimeTracker
from ..db.models import EditOptions, LogEntry, LogOptions
from ..db.repository import EntryRepository
from ..db.schema import DatabaseManager
from ..errors import SYSTEM_ERROR, USER_ERROR, PunchError
from ..utils.config import ConfigManager, get_config_manager
from ..utils.formatting import (
    format_date,
    format_duration,
    format_time,
    format_timedelta,
    short_id,
    truncate_text,
)

logger = logging.getLogger(__name__)

# Create the main typer app
app = typer.Typer(
    name="punch",
    help="punch: a personal time tracker for the terminal",
    add_completion=False,
)

# Console for regular output, and one for errors on standard error
console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ID_PREFIX_PATTERN = re.compile(r"^[0-9a-fA-F-]+$")
POSITION_PATTERN = re.compile(r"^-\d+$")


@contextmanager
def open_tracker() -> Generator[TimeTracker, None, None]:
    """Open the store for this invocation and close it on every exit path."""
    config = get_config_manager()
    with DatabaseManager(config.get_db_path()) as db_manager:
        yield TimeTracker(EntryRepository(db_manager))


@contextmanager
def handle_errors(action: str) -> Generator[None, None, None]:
    """Report failures on standard error and exit with the matching code."""
    try:
        yield
    except typer.Exit:
        raise
    except PunchError as e:
        logger.info("Failed to %s: %s", action, e)
        err_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(e.exit_code)
    except Exception as e:
        logger.exception("Unexpected error while trying to %s", action)
        err_console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        raise typer.Exit(SYSTEM_ERROR)


def _usage_error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(USER_ERROR)


def _project_suffix(project: Optional[str]) -> str:
    return f" on [magenta]{escape(project)}[/magenta]" if project else ""


def split_edit_arguments(args: List[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split the positional arguments of `edit` into (reference, task name).

    A lone argument is a reference when it is a -N position or looks like an
    id prefix, and a new task name otherwise.
    """
    if len(args) > 2:
        raise ValueError(
            "Too many arguments. Usage: punch edit [<id-or-position>] [task-name] [--flags]"
        )
    if len(args) == 2:
        return args[0], args[1]
    if len(args) == 1:
        arg = args[0]
        if POSITION_PATTERN.match(arg) or ID_PREFIX_PATTERN.match(arg):
            return arg, None
        return None, arg
    return None, None


@app.command("in")
@app.command("start")
def punch_in(
    task_name: str = typer.Argument(..., help="Name of the task to track"),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project the task belongs to"
    ),
) -> None:
    """Start tracking time for a task."""
    if not task_name.strip():
        _usage_error("Task name is required")

    with handle_errors("start task"), open_tracker() as tracker:
        entry = tracker.punch_in(task_name, project=project)

    console.print(
        f"[green]✓[/green] Started '[bold]{escape(entry.task_name)}[/bold]'"
        f"{_project_suffix(entry.project)} at {format_time(entry.start_time)}"
    )
    console.print(f"[dim]Entry ID: {entry.id}[/dim]")


@app.command("out")
@app.command("stop")
def punch_out(
    at: Optional[str] = typer.Option(
        None, "--at", "-a", help="End time (HH:MM, 2pm, 14h, YYYY-MM-DD HH:MM)"
    ),
) -> None:
    """Stop tracking the active task."""
    with handle_errors("stop task"), open_tracker() as tracker:
        entry = tracker.punch_out(at=at)

    console.print(
        f"[green]✓[/green] Stopped '[bold]{escape(entry.task_name)}[/bold]'"
        f" - worked {format_duration(entry.start_time, entry.end_time)}"
    )


@app.command(context_settings={"ignore_unknown_options": True})
def edit(
    args: Optional[List[str]] = typer.Argument(
        None, help="[<id-or-position>] [new task name], e.g. `edit -2 \"Review\"`"
    ),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="New project"
    ),
    start: Optional[str] = typer.Option(
        None, "--start", help="New start time (HH:MM, 2pm, 14h, YYYY-MM-DD HH:MM)"
    ),
    end: Optional[str] = typer.Option(
        None, "--end", help="New end time (HH:MM, 2pm, 14h, YYYY-MM-DD HH:MM)"
    ),
) -> None:
    """Edit an entry (the active one, or the last one, by default)."""
    positional = list(args or [])
    unknown = [arg for arg in positional if arg.startswith("-") and not POSITION_PATTERN.match(arg)]
    if unknown:
        _usage_error(f"Unknown option: {unknown[0]}")

    try:
        reference, task_name = split_edit_arguments(positional)
    except ValueError as e:
        _usage_error(str(e))
        return

    options = EditOptions(
        reference=reference,
        task_name=task_name,
        project=project,
        start=start,
        end=end,
    )

    with handle_errors("edit entry"), open_tracker() as tracker:
        entry = tracker.punch_edit(options)

    console.print(
        f"[green]✓[/green] Updated '[bold]{escape(entry.task_name)}[/bold]'"
        f"{_project_suffix(entry.project)} starting at {format_time(entry.start_time)}"
    )


@app.command()
def log(
    today: bool = typer.Option(False, "--today", help="Today's entries (default)"),
    week: bool = typer.Option(False, "--week", help="This week's entries"),
    month: bool = typer.Option(False, "--month", help="This month's entries"),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Only entries of this project"
    ),
) -> None:
    """List time entries."""
    options = LogOptions(today=today, week=week, month=month, project=project)

    with handle_errors("show log"), open_tracker() as tracker:
        entries = tracker.get_log(options)

    if not entries:
        console.print("[dim]No entries found[/dim]")
        return

    console.print(_build_log_table(entries))

    total = sum((entry.duration or 0 for entry in entries), 0)
    if total > 0:
        console.print(
            f"\n[bold]Total: {format_timedelta(timedelta(milliseconds=total))}[/bold]"
        )


def _build_log_table(entries: List[LogEntry]) -> Table:
    """Render log entries as a rich table."""
    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Task", style="bold")
    table.add_column("Project", style="magenta")
    table.add_column("Date", style="dim")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Duration", justify="right")

    for entry in entries:
        if entry.end_time is None:
            end_str = "[yellow]-[/yellow]"
            duration_str = f"[yellow]{entry.formatted_duration}[/yellow]"
        else:
            end_str = entry.formatted_end
            duration_str = entry.formatted_duration

        table.add_row(
            short_id(entry.id),
            escape(truncate_text(entry.task_name)),
            escape(entry.project or ""),
            format_date(entry.start_time),
            entry.formatted_start,
            end_str,
            duration_str,
        )

    return table


@app.command(hidden=True)
def status() -> None:
    """Show the active task (coming soon)."""
    console.print("Command 'status' coming soon")


@app.command(hidden=True)
def summary() -> None:
    """Aggregate reports (coming soon)."""
    console.print("Command 'summary' coming soon")


@app.command(hidden=True)
def cancel() -> None:
    """Delete the active task (coming soon)."""
    console.print("Command 'cancel' coming soon")


def setup_logging(config: ConfigManager, verbose: bool = False) -> None:
    """
    Send punch log records to a rotating file in the data directory.

    With verbose, debug records are also written to standard error.
    """
    package_logger = logging.getLogger("punch")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    try:
        log_path = config.get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.get_log_max_bytes(),
            backupCount=config.get_log_backup_count(),
            encoding="utf-8",
        )
    except OSError as e:
        err_console.print(f"[yellow]Warning: file logging disabled: {escape(str(e))}[/yellow]")
    else:
        file_handler.setLevel(getattr(logging, config.get_log_level(), logging.INFO))
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(logging.DEBUG)
        stream_handler.setFormatter(formatter)
        package_logger.addHandler(stream_handler)


def version_callback(value: bool) -> None:
    """Version callback that prints version and exits."""
    if value:
        console.print(f"punch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print debug logging to standard error"
    ),
) -> None:
    """
    punch: a personal time tracker for the terminal.

    Punch in on a task, punch out, fix past entries and list the log.
    """
    setup_logging(get_config_manager(), verbose=verbose)


if __name__ == "__main__":
    app()
