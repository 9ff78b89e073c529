"""Typer-based CLI for ppmcal."""

import logging
import uuid
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .activity import SORT_KEYS, ActivityLog
from .config import PpmConfig
from .lifecycle import EventLifecycleManager, format_time_window
from .models.events import CalendarEvent, EventKind
from .models.project import ProjectStatus
from .notifications import NotificationLedger, Notifier, read_notifications_tail
from .paths import DataPaths
from .projects import ProjectDirectory
from .schedule import CalendarService, events_on, upcoming_events
from .store import DocumentStore, StoreError
from .trace import write_archival_trace

app = typer.Typer(
    name="ppmcal",
    help="ppmcal - project calendar with automatic archival of expired events",
    add_completion=False,
)

console = Console()

DATA_DIR_HELP = "Path to data directory (default: PPMCAL_DATA_DIR env or ./ppm_data)"


@app.callback()
def main_callback(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(data_dir: Optional[str]) -> tuple[PpmConfig, DataPaths]:
    try:
        config = PpmConfig.from_env(cli_data_dir=data_dir)
    except ValueError as e:
        console.print(f"[red]Error: Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)
    paths = DataPaths.from_config(config)
    return config, paths


def _open(data_dir: Optional[str]) -> tuple[PpmConfig, DataPaths, DocumentStore, Notifier]:
    config, paths = _load(data_dir)
    if not paths.is_initialized():
        console.print(f"[red]Error: Data directory not initialized at {config.data_dir}[/red]")
        console.print("[yellow]Run 'ppmcal init' first[/yellow]")
        raise typer.Exit(code=1)
    try:
        store = DocumentStore(paths.store_db)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    notifier = Notifier(ledger=NotificationLedger(paths.notifications_file), out=console)
    return config, paths, store, notifier


def _parse_time(value: str, tz: tzinfo, option: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Error: {option} must be ISO format (YYYY-MM-DD or YYYY-MM-DDTHH:MM)[/red]")
        raise typer.Exit(code=1)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


def _parse_day(value: Optional[str], tz: tzinfo) -> date:
    if not value:
        return datetime.now(tz).date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print("[red]Error: --date must be YYYY-MM-DD[/red]")
        raise typer.Exit(code=1)


@app.command()
def init(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Initialize the data directory: document store, notification ledger and traces.

    This command is idempotent - it will not overwrite existing data.
    """
    config, paths = _load(data_dir)

    if paths.is_initialized():
        console.print(f"[yellow]Data directory already initialized at:[/yellow] {config.data_dir}")
    else:
        console.print(f"[green]Initializing ppmcal data directory at:[/green] {config.data_dir}")

    for directory in paths.get_all_directories():
        directory.mkdir(parents=True, exist_ok=True)

    try:
        DocumentStore(paths.store_db)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if not paths.notifications_file.exists():
        paths.notifications_file.touch()
        console.print(f"[green]+[/green] Created notifications ledger: {paths.notifications_file}")

    if not paths.config_file.exists():
        paths.config_file.write_text(config.to_toml_str(), encoding="utf-8")
        console.print(f"[green]+[/green] Created config snapshot: {paths.config_file}")

    console.print("[bold green]Initialization complete![/bold green]")


event_app = typer.Typer(help="Calendar event commands")
app.add_typer(event_app, name="event")


@event_app.command("add")
def event_add(
    title: str = typer.Option(..., "--title", "-t", help="Event title"),
    kind: EventKind = typer.Option(EventKind.MEETING, "--kind", "-k", help="Event kind"),
    start: str = typer.Option(..., "--start", "-s", help="Start time (ISO, local to the display timezone)"),
    end: str = typer.Option(None, "--end", "-e", help="End time (ISO)"),
    description: str = typer.Option("", "--description", help="Optional description"),
    project_id: str = typer.Option(None, "--project", "-p", help="Linked project id"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Add an event to the project calendar."""
    config, _, store, notifier = _open(data_dir)
    start_time = _parse_time(start, config.tz, "--start")
    end_time = _parse_time(end, config.tz, "--end") if end else None

    calendar = CalendarService(store, notifier, config.events_collection)
    try:
        event = calendar.add_event(
            title=title,
            kind=kind,
            start_time=start_time,
            end_time=end_time,
            description=description,
            project_id=project_id,
        )
    except (ValueError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[dim]Event ID:[/dim] {event.id}")


@event_app.command("list")
def event_list(
    on: str = typer.Option(None, "--date", help="Only events on this day (YYYY-MM-DD)"),
    upcoming: bool = typer.Option(False, "--upcoming", help="Only events from today on"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """List calendar events ordered by start time."""
    config, _, store, notifier = _open(data_dir)
    tz = config.tz
    events = CalendarService(store, notifier, config.events_collection).list_events()

    if on:
        events = events_on(_parse_day(on, tz), events, tz)
    elif upcoming:
        events = upcoming_events(events, datetime.now(tz).date(), tz)

    if not events:
        console.print("[dim]No events[/dim]")
        return

    _print_events(events, tz, title=f"{len(events)} Event(s)")


def _print_events(events: list[CalendarEvent], tz: tzinfo, title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Title", style="bold")
    table.add_column("When", style="cyan")
    table.add_column("Project", style="yellow")

    for event in events:
        table.add_row(
            event.id,
            event.kind.value,
            event.title,
            format_time_window(event.start_time, event.end_time, tz),
            event.project_id or "-",
        )

    console.print(table)


@event_app.command("delete")
def event_delete(
    event_id: str = typer.Argument(..., help="Id of the event to delete"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Delete an event from the calendar."""
    config, _, store, notifier = _open(data_dir)
    try:
        CalendarService(store, notifier, config.events_collection).delete_event(event_id)
    except (ValueError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


project_app = typer.Typer(help="Project directory commands")
app.add_typer(project_app, name="project")


@project_app.command("add")
def project_add(
    name: str = typer.Option(..., "--name", "-n", help="Project name"),
    description: str = typer.Option("", "--description", help="Project description"),
    status: ProjectStatus = typer.Option(ProjectStatus.PLANNING, "--status", help="Project status"),
    manager: str = typer.Option("N/A", "--manager", help="Manager name"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Add a project to the directory."""
    config, _, store, notifier = _open(data_dir)
    try:
        project = ProjectDirectory(store, config.projects_collection).add_project(
            name=name, description=description, status=status, manager_name=manager
        )
    except (ValueError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    notifier.notify("Project Added", f'"{project.name}" has been added.', kind="project")
    console.print(f"[dim]Project ID:[/dim] {project.id}")


@project_app.command("list")
def project_list(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """List projects by name."""
    config, _, store, _ = _open(data_dir)
    projects = ProjectDirectory(store, config.projects_collection).list_projects()
    if not projects:
        console.print("[dim]No projects[/dim]")
        return

    table = Table(title=f"{len(projects)} Project(s)")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Status", style="magenta")
    table.add_column("Manager", style="yellow")
    for project in projects:
        table.add_row(project.id, project.name, project.status.value, project.manager_name)
    console.print(table)


@app.command()
def archive(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
    no_trace: bool = typer.Option(False, "--no-trace", help="Do not write a trace file"),
):
    """Take one snapshot of the calendar and archive expired meetings and deadlines.

    Each expired event is moved to the activity log in a single atomic batch.
    Failures are reported and retried on the next run.
    """
    config, paths, store, notifier = _open(data_dir)
    manager = EventLifecycleManager(
        store,
        ProjectDirectory(store, config.projects_collection),
        notifier,
        events_collection=config.events_collection,
        activity_collection=config.activity_collection,
        source=config.activity_source,
        tz=config.tz,
    )

    start_time = datetime.now(timezone.utc)
    try:
        manager.attach()
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        manager.detach()
    end_time = datetime.now(timezone.utc)

    report = manager.last_report
    if report is None:
        console.print("[red]Error: No snapshot was delivered[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[bold]Archived:[/bold] {report.count('archived')}  "
        f"[bold]Failed:[/bold] {report.count('failed')}  "
        f"[bold]Still on calendar:[/bold] {len(report.visible)}"
    )
    if report.skipped_documents:
        console.print(f"[yellow]Skipped {len(report.skipped_documents)} malformed event document(s)[/yellow]")

    if not no_trace:
        trace_path = write_archival_trace(report, str(uuid.uuid4()), paths, start_time, end_time)
        console.print(f"[dim]Trace: {trace_path}[/dim]")

    if report.count("failed"):
        raise typer.Exit(code=1)


activity_app = typer.Typer(help="Previous activity commands")
app.add_typer(activity_app, name="activity")


@activity_app.command("list")
def activity_list(
    on: str = typer.Option(None, "--date", help="Day to show (YYYY-MM-DD, default: today)"),
    sort: str = typer.Option("date", "--sort", help=f"Sort column: {', '.join(SORT_KEYS)}"),
    ascending: bool = typer.Option(False, "--asc", help="Sort ascending"),
    all_days: bool = typer.Option(False, "--all", help="Show every entry, newest first"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Show activity log entries logged on a day."""
    config, _, store, _ = _open(data_dir)
    tz = config.tz
    log = ActivityLog(store, config.activity_collection, tz)

    if sort not in SORT_KEYS:
        console.print(f"[red]Error: --sort must be one of: {', '.join(SORT_KEYS)}[/red]")
        raise typer.Exit(code=1)

    if all_days:
        entries = log.list_entries()
        heading = f"{len(entries)} Activity Entr{'y' if len(entries) == 1 else 'ies'}"
    else:
        day = _parse_day(on, tz)
        entries = log.entries_on(day, sort_key=sort, descending=not ascending)
        heading = f"Activities Logged On: {day.isoformat()}"

    if not entries:
        console.print("[dim]No activity entries[/dim]")
        return

    table = Table(title=heading)
    table.add_column("Logged", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Original Time", style="magenta")
    table.add_column("Source", style="yellow")
    table.add_column("Details", style="dim")
    for entry in entries:
        original = (
            entry.original_event_time.astimezone(tz).strftime("%Y-%m-%d %H:%M")
            if entry.original_event_time
            else "-"
        )
        table.add_row(
            entry.logged_at.astimezone(tz).strftime("%Y-%m-%d %H:%M"),
            entry.title,
            original,
            entry.source or "-",
            entry.details.replace("\n", "; "),
        )
    console.print(table)


notifications_app = typer.Typer(help="Notification commands")
app.add_typer(notifications_app, name="notifications")


@notifications_app.command("tail")
def notifications_tail(
    n: int = typer.Option(20, "--n", help="Number of recent notifications to display"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Display the last N notifications."""
    _, paths = _load(data_dir)
    notifications = read_notifications_tail(paths.notifications_file, n=n)
    if not notifications:
        console.print("[dim]No notifications[/dim]")
        return

    table = Table(title=f"Last {len(notifications)} Notification(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Title", style="bold")
    table.add_column("Message", style="dim")
    for notification in notifications:
        title = notification.title
        if notification.variant == "destructive":
            title = f"[red]{title}[/red]"
        table.add_row(
            notification.ts.strftime("%Y-%m-%d %H:%M:%S"),
            notification.kind,
            title,
            notification.description,
        )
    console.print(table)


@app.command()
def version():
    """Show ppmcal version."""
    from . import __version__
    console.print(f"ppmcal v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
