"""CLI commands for Study Planner using Typer."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from study_planner import __version__
from study_planner.core.config import get_config
from study_planner.core.errors import StudyPlannerError
from study_planner.core.timeutil import parse_instant
from study_planner.planner.service import StudyPlanner
from study_planner.planner.tasks import filter_tasks
from study_planner.timer.pomodoro import PhaseNotification, TimerEngine, TimerRunner, TimerState

app = typer.Typer(
    name="study-planner",
    help="Tasks, habits and a Pomodoro timer for studying.",
    add_completion=False,
)

console = Console()

PRIORITY_COLORS = {"high": "red", "medium": "yellow", "low": "green"}
STATUS_COLORS = {"completed": "green", "in-progress": "blue", "pending": "dim"}


def setup_logging(log_level: str, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )

    # Reduce noise from external libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_planner() -> StudyPlanner:
    """Planner bound to the configured storage."""
    return StudyPlanner.from_config(get_config())


def fail(message: str) -> None:
    """Print an error and exit non-zero."""
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def format_deadline(deadline: str | None) -> str:
    if not deadline:
        return "-"
    return parse_instant(deadline).astimezone().strftime("%Y-%m-%d %H:%M")


@app.command(name="tasks")
def tasks_cmd(
    add: str = typer.Option(None, "--add", "-a", help="Add a new task with this title"),
    description: str = typer.Option("", "--description", help="Description for a new task"),
    deadline: str = typer.Option(None, "--deadline", "-d", help="Deadline (YYYY-MM-DD or YYYY-MM-DDTHH:MM)"),
    priority: str = typer.Option("medium", "--priority", "-p", help="low, medium or high"),
    category: str = typer.Option("", "--category", help="Category for a new task"),
    cycle: str = typer.Option(None, "--cycle", "-c", help="Advance a task's status by ID"),
    delete: str = typer.Option(None, "--delete", help="Delete task by ID"),
    search: str = typer.Option("", "--search", "-s", help="Filter by text in title or description"),
    filter_priority: str = typer.Option("all", "--filter-priority", help="Filter by priority"),
    filter_status: str = typer.Option("all", "--filter-status", help="Filter by status"),
) -> None:
    """Manage study tasks."""
    planner = get_planner()

    try:
        if add:
            task = planner.add_task(
                add,
                description=description,
                deadline=deadline,
                priority=priority,
                category=category,
            )
            console.print(f"[green]Created task {task.id}: {task.title}[/green]")
            console.print(f"  Priority: {task.priority.value} | Deadline: {format_deadline(task.deadline)}")
            return

        if cycle:
            task = planner.cycle_task_status(cycle)
            if task is None:
                fail(f"Task {cycle} not found")
            console.print(f"[green]Task marked as {task.status.value.replace('-', ' ')}![/green]")
            return

        if delete:
            planner.delete_task(delete)
            console.print(f"[yellow]Deleted task {delete}[/yellow]")
            return

        all_tasks = planner.list_tasks()
    except StudyPlannerError as e:
        fail(str(e))

    tasks = filter_tasks(all_tasks, search=search, priority=filter_priority, status=filter_status)
    if not tasks:
        if not all_tasks:
            console.print("[dim]No tasks yet. Create one with --add[/dim]")
            console.print('[dim]Example: study-planner tasks --add "Read chapter 5" --deadline 2025-01-27[/dim]')
        else:
            console.print("[dim]No tasks match the current filters.[/dim]")
        return

    table = Table(title="Study Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Deadline")

    for t in tasks:
        p_color = PRIORITY_COLORS.get(t.priority.value, "white")
        s_color = STATUS_COLORS.get(t.status.value, "white")
        table.add_row(
            t.id,
            t.title,
            t.category or "-",
            f"[{p_color}]{t.priority.value}[/{p_color}]",
            f"[{s_color}]{t.status.value}[/{s_color}]",
            format_deadline(t.deadline),
        )

    console.print(table)


@app.command(name="habits")
def habits_cmd(
    add: str = typer.Option(None, "--add", "-a", help="Add a new habit"),
    toggle: str = typer.Option(None, "--toggle", "-t", help="Complete/un-complete a habit by ID"),
    delete: str = typer.Option(None, "--delete", help="Delete habit by ID"),
) -> None:
    """Track daily habits and streaks."""
    planner = get_planner()

    try:
        if add:
            habit = planner.add_habit(add)
            console.print(f"[green]Created habit {habit.id}: {habit.name}[/green]")
            return

        if toggle:
            habit = planner.toggle_habit(toggle)
            if habit is None:
                fail(f"Habit {toggle} not found")
            if habit.completed_today:
                console.print(f"[green]✓ {habit.name} completed! Streak: {habit.streak} days[/green]")
            else:
                console.print(f"[yellow]○ {habit.name} marked as not done today[/yellow]")
            return

        if delete:
            planner.delete_habit(delete)
            console.print(f"[yellow]Deleted habit {delete}[/yellow]")
            return

        habits = planner.list_habits()
        summary = planner.habits.summary()
    except StudyPlannerError as e:
        fail(str(e))

    if not habits:
        console.print("[dim]No habits yet. Create one with --add[/dim]")
        return

    table = Table(title="Habits", show_header=True, header_style="bold cyan")
    table.add_column("ID")
    table.add_column("Habit")
    table.add_column("Today")
    table.add_column("Streak")
    table.add_column("Total")
    table.add_column("Last Completed")

    for h in habits:
        status = "[green]✓[/green]" if h.completed_today else "○"
        table.add_row(
            h.id,
            h.name,
            status,
            f"{h.streak}d",
            str(h.total_completions),
            h.last_completed.isoformat() if h.last_completed else "-",
        )

    console.print(table)
    console.print(
        f"Completed today: {summary.completed_today}/{summary.total} "
        f"({summary.completion_rate:.0f}%) | Longest streak: {summary.longest_streak} | "
        f"Average streak: {summary.average_streak:.1f}"
    )


@app.command(name="timer")
def timer_cmd(
    phases: int = typer.Option(1, "--phases", "-n", min=1, help="Number of phases to run back to back"),
    skip_first: bool = typer.Option(False, "--skip", help="Skip the opening focus phase"),
) -> None:
    """Run the Pomodoro timer in the terminal.

    Examples:
        study-planner timer             # one focus session
        study-planner timer -n 8        # four focus/break pairs
    """
    config = get_config()
    planner = get_planner()

    try:
        engine = TimerEngine(planner.store)
    except StudyPlannerError as e:
        fail(str(e))

    if skip_first:
        engine.skip()

    def render(state: TimerState) -> Panel:
        status = "running" if state.is_running else "paused"
        return Panel(
            f"[bold]{state.time_remaining_display}[/bold]  "
            f"({state.progress_percent:.0f}%, {status})",
            title=state.phase.title,
            border_style="magenta" if state.phase.value == "focus" else "green",
        )

    notifications: list[PhaseNotification] = []
    engine.on_notify.append(notifications.append)

    async def run_phases(live: Live) -> None:
        engine.on_tick.append(lambda state: live.update(render(state)))
        runner = TimerRunner(engine, interval=config.timer.tick_seconds)
        runner.start()
        try:
            for _ in range(phases):
                engine.start()
                live.update(render(engine.state))
                while engine.running and runner.is_active:
                    await asyncio.sleep(0.1)
                if not runner.is_active:
                    # The tick loop died; stop() re-raises its error
                    break
                note = notifications[-1]
                live.console.print(f"[bold green]{note.title}[/bold green] {note.message}")
        finally:
            await runner.stop()

    try:
        with Live(render(engine.state), console=console, refresh_per_second=4) as live:
            asyncio.run(run_phases(live))
    except KeyboardInterrupt:
        engine.pause()
        console.print("\n[yellow]Timer stopped[/yellow]")
    except StudyPlannerError as e:
        fail(str(e))

    summary = engine.get_summary()
    console.print(
        f"Sessions today: {summary['sessions_today']} | "
        f"Focus today: {summary['focus_time_today']}m | "
        f"Total: {summary['total_sessions']} sessions, {summary['total_focus_time']}m"
    )


@app.command(name="timer-settings")
def timer_settings_cmd(
    focus: int = typer.Option(None, "--focus", "-f", help="Focus minutes"),
    short_break: int = typer.Option(None, "--short-break", "-s", help="Short break minutes"),
    long_break: int = typer.Option(None, "--long-break", "-l", help="Long break minutes"),
    sessions: int = typer.Option(None, "--sessions", "-n", help="Focus sessions until a long break"),
) -> None:
    """Show or change Pomodoro durations."""
    planner = get_planner()

    updates = {
        key: value
        for key, value in (
            ("focusTime", focus),
            ("shortBreak", short_break),
            ("longBreak", long_break),
            ("sessionsUntilLongBreak", sessions),
        )
        if value is not None
    }

    try:
        if updates:
            settings = planner.update_timer_settings(**updates)
            console.print("[green]Timer settings saved[/green]")
        else:
            settings = planner.get_timer_settings()
    except StudyPlannerError as e:
        fail(str(e))

    table = Table(title="Timer Settings", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Focus", f"{settings.focus_time} minutes")
    table.add_row("Short Break", f"{settings.short_break} minutes")
    table.add_row("Long Break", f"{settings.long_break} minutes")
    table.add_row("Sessions Until Long Break", str(settings.sessions_until_long_break))
    console.print(table)


@app.command(name="stats")
def stats_cmd() -> None:
    """Show Pomodoro statistics."""
    try:
        stats = get_planner().get_timer_stats()
    except StudyPlannerError as e:
        fail(str(e))

    table = Table(title="Timer Statistics", show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Sessions Today", str(stats.sessions_today))
    table.add_row("Focus Time Today", f"{stats.focus_time_today}m")
    table.add_row("Total Sessions", str(stats.total_sessions))
    table.add_row("Total Focus Time", f"{stats.total_focus_time / 60:.1f}h")
    console.print(Panel(table, title="Pomodoro", border_style="magenta"))


@app.command(name="settings")
def settings_cmd(
    dark_mode: bool = typer.Option(None, "--dark-mode/--light-mode", help="Theme preference"),
    notifications: bool = typer.Option(None, "--notifications/--no-notifications", help="Phase notifications"),
) -> None:
    """Show or change app settings."""
    planner = get_planner()

    updates = {}
    if dark_mode is not None:
        updates["darkMode"] = dark_mode
    if notifications is not None:
        updates["notifications"] = notifications

    try:
        settings = planner.update_settings(**updates) if updates else planner.get_settings()
    except StudyPlannerError as e:
        fail(str(e))

    table = Table(title="App Settings", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Dark Mode", "on" if settings.dark_mode else "off")
    table.add_row("Notifications", "on" if settings.notifications else "off")
    console.print(table)


@app.command(name="export")
def export_cmd(
    directory: Path = typer.Option(None, "--dir", "-o", help="Directory for the backup file"),
) -> None:
    """Export all data to a JSON backup file."""
    config = get_config()
    try:
        path = get_planner().export_data(directory or config.backup_dir)
    except (StudyPlannerError, OSError) as e:
        fail(f"Export failed: {e}")
    console.print(f"[green]Data exported successfully:[/green] {path}")


@app.command(name="import")
def import_cmd(
    path: Path = typer.Argument(..., help="Backup file to restore"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Replace all data with the contents of a backup file."""
    if not yes:
        typer.confirm("This replaces all current data. Continue?", abort=True)

    try:
        document = asyncio.run(get_planner().import_data(path))
    except (StudyPlannerError, OSError) as e:
        fail(f"Import failed: {e}")
    console.print(
        f"[green]Data imported successfully:[/green] "
        f"{len(document.tasks)} tasks, {len(document.habits)} habits"
    )


@app.command(name="clear")
def clear_cmd(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete all tasks, habits, settings and statistics."""
    if not yes:
        typer.confirm("Are you sure you want to clear all data? This cannot be undone.", abort=True)

    try:
        get_planner().clear_all_data()
    except StudyPlannerError as e:
        fail(str(e))
    console.print("[yellow]All data cleared[/yellow]")


@app.command(name="dashboard")
def dashboard_cmd() -> None:
    """Show today's overview."""
    try:
        overview = get_planner().overview()
    except StudyPlannerError as e:
        fail(str(e))

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Tasks Due Today", str(len(overview.todays_tasks)))
    table.add_row(
        "Completed Tasks",
        f"{overview.completed_tasks}/{overview.total_tasks} ({overview.completion_rate:.0f}%)",
    )
    table.add_row("In Progress", str(overview.in_progress_tasks))
    table.add_row("High Priority", str(overview.high_priority_tasks))
    table.add_row(
        "Habits Done Today",
        f"{overview.habits.completed_today}/{overview.habits.total}",
    )
    table.add_row("Longest Streak", f"{overview.habits.longest_streak} days")
    table.add_row("Focus Sessions Today", str(overview.timer_stats.sessions_today))
    console.print(Panel(table, title="Dashboard", border_style="cyan"))

    if overview.upcoming:
        console.print("[bold]Upcoming Deadlines[/bold]")
        for t in overview.upcoming:
            color = PRIORITY_COLORS.get(t.priority.value, "white")
            console.print(f"  [{color}]●[/{color}] {t.title} ({format_deadline(t.deadline)})")


@app.command(name="serve")
def serve_cmd(
    host: str = typer.Option(None, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind to"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """Serve the JSON API for a browser front end."""
    config = get_config()

    if not config.web.enabled:
        console.print("[yellow]Web API is disabled in config (web.enabled)[/yellow]")
        raise typer.Exit(1)

    host = host or config.web.host
    port = port or config.web.port
    setup_logging(log_level or config.log_level, config.log_dir / "server.log")

    console.print("[green]Starting Study Planner API...[/green]")
    console.print(f"Listening on [blue]http://{host}:{port}/api[/blue]")
    console.print("Press Ctrl+C to stop\n")

    from study_planner.web.app import run_server

    try:
        run_server(host=host, port=port)
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@app.command(name="config-show")
def config_show() -> None:
    """Show current configuration."""
    config = get_config()

    table = Table(title="Study Planner Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("[bold]Paths[/bold]", "")
    table.add_row("  Data Directory", str(config.data_dir))
    table.add_row("  Log Directory", str(config.log_dir))
    table.add_row("  Config Directory", str(config.config_dir))
    table.add_row("  Database", str(config.db_path))
    table.add_row("  Backups", str(config.backup_dir))

    table.add_row("[bold]Engine[/bold]", "")
    table.add_row("  Storage Key", config.storage_key)
    table.add_row("  Habit Day Rollover", str(config.habits.reconcile_rollover))
    table.add_row("  Timer Tick", f"{config.timer.tick_seconds}s")

    table.add_row("[bold]Web API[/bold]", "")
    table.add_row("  Enabled", str(config.web.enabled))
    table.add_row("  URL", f"http://{config.web.host}:{config.web.port}")

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Study Planner v{__version__}")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine activity to stderr"),
) -> None:
    """Study Planner - tasks, habits and a Pomodoro timer."""
    config = get_config()
    if verbose:
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING" if config.log_level == "INFO" else config.log_level)


if __name__ == "__main__":
    app()
