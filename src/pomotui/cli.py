"""pomotui CLI - command-line entry point.

Running ``pomotui`` with no subcommand starts the timer dashboard. Options
given on the command line override the config file, which overrides the
built-in defaults (25/5/15 minutes, long break after 4 pomodoros).
"""

import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from pomotui import __version__
from pomotui.clock import EventLoopClock
from pomotui.config_manager import ConfigError, ConfigManager, PomotuiConfig
from pomotui.history import HistoryManager
from pomotui.music import MusicManager, MusicMode
from pomotui.pomodoro import Pomodoro
from pomotui.tasks import TaskError, TaskManager
from pomotui.tui import PomodoroTUI
from pomotui.updater import UpdateError, check_for_updates

logger = logging.getLogger(__name__)

console = Console()


def _load_config(config: str | None) -> PomotuiConfig:
    """Load configuration or exit with an error message."""
    try:
        return ConfigManager.load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _notify_if_update_available() -> None:
    try:
        result = check_for_updates()
    except UpdateError as e:
        logger.debug(f"Update check failed: {e}")
        return
    if result.update_available:
        click.echo(
            f"pomotui {result.latest_version} is available "
            f"(you have {result.current_version}). Run: pomotui update"
        )


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("-w", "--work", type=click.IntRange(min=1), help="Work session duration (minutes)")
@click.option("-s", "--short", type=click.IntRange(min=1), help="Short break duration (minutes)")
@click.option("-l", "--long", type=click.IntRange(min=1), help="Long break duration (minutes)")
@click.option("-c", "--cycles", type=click.IntRange(min=1), help="Pomodoros before long break")
@click.option("-d", "--data", type=click.Path(dir_okay=False), help="Path to history JSON file")
@click.option(
    "-m",
    "--music",
    type=click.Choice([m.value for m in MusicMode]),
    help="Music mode (default: radio)",
)
@click.option("--spotify-token", help="Spotify access token for now-playing display")
@click.option("--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="pomotui")
@click.pass_context
def main(
    ctx: click.Context,
    work: int | None,
    short: int | None,
    long: int | None,
    cycles: int | None,
    data: str | None,
    music: str | None,
    spotify_token: str | None,
    config: str | None,
    verbose: bool,
) -> None:
    """pomotui - Pomodoro timer for the terminal.

    Alternates work sessions and breaks, records completed sessions to a
    JSON history file and plays lofi radio while you work.

    \b
    Examples:
        pomotui                              # Defaults (25/5/15)
        pomotui -w 50 -s 10 -l 30            # 50min work, 10min short, 30min long
        pomotui -d ~/notes/pomodoro.json     # Custom history file
        pomotui -m off                       # Disable music
        pomotui -m spotify --spotify-token <token>

    \b
    CONTROLS:
        [s] Start  [p] Pause  [r] Reset  [n] Next  [q] Quit
        [m] Toggle music  [>] Next station  [<] Previous station

    \b
    MUSIC:
        Lofi radio plays during work sessions and pauses during breaks.
        Requires mpv, ffplay, vlc or mplayer.

    \b
    CONFIGURATION:
        Config file: ~/.pomotui/config.toml
        Set defaults with: pomotui config set work_duration 50
    """
    # Set up logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config

    if ctx.invoked_subcommand is not None:
        return

    settings = _load_config(config)
    if work is not None:
        settings.work_duration = work
    if short is not None:
        settings.short_break_duration = short
    if long is not None:
        settings.long_break_duration = long
    if cycles is not None:
        settings.pomodoros_before_long_break = cycles
    if data is not None:
        settings.history_file = data
    if music is not None:
        settings.music_mode = music
    if spotify_token is not None:
        settings.spotify_token = spotify_token

    _run_timer(settings)


def _run_timer(settings: PomotuiConfig) -> None:
    """Build the engine, stores and music, then run the dashboard."""
    if not sys.stdin.isatty():
        click.echo("Error: pomotui needs an interactive terminal.", err=True)
        sys.exit(1)

    pomodoro_config = settings.to_pomodoro_config()
    try:
        pomodoro_config.validate()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if settings.check_updates:
        _notify_if_update_available()

    mode = settings.mode
    if mode is MusicMode.SPOTIFY and not settings.spotify_token:
        click.echo("Warning: no Spotify token given; now-playing display disabled.", err=True)

    clock = EventLoopClock()
    engine = Pomodoro(pomodoro_config, clock)
    history = HistoryManager(ConfigManager.get_history_path(settings))
    tasks = TaskManager(ConfigManager.get_tasks_path(settings))
    music = MusicManager(mode, settings.spotify_token)

    try:
        tui = PomodoroTUI(
            engine,
            clock,
            history,
            music,
            tasks=tasks,
            console=console,
            user_name=settings.user_name,
        )
        completed = tui.run()
    finally:
        music.cleanup()

    click.echo(f"\nGoodbye! You completed {completed} pomodoros.")


@main.command(name="history")
@click.option("--limit", "-n", default=10, show_default=True, type=click.IntRange(min=1))
@click.option("-d", "--data", type=click.Path(dir_okay=False), help="Path to history JSON file")
@click.pass_context
def history_command(ctx: click.Context, limit: int, data: str | None) -> None:
    """Show today's stats and recent sessions.

    \b
    Examples:
        pomotui history
        pomotui history -n 25
    """
    settings = _load_config(ctx.obj.get("config_path"))
    if data:
        settings.history_file = data
    history = HistoryManager(ConfigManager.get_history_path(settings))

    stats = history.get_today_stats()
    console.print(
        f"[bold]Today:[/bold] {stats.pomodoros} pomodoros ({stats.total_minutes}m)   "
        f"[bold]All time:[/bold] {history.get_history().total_pomodoros} pomodoros"
    )

    entries = history.get_recent(limit)
    if not entries:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return

    table = Table(title="Recent sessions", show_header=True)
    table.add_column("Completed", style="cyan", no_wrap=True)
    table.add_column("Session", style="magenta")
    table.add_column("Minutes", justify="right")
    table.add_column("#", justify="right", style="green")

    for entry in entries:
        table.add_row(
            entry.completed_at[:16].replace("T", " "),
            entry.session_type.label.title(),
            str(entry.duration),
            str(entry.pomodoro_number) if entry.pomodoro_number else "-",
        )
    console.print(table)
    console.print(f"[dim]{history.get_file_path()}[/dim]")


@main.group(name="task")
@click.pass_context
def task_group(ctx: click.Context) -> None:
    """Manage the task list shown next to the timer."""
    settings = _load_config(ctx.obj.get("config_path"))
    ctx.obj["tasks"] = TaskManager(ConfigManager.get_tasks_path(settings))


@task_group.command(name="add")
@click.argument("text", nargs=-1, required=True)
@click.pass_context
def task_add(ctx: click.Context, text: tuple[str, ...]) -> None:
    """Add a task."""
    try:
        task = ctx.obj["tasks"].add(" ".join(text))
    except TaskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Added: {task.text}")


@task_group.command(name="list")
@click.option("--all", "show_all", is_flag=True, help="Include completed tasks")
@click.pass_context
def task_list(ctx: click.Context, show_all: bool) -> None:
    """List tasks. Numbers can be used with 'done' and 'rm'."""
    tasks: TaskManager = ctx.obj["tasks"]
    all_tasks = tasks.get_tasks()
    shown = [(i, t) for i, t in enumerate(all_tasks, start=1) if show_all or not t.completed]

    if not shown:
        click.echo("No tasks.")
        return

    for position, task in shown:
        mark = "✓" if task.completed else "○"
        click.echo(f"{position:>3}. {mark} {task.text}")


@task_group.command(name="done")
@click.argument("ref")
@click.pass_context
def task_done(ctx: click.Context, ref: str) -> None:
    """Toggle a task between pending and completed (by number or id)."""
    tasks: TaskManager = ctx.obj["tasks"]
    try:
        task = tasks.toggle(tasks.resolve(ref).id)
    except TaskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    state = "completed" if task.completed else "pending"
    click.echo(f"Marked {state}: {task.text}")


@task_group.command(name="rm")
@click.argument("ref")
@click.pass_context
def task_rm(ctx: click.Context, ref: str) -> None:
    """Delete a task (by number or id)."""
    tasks: TaskManager = ctx.obj["tasks"]
    try:
        task = tasks.resolve(ref)
        tasks.delete(task.id)
    except TaskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted: {task.text}")


@main.group(name="config")
def config_group() -> None:
    """Show or change saved defaults."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config_path = ctx.obj.get("config_path")
    settings = _load_config(config_path)
    try:
        path = ConfigManager.get_config_path(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"# {path}")
    for key, value in settings.to_dict().items():
        if key == "spotify_token":
            value = "********"
        click.echo(f"{key} = {value}")
    click.echo(f"# history: {ConfigManager.get_history_path(settings)}")
    click.echo(f"# tasks: {ConfigManager.get_tasks_path(settings)}")


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Save a default, e.g. 'pomotui config set work_duration 50'.

    An empty value clears optional paths and the Spotify token.
    """
    try:
        ConfigManager.set_value(key, value, ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Saved {key}")


@main.command(name="update")
def update_command() -> None:
    """Check for a newer pomotui release."""
    click.echo(f"Current version: {__version__}")
    click.echo("Checking for updates...")
    try:
        result = check_for_updates()
    except UpdateError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.update_available:
        click.echo(f"You are already on the latest version ({result.current_version})")
        return

    click.echo(f"New version available: {result.latest_version}")
    click.echo("Upgrade with: pip install --upgrade pomotui")


if __name__ == "__main__":
    main()
