"""Terminal dashboard.

This module renders the session engine and music status with a live-updating
rich panel and turns key presses into engine and music commands.

Threading model:
- The main thread owns the engine, the clock and the music manager
- A daemon thread reads keys and only puts them on the event queue
- The Spotify poll thread only puts status updates on the same queue

The main loop waits on the queue for at most the time until the next clock
deadline, handles whatever arrived, fires due ticks and redraws.

Usage:
    from pomotui.tui import PomodoroTUI

    tui = PomodoroTUI(engine, clock, history, music)
    completed = tui.run()
"""

import logging
import queue
import signal
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

import click
from rich.align import Align
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from pomotui.clock import EventLoopClock
from pomotui.history import HistoryError, HistoryManager
from pomotui.models import EngineState, SessionType
from pomotui.music import MusicManager
from pomotui.notifier import notify_user
from pomotui.pomodoro import Pomodoro, format_time
from pomotui.tasks import TaskManager

logger = logging.getLogger(__name__)

SESSION_COLORS = {
    SessionType.WORK: "red",
    SessionType.SHORT_BREAK: "green",
    SessionType.LONG_BREAK: "blue",
}

CONTROLS_HELP = "[s]tart [p]ause [r]eset [n]ext [q]uit\n[m]usic [<] [>] station"

QUIT_KEYS = {"q", "\x1b", "\x03"}

MAX_TASKS_SHOWN = 5


class EventKind(Enum):
    KEY = "key"
    MUSIC_STATUS = "music_status"
    QUIT = "quit"


class KeyReader(threading.Thread):
    """Daemon thread forwarding single key presses to the event queue."""

    def __init__(self, events: queue.Queue, getchar: Callable[[], str] = click.getchar):
        super().__init__(name="key-reader", daemon=True)
        self.events = events
        self._getchar = getchar

    def run(self) -> None:
        while True:
            try:
                key = self._getchar()
            except (KeyboardInterrupt, EOFError):
                self.events.put((EventKind.QUIT, None))
                return
            except OSError as e:
                logger.warning(f"Key input unavailable: {e}")
                self.events.put((EventKind.QUIT, None))
                return
            self.events.put((EventKind.KEY, key))


class PomodoroTUI:
    """Live dashboard wiring the engine, history, tasks and music together.

    Features:
    - Session label, countdown and progress bar in the session colour
    - Today's pomodoro count from the history file
    - Music status (radio station, Spotify track, or unavailable)
    - Pending tasks
    """

    # Wake up at least this often so external status changes are drawn
    IDLE_WAIT = 0.5

    def __init__(
        self,
        engine: Pomodoro,
        clock: EventLoopClock,
        history: HistoryManager,
        music: MusicManager,
        tasks: TaskManager | None = None,
        console: Console | None = None,
        user_name: str = "User",
        notifier: Callable[..., Any] = notify_user,
    ):
        self.engine = engine
        self.clock = clock
        self.history = history
        self.music = music
        self.tasks = tasks
        self.console = console or Console()
        self.user_name = user_name
        self.notifier = notifier
        self.events: queue.Queue = queue.Queue()
        self.message = ""
        self._running = False
        self._dirty = True

        self.engine.set_on_tick(self._on_state_change)
        self.engine.set_on_session_complete(self._on_session_complete)
        self.music.set_on_status_change(
            lambda text: self.events.put((EventKind.MUSIC_STATUS, text))
        )

    # Engine notifications

    def _on_state_change(self, state: EngineState) -> None:
        self._dirty = True

    def _on_session_complete(self, ended: SessionType) -> None:
        duration = self.engine.get_config().duration_minutes(ended)
        try:
            self.history.add_entry(ended, duration)
        except HistoryError as e:
            logger.warning(f"Session not saved to history: {e}")

        # A break follows work; work follows any break
        if ended is SessionType.WORK:
            self.music.pause()
        else:
            self.music.play()

        self.message = f"{ended.label.title()} complete!"
        self.notifier(console=self.console)

    # Commands

    def handle_key(self, key: str) -> bool:
        """Apply one key press.

        Returns:
            False if the key asks to quit
        """
        if key in QUIT_KEYS:
            return False

        if key == "s":
            self.message = ""
            self.engine.start()
            if self.engine.get_state().current_session is SessionType.WORK:
                self.music.play()
        elif key == "p":
            self.engine.pause()
        elif key == "r":
            self.engine.reset()
        elif key == "n":
            self.engine.skip()
        elif key == "m":
            self.music.toggle()
        elif key in (">", "."):
            self.music.next_station()
        elif key in ("<", ","):
            self.music.previous_station()
        else:
            logger.debug(f"Unbound key: {key!r}")
        return True

    def dispatch(self, kind: EventKind, payload: Any) -> bool:
        """Handle one queued event. Returns False to stop the loop."""
        if kind is EventKind.QUIT:
            return False
        if kind is EventKind.KEY:
            return self.handle_key(payload)
        # MUSIC_STATUS: the next render picks up the cached track
        return True

    def step(self, timeout: float | None = None) -> bool:
        """Run one loop iteration: wait for an event, then fire due ticks.

        Args:
            timeout: Longest wait (default: until the next tick or IDLE_WAIT)

        Returns:
            False once the user asked to quit
        """
        if timeout is None:
            until_tick = self.clock.time_until_next()
            timeout = self.IDLE_WAIT if until_tick is None else min(until_tick, self.IDLE_WAIT)

        keep_running = True
        try:
            kind, payload = self.events.get(timeout=timeout)
        except queue.Empty:
            pass
        else:
            keep_running = self.dispatch(kind, payload)
            self._dirty = True

        self.clock.run_due()
        return keep_running

    # Rendering

    def render(self) -> Panel:
        state = self.engine.get_state()
        config = self.engine.get_config()
        session = state.current_session
        color = SESSION_COLORS[session]
        full = config.duration_seconds(session)

        stats = self.history.get_today_stats()
        status = (
            Text("[ RUNNING ]", style="green")
            if state.is_running
            else Text("[ PAUSED ]", style="yellow")
        )

        rows: list[Any] = [
            Align.center(Text(session.label, style=f"bold {color}")),
            Text(""),
            Align.center(Text(format_time(state.time_remaining), style="bold white")),
            Text(""),
            ProgressBar(
                total=full,
                completed=state.time_remaining,
                width=44,
                complete_style=color,
                finished_style=color,
            ),
            Text(""),
            Align.center(status),
            Align.center(
                Text(
                    f"Today: {stats.pomodoros} pomodoros ({stats.total_minutes}m)",
                    style="bright_black",
                )
            ),
            Align.center(
                Text(
                    f"Work: {config.work_duration}m | Short: {config.short_break_duration}m"
                    f" | Long: {config.long_break_duration}m",
                    style="bright_black",
                )
            ),
            Align.center(Text(self.music.get_status_text(), style="magenta")),
        ]

        if self.message:
            rows.append(Align.center(Text(self.message, style="bold yellow")))

        task_table = self._render_tasks()
        if task_table is not None:
            rows.extend([Text(""), task_table])

        rows.extend([Text(""), Text(CONTROLS_HELP, style="cyan", justify="center")])

        return Panel(
            Group(*rows),
            title="[bold white] POMODORO TIMER [/bold white]",
            subtitle=f"Hi, {self.user_name}",
            border_style="cyan",
            width=50,
        )

    def _render_tasks(self) -> Table | None:
        if self.tasks is None:
            return None
        pending = self.tasks.get_pending()
        if not pending:
            return None

        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("", style="white")
        for task in pending[:MAX_TASKS_SHOWN]:
            table.add_row(Text(f"○ {task.text}"))
        if len(pending) > MAX_TASKS_SHOWN:
            table.add_row(f"[bright_black]+{len(pending) - MAX_TASKS_SHOWN} more[/bright_black]")
        return table

    # Main loop

    def _handle_sigterm(self, signum, frame) -> None:
        logger.debug(f"Received signal {signum}, shutting down")
        self.events.put((EventKind.QUIT, None))

    def run(self) -> int:
        """Run until the user quits.

        Returns:
            Number of pomodoros completed in this run
        """
        previous_handler = signal.signal(signal.SIGTERM, self._handle_sigterm)
        KeyReader(self.events).start()
        self._running = True

        try:
            with Live(
                self.render(),
                console=self.console,
                refresh_per_second=4,
                transient=True,
            ) as live:
                while self._running:
                    self._running = self.step()
                    if self._dirty:
                        self._dirty = False
                        live.update(self.render())
        except KeyboardInterrupt:
            logger.debug("Interrupted")
        finally:
            self._running = False
            self.music.cleanup()
            signal.signal(signal.SIGTERM, previous_handler)

        return self.engine.get_state().completed_pomodoros


__all__ = ["EventKind", "KeyReader", "PomodoroTUI"]
