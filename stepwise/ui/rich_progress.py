# File: stepwise/ui/rich_progress.py

"""
Rich-based live display for a worker.
"""

import time
import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.layout import Layout
from rich.text import Text
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn

from ..interfaces.progress import ProgressDisplay
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..events import EventType
from ..core.stats_tracker import StatsTracker
from .components import create_stats_table, create_events_panel, create_summary_table
from .event_handlers import EventHandlers

logger = logging.getLogger(__name__)

class RichProgressDisplay(ProgressDisplay):
    """
    Live view of the worker: the job being run, an item counter for the
    current run, the tracker's counters and the most recent events.
    """

    def __init__(self, event_bus: EventBusInterface, tracker: StatsTracker,
                 refresh_per_second: int = 10, max_recent_events: int = 50,
                 console: Optional[Console] = None):
        self.event_bus = event_bus
        self.tracker = tracker
        self.refresh_per_second = refresh_per_second
        self.max_recent_events = max_recent_events
        self.console = console or Console()

        self.recent_events: List[Tuple[str, str, str]] = []

        # Items of the current run; the total is unknown, so the bar pulses
        self.run_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold green]Current Run[/bold green]"),
            BarColumn(),
            TextColumn("{task.completed} items"),
            TextColumn("{task.description}"),
            expand=True
        )
        self.run_task_id = self.run_progress.add_task(description="Waiting for jobs...", total=None)

        self.event_handlers = EventHandlers(
            update_callback=self.update,
            add_event_callback=self.add_event,
            begin_run_callback=self.begin_run,
            advance_run_callback=self.advance_run,
        )

        self.layout = Layout(name="root")
        self.layout.split_column(
            Layout(name="header", size=1),
            Layout(name="run_progress", size=1),
            Layout(name="current_job", size=1),
            Layout(name="stats", size=11),
            Layout(name="events", ratio=1)
        )

        self.live: Optional[Live] = None

    def initialize(self) -> None:
        self._subscribe_to_events()
        self.live = Live(
            self.layout,
            console=self.console,
            refresh_per_second=self.refresh_per_second,
            vertical_overflow="crop"
        )
        self.live.start()
        self._update_display()

    def _subscribe_to_events(self) -> None:
        handlers = self.event_handlers
        self.event_bus.subscribe(EventType.WORKER_STARTED, handlers.handle_worker_started)
        self.event_bus.subscribe(EventType.WORKER_STOPPED, handlers.handle_worker_stopped)
        self.event_bus.subscribe(EventType.JOB_RESERVED, handlers.handle_job_reserved)
        self.event_bus.subscribe(EventType.RUN_STARTED, handlers.handle_run_started)
        self.event_bus.subscribe(EventType.RUN_RESUMED, handlers.handle_run_resumed)
        self.event_bus.subscribe(EventType.ITEM_PROCESSED, handlers.handle_item_processed)
        self.event_bus.subscribe(EventType.RUN_INTERRUPTED, handlers.handle_run_interrupted)
        self.event_bus.subscribe(EventType.JOB_RESUBMITTED, handlers.handle_job_resubmitted)
        self.event_bus.subscribe(EventType.RUN_COMPLETED, handlers.handle_run_completed)
        self.event_bus.subscribe(EventType.CURSOR_ERROR, handlers.handle_cursor_error)
        self.event_bus.subscribe(EventType.RUN_FAILED, handlers.handle_error)
        self.event_bus.subscribe(EventType.JOB_FAILED, handlers.handle_error)

    def update(self, **new_stats: Any) -> None:
        self.tracker.update(**new_stats)
        self._update_display()

    def add_event(self, event_type: str, message: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.recent_events.append((timestamp, event_type, message))
        if len(self.recent_events) > self.max_recent_events:
            self.recent_events.pop(0)
        self._update_display()

    def begin_run(self, description: str) -> None:
        self.run_progress.reset(self.run_task_id, total=None, description=description)
        self._update_display()

    def advance_run(self, completed: int, description: Optional[str] = None) -> None:
        self.run_progress.update(self.run_task_id, completed=completed, description=description or "")
        self._update_display()

    def _update_display(self) -> None:
        if not self.live or not self.live.is_started:
            return

        stats = self.tracker.stats
        self.layout["header"].update(Text("Stepwise Worker", style="bold cyan", justify="center"))
        self.layout["run_progress"].update(self.run_progress)

        if stats.current_job:
            self.layout["current_job"].update(Text.assemble(
                Text("Processing: ", style="green"),
                Text(stats.current_job, overflow="ellipsis", no_wrap=True)
            ))
        else:
            self.layout["current_job"].update(Text("Idle", style="dim"))

        self.layout["stats"].update(Panel(create_stats_table(stats), border_style="blue", title="Statistics"))
        self.layout["events"].update(create_events_panel(self.recent_events))

    def finalize(self) -> None:
        if not self.live:
            return

        self.tracker.update(status_message="Finalizing...")
        self._update_display()

        # Give Live one refresh before stopping so the last state is drawn
        time.sleep(0.1 * (10 / self.refresh_per_second))
        self.live.stop()

        self.console.print()
        self.console.rule("[bold]Stepwise Worker Stopped[/bold]", style="cyan")
        self.console.print(create_summary_table(self.tracker.stats))
        self.console.rule(style="cyan")
