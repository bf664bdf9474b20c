# File: stepwise/ui/components.py

"""
UI components for the worker progress display.
"""

import time
import logging
from typing import Any, List, Tuple

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.stats_tracker import RunStats

logger = logging.getLogger(__name__)

def format_time(seconds: float) -> str:
    """
    Format seconds into a readable time string.

    Args:
        seconds: Number of seconds to format

    Returns:
        Formatted time string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        seconds_rem = seconds % 60
        return f"{minutes}m {seconds_rem:.1f}s"
    else:
        hours = int(seconds / 3600)
        seconds_rem = seconds % 3600
        minutes = int(seconds_rem / 60)
        seconds_rem %= 60
        return f"{hours}h {minutes}m {seconds_rem:.1f}s"

def create_stats_table(stats: RunStats) -> Table:
    """Two-column table of the live run counters."""
    stats_table = Table(show_header=False, box=None, padding=(0, 1))
    stats_table.add_column("Key", style="dim", width=16)
    stats_table.add_column("Value", ratio=1)

    stats_table.add_row(
        "Status:",
        Text(str(stats.status_message), no_wrap=True, overflow="ellipsis")
    )
    stats_table.add_row("Runs:", str(stats.runs_performed))
    stats_table.add_row("Resumed:", str(stats.runs_resumed))
    stats_table.add_row("Interrupted:", str(stats.runs_interrupted))
    stats_table.add_row("Completed:", str(stats.runs_completed))
    stats_table.add_row("Items:", str(stats.items_processed))

    if stats.errors > 0:
        stats_table.add_row("Errors:", Text(str(stats.errors), style="bold red"))

    elapsed_seconds = time.time() - stats.start_time
    stats_table.add_row("Elapsed Time:", format_time(elapsed_seconds))

    return stats_table

def create_events_panel(events: List[Tuple[str, str, str]]) -> Panel:
    """
    Panel of recent events, newest first.

    Args:
        events: (timestamp, event_type, message) tuples, oldest first
    """
    panel_content: Any

    if not events:
        panel_content = Text("No events yet...", style="dim")
    else:
        lines = [
            Text.assemble(
                Text(f"{timestamp} ", style="dim"),
                Text(f"[{event_type}] ", style=get_event_style(event_type)),
                Text(str(message) if message is not None else "", overflow="ellipsis", no_wrap=True)
            )
            for timestamp, event_type, message in reversed(events)
        ]
        panel_content = Group(*lines)

    return Panel(
        panel_content,
        border_style="green",
        title="[bold]Recent Events (Newest First)[/bold]"
    )

def get_event_style(event_type: str) -> str:
    event_styles = {
        "Worker": "cyan bold",
        "Job": "bright_blue",
        "Run": "green",
        "Interrupt": "yellow",
        "Resubmit": "magenta",
        "Complete": "bright_green",
        "Cursor": "bold red",
        "Error": "bold red",
    }
    return event_styles.get(event_type, "dim cyan")

def create_summary_table(stats: RunStats) -> Table:
    """Summary table printed once the worker stops."""
    logger.info(f"Creating final summary table: runs={stats.runs_performed}, "
                f"items={stats.items_processed}, errors={stats.errors}")

    table = Table(show_header=False, title="[bold]Summary[/bold]", title_style="bold white on blue", box=None)
    table.add_column("Statistic", style="dim", min_width=20)
    table.add_column("Value", justify="right")

    table.add_row("Runs Performed", str(stats.runs_performed))
    table.add_row("Runs Resumed", str(stats.runs_resumed))
    table.add_row("Runs Interrupted", str(stats.runs_interrupted))
    table.add_row("Runs Completed", str(stats.runs_completed))
    table.add_row("Items Processed", str(stats.items_processed))
    table.add_row("Jobs Resubmitted", str(stats.jobs_resubmitted))

    cursor_style = "bold red" if stats.cursor_errors > 0 else ""
    table.add_row("Cursor Errors", Text(str(stats.cursor_errors), style=cursor_style))
    error_style = "bold red" if stats.errors > 0 else ""
    table.add_row("Errors Encountered", Text(str(stats.errors), style=error_style))

    elapsed_seconds = time.time() - stats.start_time
    table.add_row("Total Time", format_time(elapsed_seconds))

    return table
