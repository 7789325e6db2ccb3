"""CLI progress display for function tasks.

This module provides a Rich-based progress display that receives task
events from the TaskOrchestrator.
"""

from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn

from .sync.changes import Outcome, OutcomeStatus
from .sync.orchestrator import Task, TaskEvent

_STATUS_STYLES = {
    OutcomeStatus.SUCCEEDED: "[green]✓[/green]",
    OutcomeStatus.SKIPPED: "[yellow]-[/yellow]",
    OutcomeStatus.FAILED: "[red]✗[/red]",
}


class TaskProgressDisplay:
    """Rich-based progress display with one line per running task.

    The live display is started on the first task event, so confirmation
    prompts shown before execution are never overdrawn.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console to render on (default: a new stderr console)
        """
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._tasks: dict[str, TaskID] = {}

    def _ensure_started(self) -> Progress:
        if self._progress is None:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                TextColumn("[cyan]{task.fields[status]}"),
                TimeElapsedColumn(),
                console=self._console,
                refresh_per_second=4,
            )
            self._progress.start()
        return self._progress

    def handle_event(
        self, task: Task, event: TaskEvent, outcome: Optional[Outcome] = None
    ) -> None:
        """Update the display for a task event.

        Args:
            task: Task the event belongs to
            event: What happened
            outcome: Final outcome (FINISHED only)
        """
        progress = self._ensure_started()
        key = f"{task.kind.value}:{task.name}"

        if event == TaskEvent.STARTED:
            self._tasks[key] = progress.add_task(
                task.title, total=None, status="running"
            )
            return

        task_id = self._tasks.get(key)
        if task_id is None:
            return

        if event == TaskEvent.WATCHING:
            progress.update(task_id, status="waiting for the platform")
        elif event == TaskEvent.FINISHED and outcome is not None:
            progress.update(
                task_id,
                total=1,
                completed=1,
                status=f"{_STATUS_STYLES[outcome.status]} {outcome.status.value}",
            )

    def __enter__(self) -> "TaskProgressDisplay":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._tasks.clear()
