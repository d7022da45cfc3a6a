"""Progress indicators for the Flow Automator CLI.

Rich progress displays driven by the scheduler's progress notifications.
"""

from collections.abc import Generator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from flow_automator.scheduler.events import ProgressObserver, RunProgress, RunState

# Default console for progress output
console = Console()


def describe_progress(progress: RunProgress) -> str:
    """Build the status line shown next to the progress bar.

    Example:
        describe_progress(RunProgress(5, 2, RunState.PAUSED))  # "Paused"
    """
    if progress.stop_requested and progress.state is not RunState.IDLE:
        return "[yellow]Stopping...[/yellow]"
    if progress.state is RunState.PAUSED:
        return "[yellow]Paused[/yellow]"
    if progress.cooldown_remaining_ms is not None:
        return f"[cyan]Cooldown: {progress.cooldown_remaining_ms / 1000:.0f}s remaining[/cyan]"
    if progress.state is RunState.IDLE:
        return "[green]Idle[/green]"
    return f"Processing job {progress.completed_count}/{progress.total_at_start}"


class RunProgressDisplay:
    """Progress observer that renders a run on a rich progress bar."""

    def __init__(self, progress: Progress, task: TaskID) -> None:
        self._progress = progress
        self._task = task

    def __call__(self, progress: RunProgress) -> None:
        self._progress.update(
            self._task,
            total=max(progress.total_at_start, progress.completed_count),
            completed=progress.completed_count,
            description=describe_progress(progress),
        )


@contextmanager
def run_progress(
    total: int,
    console_instance: Console | None = None,
) -> Generator[ProgressObserver, None, None]:
    """Show a progress bar for a queue run.

    Args:
        total: Number of jobs in the queue when the run starts
        console_instance: Optional custom console instance

    Yields:
        Observer to subscribe to the scheduler

    Example:
        with run_progress(len(queue)) as observer:
            unsubscribe = scheduler.subscribe(observer)
            await scheduler.start()
    """
    prog_console = console_instance or console

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=prog_console,
    ) as progress:
        task = progress.add_task("Starting...", total=total)
        yield RunProgressDisplay(progress, task)
