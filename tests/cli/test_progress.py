"""Tests for progress display module."""

from io import StringIO

from rich.console import Console

from flow_automator.cli.progress import describe_progress, run_progress
from flow_automator.scheduler.events import RunProgress, RunState


class TestDescribeProgress:
    """Test the status line for progress notifications."""

    def test_running(self) -> None:
        assert describe_progress(RunProgress(5, 2, RunState.RUNNING)) == "Processing job 2/5"

    def test_paused(self) -> None:
        assert "Paused" in describe_progress(RunProgress(5, 2, RunState.PAUSED))

    def test_cooldown(self) -> None:
        """Test cooldown ticks show the remaining seconds."""
        progress = RunProgress(5, 3, RunState.RUNNING, cooldown_remaining_ms=42000)
        assert "Cooldown: 42s remaining" in describe_progress(progress)

    def test_stopping_wins_over_pause(self) -> None:
        progress = RunProgress(5, 2, RunState.PAUSED, stop_requested=True)
        assert "Stopping" in describe_progress(progress)

    def test_idle(self) -> None:
        """Test a finished run reads as idle."""
        progress = RunProgress(5, 5, RunState.IDLE, stop_requested=True)
        assert "Idle" in describe_progress(progress)


class TestRunProgress:
    """Test the run progress context manager."""

    def test_observer_updates_bar(self) -> None:
        """Test notifications move the bar, growing it for jobs added mid-run."""
        console = Console(file=StringIO(), force_terminal=False)

        with run_progress(2, console_instance=console) as observer:
            observer(RunProgress(2, 1, RunState.RUNNING))
            observer(RunProgress(2, 3, RunState.RUNNING))
            task = observer._progress.tasks[0]

            assert task.completed == 3
            assert task.total == 3
            assert task.description == "Processing job 3/2"
