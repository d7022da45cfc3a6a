"""Tests for run CLI command."""

import json

import pytest
from typer.testing import CliRunner

from flow_automator.cli.exit_codes import ExitCode
from flow_automator.cli.run import drain_queue
from flow_automator.config import load_config
from flow_automator.main import app
from flow_automator.scheduler import job_executor
from flow_automator.scheduler.job_queue import JobQueue
from flow_automator.scheduler.job_scheduler import CooldownConfig, DelayConfig, QueueScheduler
from flow_automator.scheduler.jobs import Job, JobKind
from flow_automator.scheduler.queue_store import QueueStore


runner = CliRunner()

FAST = ["--delay-min", "0", "--delay-max", "0", "--cooldown-duration", "0", "--no-progress"]


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point the config and data directories at a temporary directory."""
    monkeypatch.setenv("FLOW_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("FLOW_DATA_DIR", str(tmp_path / "data"))
    return tmp_path


class FailingExecutor(job_executor.DryRunExecutor):
    """Dry-run executor whose text jobs fail when the prompt says so."""

    async def text_to_video(self, payload) -> None:
        if "fail" in payload.prompt:
            raise RuntimeError("generation failed")
        await super().text_to_video(payload)


class EditingExecutor(job_executor.DryRunExecutor):
    """Dry-run executor that edits the queue file while its first job runs."""

    def __init__(self, on_first_job) -> None:
        super().__init__()
        self.prompts = []
        self._on_first_job = on_first_job

    async def text_to_video(self, payload) -> None:
        if not self.prompts:
            self._on_first_job()
        self.prompts.append(payload.prompt)
        await super().text_to_video(payload)


def text_job(prompt: str) -> Job:
    return Job.create(JobKind.TEXT_TO_VIDEO, {"prompt": prompt})


def make_scheduler(executor, store: QueueStore) -> QueueScheduler:
    return QueueScheduler(
        executor,
        queue=JobQueue(store.load()),
        delay=DelayConfig(0, 0),
        cooldown=CooldownConfig(5, 0),
        wait_slice_ms=5,
    )


class TestRunHelp:
    """Tests for run help output."""

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])

        assert result.exit_code == 0
        assert "--delay-min" in result.output
        assert "--cooldown-after" in result.output
        assert "status" in result.output


class TestRunCommand:
    """Tests for draining the queue."""

    def test_empty_queue(self, workspace):
        result = runner.invoke(app, ["run", *FAST])

        assert result.exit_code == 0
        assert "Queue is empty" in result.output

    def test_drains_queue(self, workspace):
        """Test every queued job runs and the stored queue ends empty."""
        runner.invoke(app, ["queue", "add-text", "one", "two", "three"])

        result = runner.invoke(app, ["run", *FAST])

        assert result.exit_code == 0
        assert "Processed 3 jobs" in result.output
        assert QueueStore(load_config().queue_file).load() == []

    def test_failed_job_sets_exit_code(self, workspace, monkeypatch):
        """Test a failure is reported but the run continues to the end."""
        monkeypatch.setattr(job_executor, "create_executor", lambda **kwargs: FailingExecutor())
        runner.invoke(app, ["queue", "add-text", "one", "please fail", "three"])

        result = runner.invoke(app, ["run", *FAST])

        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert "Processed 3 jobs" in result.output
        assert "1 jobs failed" in result.output
        assert QueueStore(load_config().queue_file).load() == []

    def test_invalid_delay_range(self, workspace):
        """Test an inverted range is rejected before anything runs."""
        runner.invoke(app, ["queue", "add-text", "one"])

        result = runner.invoke(app, ["run", "--delay-min", "10", "--delay-max", "5", "--no-progress"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR
        assert len(QueueStore(load_config().queue_file).load()) == 1

    def test_unknown_executor(self, workspace):
        runner.invoke(app, ["queue", "add-text", "one"])

        result = runner.invoke(app, ["run", *FAST, "--executor", "selenium"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR


class TestRunStatus:
    """Tests for run status."""

    def test_status(self, workspace):
        runner.invoke(app, ["queue", "add-text", "one", "two"])

        result = runner.invoke(app, ["run", "status"])

        assert result.exit_code == 0
        assert "Queued jobs: 2" in result.output

    def test_status_json(self, workspace, monkeypatch):
        monkeypatch.setenv("FLOW_DELAY_MIN_MS", "1500")

        result = runner.invoke(app, ["--json", "run", "status"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["queue_length"] == 0
        assert data["delay"]["min_ms"] == 1500
        assert data["executor"] == "dry-run"


class TestDrainQueue:
    """Tests for keeping the queue file in step with a run."""

    @pytest.mark.asyncio
    async def test_jobs_submitted_during_run_are_kept(self, tmp_path):
        """Test a job added by another invocation mid-run joins the run."""
        store = QueueStore(tmp_path / "queue.json")
        store.save([text_job("one"), text_job("two")])
        executor = EditingExecutor(lambda: QueueStore(store.path).append([text_job("late")]))

        summary = await drain_queue(make_scheduler(executor, store), store, show_progress=False)

        assert executor.prompts == ["one", "two", "late"]
        assert summary.completed_count == 3
        assert store.load() == []

    @pytest.mark.asyncio
    async def test_submitted_jobs_survive_stop(self, tmp_path):
        """Test a job added mid-run stays in the file when the run stops."""
        store = QueueStore(tmp_path / "queue.json")
        store.save([text_job("one"), text_job("two")])
        scheduler = None

        def submit_and_stop() -> None:
            QueueStore(store.path).append([text_job("late")])
            scheduler.stop()

        executor = EditingExecutor(submit_and_stop)
        scheduler = make_scheduler(executor, store)

        summary = await drain_queue(scheduler, store, show_progress=False)

        assert summary.stopped is True
        assert executor.prompts == ["one"]
        assert [job.prompt for job in store.load()] == ["two", "late"]

    @pytest.mark.asyncio
    async def test_clear_during_run_is_kept(self, tmp_path):
        """Test a queue clear from another invocation ends the run."""
        store = QueueStore(tmp_path / "queue.json")
        store.save([text_job("one"), text_job("two"), text_job("three")])
        executor = EditingExecutor(lambda: QueueStore(store.path).clear())

        summary = await drain_queue(make_scheduler(executor, store), store, show_progress=False)

        assert executor.prompts == ["one"]
        assert summary.remaining == 0
        assert store.load() == []
