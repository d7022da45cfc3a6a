"""Queue scheduler that drains jobs one at a time with human-like pacing.

The QueueScheduler owns the run state machine (idle, running, paused),
serialized dispatch to the job executor, the jittered delay between jobs,
the periodic cooldown, and per-job failure isolation.

Pause and stop are cooperative. They are honored only at checkpoints
between jobs and inside the waits, never while an executor call is in
flight. Stop wakes a wait immediately; a pause does not extend a wait's
deadline, it only withholds cooldown progress ticks while wall-clock time
keeps running.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from flow_automator.exceptions import ConfigurationError, ExecutionFailure
from flow_automator.scheduler.events import ProgressObserver, RunProgress, RunState
from flow_automator.scheduler.job_executor import ExecutionResult, JobExecutor
from flow_automator.scheduler.job_queue import JobQueue
from flow_automator.scheduler.jobs import Job, JobKind, JobPayload

logger = logging.getLogger(__name__)

DEFAULT_WAIT_SLICE_MS = 100
DEFAULT_COOLDOWN_TICK_MS = 10_000
DEFAULT_MAX_HISTORY = 1000


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class DelayConfig:
    """Range of the random delay between two jobs, in milliseconds.

    Raises:
        ConfigurationError: Unless 0 <= min_ms <= max_ms
    """

    min_ms: int = 5000
    max_ms: int = 10000

    def __post_init__(self) -> None:
        if not (_is_int(self.min_ms) and _is_int(self.max_ms)):
            raise ConfigurationError("Delay bounds must be integers (milliseconds)")
        if self.min_ms < 0 or self.max_ms < self.min_ms:
            raise ConfigurationError(
                f"Invalid delay range: {self.min_ms}ms - {self.max_ms}ms",
                details={"rule": "0 <= min_ms <= max_ms"},
            )


@dataclass(frozen=True)
class CooldownConfig:
    """Longer rest inserted after every ``after_n`` jobs.

    Raises:
        ConfigurationError: Unless after_n >= 1 and duration_ms >= 0
    """

    after_n: int = 5
    duration_ms: int = 60000

    def __post_init__(self) -> None:
        if not (_is_int(self.after_n) and _is_int(self.duration_ms)):
            raise ConfigurationError("Cooldown settings must be integers")
        if self.after_n < 1:
            raise ConfigurationError(
                f"Cooldown must trigger after at least 1 job, got {self.after_n}"
            )
        if self.duration_ms < 0:
            raise ConfigurationError(
                f"Cooldown duration cannot be negative, got {self.duration_ms}ms"
            )


@dataclass
class RunSummary:
    """Outcome of one run of the drain loop.

    Attributes:
        total_at_start: Queue length when the run began
        completed_count: Jobs taken from the queue during the run
        succeeded: Jobs the executor reported as successful
        failed: Jobs that failed
        stopped: Whether the run ended because stop was requested
        remaining: Jobs still pending when the run ended
    """

    total_at_start: int
    completed_count: int
    succeeded: int = 0
    failed: int = 0
    stopped: bool = False
    remaining: int = 0


class QueueScheduler:
    """Drains a job queue through an executor, one job at a time.

    One scheduler is constructed per process and handed to whatever layer
    exposes the controls. Its configuration and state survive across runs.

    Example:
        scheduler = QueueScheduler(DryRunExecutor())
        scheduler.set_delay_range(5000, 10000)
        scheduler.set_cooldown(5, 60000)
        scheduler.enqueue("text_to_video", {"prompt": "A red fox"})

        summary = await scheduler.start()
    """

    def __init__(
        self,
        executor: JobExecutor,
        queue: Optional[JobQueue] = None,
        delay: Optional[DelayConfig] = None,
        cooldown: Optional[CooldownConfig] = None,
        wait_slice_ms: int = DEFAULT_WAIT_SLICE_MS,
        cooldown_tick_ms: int = DEFAULT_COOLDOWN_TICK_MS,
        max_history: int = DEFAULT_MAX_HISTORY,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            executor: Performs each job against the target application
            queue: Queue to drain (a new empty queue if omitted)
            delay: Random delay range between jobs
            cooldown: Periodic cooldown settings
            wait_slice_ms: Sleep granularity of the pollable waits
            cooldown_tick_ms: Interval of cooldown remaining-time reports
            max_history: Number of execution results kept in memory
            rng: Random source for delays (seeded in tests)
        """
        self._executor = executor
        self._queue = queue if queue is not None else JobQueue()
        self._delay = delay or DelayConfig()
        self._cooldown = cooldown or CooldownConfig()
        self._wait_slice = max(wait_slice_ms, 1) / 1000
        self._cooldown_tick = max(cooldown_tick_ms, 1) / 1000
        self._max_history = max_history
        self._rng = rng or random.Random()

        self._observers: List[ProgressObserver] = []
        self._history: List[ExecutionResult] = []

        self._state = RunState.IDLE
        self._paused = False
        self._total_at_start = 0
        self._completed_count = 0

        # Created per run so they bind to the running event loop
        self._stop_event: Optional[asyncio.Event] = None
        self._wake_event: Optional[asyncio.Event] = None

    @property
    def state(self) -> RunState:
        """Current run state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether a run is in progress (running or paused)."""
        return self._state is not RunState.IDLE

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def stop_requested(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    @property
    def total_at_start(self) -> int:
        return self._total_at_start

    @property
    def completed_count(self) -> int:
        return self._completed_count

    @property
    def queue(self) -> JobQueue:
        return self._queue

    @property
    def executor(self) -> JobExecutor:
        return self._executor

    @property
    def delay(self) -> DelayConfig:
        return self._delay

    @property
    def cooldown(self) -> CooldownConfig:
        return self._cooldown

    # -- submission and configuration -------------------------------------

    def enqueue(
        self,
        kind: Union[str, JobKind],
        payload: Union[JobPayload, Dict[str, Any]],
    ) -> int:
        """Validate and append a job to the queue.

        Safe to call while a run is in progress.

        Args:
            kind: Job kind or its name
            payload: Payload instance or dict of payload fields

        Returns:
            The new queue length

        Raises:
            InvalidJobError: If the payload does not match the kind
        """
        return self._queue.enqueue(Job.create(kind, payload))

    def enqueue_job(self, job: Job) -> int:
        """Append an already built job to the queue."""
        return self._queue.enqueue(job)

    def clear(self) -> int:
        """Discard all pending jobs; the job in flight is unaffected.

        Returns:
            Number of jobs discarded
        """
        return self._queue.clear()

    def set_delay_range(self, min_ms: int, max_ms: int) -> None:
        """Set the random delay range between jobs.

        Takes effect for waits not yet started.

        Raises:
            ConfigurationError: Unless 0 <= min_ms <= max_ms
        """
        self._delay = DelayConfig(min_ms=min_ms, max_ms=max_ms)
        logger.info(f"Delay range set: {min_ms / 1000:g}s - {max_ms / 1000:g}s")

    def set_cooldown(self, after_n: int, duration_ms: int) -> None:
        """Set the cooldown inserted after every ``after_n`` jobs.

        Takes effect for waits not yet started.

        Raises:
            ConfigurationError: If after_n < 1 or duration_ms < 0
        """
        self._cooldown = CooldownConfig(after_n=after_n, duration_ms=duration_ms)
        logger.info(f"Cooldown set: {duration_ms / 1000:g}s after every {after_n} jobs")

    def sample_delay_ms(self) -> int:
        """Draw a fresh delay, uniformly from the configured inclusive range."""
        delay = self._delay
        return self._rng.randint(delay.min_ms, delay.max_ms)

    # -- observers ----------------------------------------------------------

    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        """Register a progress observer.

        Args:
            observer: Callable receiving a RunProgress snapshot

        Returns:
            Function that removes this observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def progress(self, cooldown_remaining_ms: Optional[int] = None) -> RunProgress:
        """Build a snapshot of the current run."""
        return RunProgress(
            total_at_start=self._total_at_start,
            completed_count=self._completed_count,
            state=self._state,
            stop_requested=self.stop_requested,
            cooldown_remaining_ms=cooldown_remaining_ms,
        )

    def _notify(self, cooldown_remaining_ms: Optional[int] = None) -> None:
        progress = self.progress(cooldown_remaining_ms)
        for observer in list(self._observers):
            try:
                observer(progress)
            except Exception as e:
                logger.error(f"Progress observer error: {e}")

    # -- control --------------------------------------------------------------

    async def start(self) -> Optional[RunSummary]:
        """Start draining the queue, or toggle pause if already running.

        When idle, snapshots the queue length, resets the counters and runs
        the drain loop until the queue is empty or a stop is requested.
        When a run is already in progress the call acts as
        :meth:`toggle_pause` and returns immediately.

        Returns:
            Summary of the run, or None if the call toggled pause instead
        """
        if self._state is not RunState.IDLE:
            self.toggle_pause()
            return None

        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._paused = False
        self._total_at_start = len(self._queue)
        self._completed_count = 0
        self._state = RunState.RUNNING

        logger.info(f"Starting to process {self._total_at_start} jobs")
        self._notify()

        succeeded = 0
        failed = 0
        try:
            while self._queue and not self._stop_event.is_set():
                await self._pause_checkpoint()
                if self._stop_event.is_set():
                    break
                # The queue may have been cleared while paused
                if not self._queue:
                    break

                job = self._queue.take()
                self._completed_count += 1
                logger.info(
                    f"Processing job {self._completed_count}/{self._total_at_start}: "
                    f"{job.describe()}"
                )
                self._notify()

                result = await self._run_job(job)
                if result.success:
                    succeeded += 1
                else:
                    failed += 1

                if self._queue and self._completed_count % self._cooldown.after_n == 0:
                    await self._cooldown_wait()
                else:
                    await self._jittered_wait()

                self._notify()
        finally:
            stopped = self.stop_requested
            self._state = RunState.IDLE
            self._paused = False
            if stopped:
                logger.info(
                    f"Stopped after {self._completed_count} jobs; "
                    f"{len(self._queue)} left in queue"
                )
            else:
                logger.info(f"All {self._completed_count} jobs processed")
            self._notify()

        return RunSummary(
            total_at_start=self._total_at_start,
            completed_count=self._completed_count,
            succeeded=succeeded,
            failed=failed,
            stopped=stopped,
            remaining=len(self._queue),
        )

    def pause(self) -> bool:
        """Pause the run at its next checkpoint.

        Returns:
            True if the scheduler went from running to paused
        """
        if self._state is RunState.IDLE:
            logger.debug("Pause ignored: scheduler is idle")
            return False
        if self._paused:
            return False

        self._paused = True
        self._state = RunState.PAUSED
        logger.info("Paused")
        self._wake()
        self._notify()
        return True

    def resume(self) -> bool:
        """Resume a paused run.

        Returns:
            True if the scheduler went from paused to running
        """
        if self._state is RunState.IDLE:
            logger.debug("Resume ignored: scheduler is idle")
            return False
        if not self._paused:
            return False

        self._paused = False
        self._state = RunState.RUNNING
        logger.info("Resumed")
        self._wake()
        self._notify()
        return True

    def toggle_pause(self) -> bool:
        """Pause if running, resume if paused.

        Returns:
            True if the state changed
        """
        if self._paused:
            return self.resume()
        return self.pause()

    def stop(self) -> bool:
        """Request the run to end at its next checkpoint.

        An executor call already in flight runs to completion. Jobs still
        pending stay in the queue for a later run.

        Returns:
            True if a stop was newly requested
        """
        if self._state is RunState.IDLE or self._stop_event is None:
            logger.debug("Stop ignored: scheduler is idle")
            return False
        if self._stop_event.is_set():
            return False

        self._stop_event.set()
        logger.info("Stop requested")
        self._wake()
        self._notify()
        return True

    def _wake(self) -> None:
        if self._wake_event is not None:
            self._wake_event.set()

    # -- drain loop internals -------------------------------------------------

    async def _pause_checkpoint(self) -> None:
        if not self._paused:
            return
        logger.info("Paused, waiting...")
        while self._paused and not self._stop_event.is_set():
            self._wake_event.clear()
            await self._wake_event.wait()

    async def _run_job(self, job: Job) -> ExecutionResult:
        """Execute one job inside the failure boundary."""
        started_at = datetime.utcnow()
        try:
            result = await self._executor.execute(job)
        except Exception as e:
            result = ExecutionResult(
                job_id=job.job_id,
                kind=job.kind,
                started_at=started_at,
                completed_at=datetime.utcnow(),
                success=False,
                error=str(e) or type(e).__name__,
            )

        if not result.success:
            failure = ExecutionFailure(
                result.error or "Executor reported failure",
                job_id=job.job_id,
                kind=job.kind.value,
            )
            logger.error(
                f"Job {self._completed_count}/{self._total_at_start} failed: {failure}"
            )

        self._record(result)
        return result

    def _record(self, result: ExecutionResult) -> None:
        self._history.append(result)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    async def _jittered_wait(self) -> bool:
        delay_ms = self.sample_delay_ms()
        logger.info(
            f"Job {self._completed_count}/{self._total_at_start} done. "
            f"Waiting {delay_ms / 1000:.1f}s (random)"
        )
        return await self._pollable_wait(delay_ms)

    async def _cooldown_wait(self) -> bool:
        cooldown = self._cooldown
        logger.info(
            f"COOLDOWN: waiting {cooldown.duration_ms / 1000:g}s "
            f"after {cooldown.after_n} jobs..."
        )
        finished = await self._pollable_wait(cooldown.duration_ms, report_ticks=True)
        if finished:
            logger.info("Cooldown finished, resuming...")
        return finished

    async def _pollable_wait(self, duration_ms: int, report_ticks: bool = False) -> bool:
        """Wait until a deadline fixed at call time, waking early only on stop.

        Args:
            duration_ms: Wait duration
            report_ticks: Emit cooldown remaining-time ticks while not paused

        Returns:
            True if the deadline was reached, False if stopped early
        """
        if self._stop_event.is_set():
            return False

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_ms / 1000
        next_tick = loop.time() + self._cooldown_tick if report_ticks else None

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return True

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=min(self._wait_slice, remaining),
                )
                return False
            except asyncio.TimeoutError:
                pass

            if next_tick is not None and loop.time() >= next_tick:
                next_tick += self._cooldown_tick
                remaining_ms = int(max(deadline - loop.time(), 0) * 1000)
                if remaining_ms > 0 and not self._paused:
                    logger.info(f"Cooldown: {remaining_ms / 1000:.0f}s remaining...")
                    self._notify(cooldown_remaining_ms=remaining_ms)

    # -- reporting ---------------------------------------------------------

    def get_history(self, limit: int = 10) -> List[ExecutionResult]:
        """Get the most recent execution results, oldest first."""
        return self._history[-limit:] if limit > 0 else []

    def get_status(self) -> Dict[str, Any]:
        """Get scheduler status.

        Returns:
            Dictionary with run state, counters and configuration
        """
        return {
            "state": self._state.value,
            "queue_length": len(self._queue),
            "total_at_start": self._total_at_start,
            "completed_count": self._completed_count,
            "stop_requested": self.stop_requested,
            "delay": {"min_ms": self._delay.min_ms, "max_ms": self._delay.max_ms},
            "cooldown": {
                "after_n": self._cooldown.after_n,
                "duration_ms": self._cooldown.duration_ms,
            },
            "failures": sum(1 for r in self._history if not r.success),
        }
