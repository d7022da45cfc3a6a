"""Flow Automator run command - Drain the job queue with human-like pacing."""

import asyncio
import logging
import signal
from typing import Optional

import typer
from rich.console import Console

from flow_automator.cli.error_handler import handle_errors
from flow_automator.cli.exit_codes import ExitCode

app = typer.Typer(help="Process queued jobs one at a time with random delays and cooldowns.")
console = Console()

logger = logging.getLogger(__name__)


def _seconds_to_ms(value: Optional[float]) -> Optional[int]:
    return None if value is None else int(round(value * 1000))


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, scheduler) -> list:
    """Route SIGINT/SIGTERM to stop and SIGUSR1 to pause/resume.

    Returns:
        Signals whose handlers were installed
    """
    def handle_stop(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, stopping after the current job...")
        console.print("\n[yellow]Stopping after the current job...[/yellow]")
        scheduler.stop()

    def handle_toggle(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, toggling pause")
        scheduler.toggle_pause()

    handlers = [(signal.SIGTERM, handle_stop), (signal.SIGINT, handle_stop)]
    if hasattr(signal, "SIGUSR1"):
        handlers.append((signal.SIGUSR1, handle_toggle))

    installed = []
    for sig, handler in handlers:
        try:
            loop.add_signal_handler(sig, lambda s=sig, h=handler: h(s))
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows, or not running in the main thread
            logger.debug(f"Signal handler for {sig.name} not available")
    return installed


async def drain_queue(scheduler, store, show_progress: bool = True):
    """Run the scheduler to completion, persisting the queue as it drains.

    After every progress notification, and once more when the run ends,
    the queue file is merged with the in-memory queue and written back.
    Jobs another invocation submitted in the meantime join the run; pending
    jobs another invocation removed (``queue clear``) leave it. Jobs that
    were not dequeued survive a stop or a crash.

    Args:
        scheduler: Configured QueueScheduler
        store: QueueStore holding the persisted queue
        show_progress: Render a rich progress bar

    Returns:
        The run summary
    """
    from flow_automator.cli.progress import run_progress

    loop = asyncio.get_running_loop()
    installed = _install_signal_handlers(loop, scheduler)

    known_ids = {job.job_id for job in scheduler.queue}

    def sync(_progress=None) -> None:
        stored = store.load()
        stored_ids = {job.job_id for job in stored}

        # Removed from the file by another invocation
        scheduler.queue.discard(
            job.job_id for job in scheduler.queue if job.job_id not in stored_ids
        )
        for job in stored:
            if job.job_id not in known_ids:
                known_ids.add(job.job_id)
                scheduler.enqueue_job(job)
                logger.info(f"Picked up submitted job: {job.describe()}")

        store.save(scheduler.queue.snapshot())

    unsubscribe = scheduler.subscribe(sync)
    try:
        if show_progress:
            with run_progress(len(scheduler.queue), console_instance=console) as display:
                unsubscribe_display = scheduler.subscribe(display)
                try:
                    return await scheduler.start()
                finally:
                    unsubscribe_display()
        return await scheduler.start()
    finally:
        unsubscribe()
        for sig in installed:
            loop.remove_signal_handler(sig)
        try:
            sync()
        finally:
            await scheduler.executor.aclose()


@app.callback(invoke_without_command=True)
@handle_errors
def run(
    ctx: typer.Context,
    delay_min: Optional[float] = typer.Option(
        None,
        "--delay-min",
        help="Minimum delay between jobs in seconds (default from config).",
        min=0,
    ),
    delay_max: Optional[float] = typer.Option(
        None,
        "--delay-max",
        help="Maximum delay between jobs in seconds (default from config).",
        min=0,
    ),
    cooldown_after: Optional[int] = typer.Option(
        None,
        "--cooldown-after",
        help="Insert a cooldown after every N jobs.",
        min=1,
    ),
    cooldown_duration: Optional[float] = typer.Option(
        None,
        "--cooldown-duration",
        help="Cooldown length in seconds.",
        min=0,
    ),
    executor: Optional[str] = typer.Option(
        None,
        "--executor",
        "-e",
        help="Executor to use: dry-run or http.",
    ),
    endpoint: Optional[str] = typer.Option(
        None,
        "--endpoint",
        help="Bridge URL for the http executor.",
    ),
    show_progress: bool = typer.Option(
        True,
        "--progress/--no-progress",
        help="Show a progress bar while the queue drains.",
    ),
) -> None:
    """Process every queued job, one at a time.

    Jobs run strictly in submission order. After each job the runner waits
    a random delay; after every N jobs it takes a longer cooldown instead.
    A failed job is logged and the run continues with the next one.

    Send SIGUSR1 to pause or resume, and Ctrl+C (or SIGTERM) to stop after
    the current job. Jobs that did not run stay in the queue.

    Example:
        flow-automator run
        flow-automator run --delay-min 5 --delay-max 10 --cooldown-after 5 --cooldown-duration 60
        flow-automator run --executor http --endpoint http://127.0.0.1:8765/jobs
    """
    if ctx.invoked_subcommand is not None:
        return

    from flow_automator.config import ensure_directories, load_config
    from flow_automator.scheduler.job_executor import create_executor
    from flow_automator.scheduler.job_queue import JobQueue
    from flow_automator.scheduler.job_scheduler import (
        CooldownConfig,
        DelayConfig,
        QueueScheduler,
    )
    from flow_automator.scheduler.queue_store import QueueStore

    config = load_config()
    queue_config = config.queue

    if delay_min is not None:
        queue_config.delay_min_ms = _seconds_to_ms(delay_min)
    if delay_max is not None:
        queue_config.delay_max_ms = _seconds_to_ms(delay_max)
    if cooldown_after is not None:
        queue_config.cooldown_after = cooldown_after
    if cooldown_duration is not None:
        queue_config.cooldown_duration_ms = _seconds_to_ms(cooldown_duration)
    if executor is not None:
        config.executor.kind = executor
    if endpoint is not None:
        config.executor.endpoint = endpoint

    # Validate pacing before touching the queue
    delay = DelayConfig(min_ms=queue_config.delay_min_ms, max_ms=queue_config.delay_max_ms)
    cooldown = CooldownConfig(
        after_n=queue_config.cooldown_after,
        duration_ms=queue_config.cooldown_duration_ms,
    )

    ensure_directories(config)
    store = QueueStore(config.queue_file)
    jobs = store.load()

    if not jobs:
        console.print("[yellow]Queue is empty.[/yellow] Add jobs with: flow-automator queue add-text PROMPT")
        return

    job_executor = create_executor(
        kind=config.executor.kind,
        endpoint=config.executor.endpoint,
        timeout=config.executor.timeout,
        dry_run_latency_ms=config.executor.dry_run_latency_ms,
    )
    scheduler = QueueScheduler(
        job_executor,
        queue=JobQueue(jobs),
        delay=delay,
        cooldown=cooldown,
        wait_slice_ms=queue_config.wait_slice_ms,
        cooldown_tick_ms=queue_config.cooldown_tick_ms,
        max_history=queue_config.max_history,
    )

    console.print(f"[bold green]Processing {len(jobs)} jobs[/bold green]")
    console.print(
        f"[dim]Delay {delay.min_ms / 1000:g}-{delay.max_ms / 1000:g}s, "
        f"cooldown {cooldown.duration_ms / 1000:g}s every {cooldown.after_n} jobs, "
        f"executor: {config.executor.kind}[/dim]"
    )

    summary = asyncio.run(drain_queue(scheduler, store, show_progress=show_progress))

    console.print()
    if summary.stopped:
        console.print(
            f"[yellow]Stopped[/yellow] after {summary.completed_count}/{summary.total_at_start} jobs; "
            f"{summary.remaining} left in queue"
        )
    else:
        console.print(f"[green]✓[/green] Processed {summary.completed_count} jobs")
    if summary.failed:
        console.print(f"[red]✗[/red] {summary.failed} jobs failed")

    if summary.stopped:
        raise typer.Exit(code=ExitCode.CANCELLED)
    if summary.failed:
        raise typer.Exit(code=ExitCode.EXECUTION_ERROR)


@app.command()
@handle_errors
def status() -> None:
    """Show the pending queue and pacing without starting a run.

    Example:
        flow-automator run status
    """
    from flow_automator.cli.output import format_duration_ms, print_json
    from flow_automator.config import load_config
    from flow_automator.main import is_json
    from flow_automator.scheduler.queue_store import QueueStore

    config = load_config()
    jobs = QueueStore(config.queue_file).load()
    queue_config = config.queue

    if is_json():
        print_json({
            "queue_length": len(jobs),
            "queue_file": str(config.queue_file),
            "delay": {"min_ms": queue_config.delay_min_ms, "max_ms": queue_config.delay_max_ms},
            "cooldown": {
                "after_n": queue_config.cooldown_after,
                "duration_ms": queue_config.cooldown_duration_ms,
            },
            "executor": config.executor.kind,
        })
        return

    console.print(f"[bold]Queued jobs:[/bold] {len(jobs)}")
    console.print(
        f"[bold]Delay:[/bold] {format_duration_ms(queue_config.delay_min_ms)} - "
        f"{format_duration_ms(queue_config.delay_max_ms)}"
    )
    console.print(
        f"[bold]Cooldown:[/bold] {format_duration_ms(queue_config.cooldown_duration_ms)} "
        f"every {queue_config.cooldown_after} jobs"
    )
    console.print(f"[bold]Executor:[/bold] {config.executor.kind}")
    console.print(f"[dim]Queue file: {config.queue_file}[/dim]")
