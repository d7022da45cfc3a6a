"""Flow Automator queue command - Submit and inspect pending jobs."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from flow_automator.cli.error_handler import handle_errors
from flow_automator.exceptions import InvalidJobError

app = typer.Typer(help="Submit, list and clear queued video jobs.")
console = Console()


def _read_prompts(prompts: Optional[List[str]], file: Optional[Path]) -> List[str]:
    """Collect prompts from arguments and a file with one prompt per line."""
    collected = [p.strip() for p in prompts or [] if p.strip()]
    if file is not None:
        collected.extend(
            line.strip() for line in file.read_text().splitlines() if line.strip()
        )
    if not collected:
        raise InvalidJobError("Provide at least one prompt (as arguments or with --file)")
    return collected


def _store():
    from flow_automator.config import load_config
    from flow_automator.scheduler.queue_store import QueueStore

    config = load_config()
    return QueueStore(config.queue_file)


def _report_added(count: int, queue_length: int) -> None:
    from flow_automator.cli.output import print_result

    noun = "job" if count == 1 else "jobs"
    print_result(True, f"Queued {count} {noun}", {"queue length": queue_length})


@app.command("add-text")
@handle_errors
def add_text(
    prompts: Optional[List[str]] = typer.Argument(
        None,
        help="Prompts to queue, one text-to-video job each.",
    ),
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Read prompts from a file, one per line.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Queue text-to-video jobs.

    Example:
        flow-automator queue add-text "A red fox in the snow" "A neon city at night"
        flow-automator queue add-text --file prompts.txt
    """
    from flow_automator.scheduler.jobs import Job, JobKind

    jobs = [
        Job.create(JobKind.TEXT_TO_VIDEO, {"prompt": prompt})
        for prompt in _read_prompts(prompts, file)
    ]
    queue_length = _store().append(jobs)
    _report_added(len(jobs), queue_length)


def _prompts_for(prompts: Optional[List[str]], count: int, noun: str) -> List[str]:
    """Match --prompt values to ``count`` jobs, reusing a single prompt for all."""
    prompts = prompts or []
    if not prompts:
        return [""] * count
    if len(prompts) == 1:
        return prompts * count
    if len(prompts) != count:
        raise InvalidJobError(
            f"Got {len(prompts)} prompts for {count} {noun}s; "
            f"pass one prompt for all or one per {noun}"
        )
    return prompts


@app.command("add-image")
@handle_errors
def add_image(
    images: List[Path] = typer.Argument(
        ...,
        help="Images to animate, one image-to-video job each.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    prompts: Optional[List[str]] = typer.Option(
        None,
        "--prompt",
        "-p",
        help="Prompt guiding the animation. Repeat once per image, or give one for all.",
    ),
) -> None:
    """Queue image-to-video jobs.

    Example:
        flow-automator queue add-image portrait.png --prompt "She turns and smiles"
        flow-automator queue add-image a.png b.png -p "Slow zoom" -p "Pan left"
    """
    from flow_automator.scheduler.jobs import Job, JobKind

    jobs = [
        Job.create(JobKind.IMAGE_TO_VIDEO, {"image": str(image), "prompt": prompt})
        for image, prompt in zip(images, _prompts_for(prompts, len(images), "image"))
    ]
    queue_length = _store().append(jobs)
    _report_added(len(jobs), queue_length)


@app.command("add-frames")
@handle_errors
def add_frames(
    frames: List[Path] = typer.Argument(
        ...,
        help="Frame images as START END pairs, one start-to-end job per pair.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    prompts: Optional[List[str]] = typer.Option(
        None,
        "--prompt",
        "-p",
        help="Prompt describing the transition. Repeat once per pair, or give one for all.",
    ),
) -> None:
    """Queue start-to-end frames jobs.

    Example:
        flow-automator queue add-frames sunrise.png sunset.png --prompt "Time lapse"
        flow-automator queue add-frames a1.png a2.png b1.png b2.png -p "Morph" -p "Fade"
    """
    from flow_automator.scheduler.jobs import Job, JobKind

    if len(frames) % 2:
        raise InvalidJobError(
            f"Frames come in START END pairs, got {len(frames)} images"
        )

    pairs = list(zip(frames[::2], frames[1::2]))
    jobs = [
        Job.create(
            JobKind.START_TO_END,
            {"start_frame": str(start), "end_frame": str(end), "prompt": prompt},
        )
        for (start, end), prompt in zip(pairs, _prompts_for(prompts, len(pairs), "pair"))
    ]
    queue_length = _store().append(jobs)
    _report_added(len(jobs), queue_length)


@app.command("add-character")
@handle_errors
def add_character(
    prompts: Optional[List[str]] = typer.Argument(
        None,
        help="Prompts mentioning 1-3 saved characters by name.",
    ),
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Read prompts from a file, one per line.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Queue character videos using saved characters.

    Every prompt must mention between one and three saved characters. If
    any prompt fails that check, nothing is queued.

    Example:
        flow-automator characters add Mia mia.png
        flow-automator queue add-character "Mia walks through a market"
    """
    from flow_automator.characters import CharacterLibrary
    from flow_automator.config import load_config
    from flow_automator.scheduler.jobs import Job, JobKind

    config = load_config()
    library = CharacterLibrary(config.characters_file)

    if not library.list():
        raise InvalidJobError(
            "No characters saved. Add one with: flow-automator characters add NAME IMAGE"
        )

    jobs = [
        Job.create(JobKind.CHARACTER_VIDEO, library.payload_for_prompt(prompt))
        for prompt in _read_prompts(prompts, file)
    ]
    queue_length = _store().append(jobs)
    _report_added(len(jobs), queue_length)


@app.command("list")
@handle_errors
def list_jobs() -> None:
    """List pending jobs in the order they will run.

    Example:
        flow-automator queue list
        flow-automator --json queue list
    """
    from flow_automator.cli.output import print_json, print_table
    from flow_automator.main import is_json

    jobs = _store().load()

    if is_json():
        print_json([job.to_dict() for job in jobs])
        return

    if not jobs:
        console.print("[dim]Queue is empty.[/dim]")
        return

    rows = [
        {
            "position": position,
            "id": str(job.job_id)[:8],
            "kind": job.kind.value,
            "details": escape(job.describe()),
            "submitted": job.submitted_at.strftime("%Y-%m-%d %H:%M"),
        }
        for position, job in enumerate(jobs, 1)
    ]
    print_table(
        rows,
        ["position", "id", "kind", "details", "submitted"],
        title=f"Queued Jobs ({len(jobs)})",
        column_styles={"id": "cyan", "kind": "magenta"},
    )


@app.command("clear")
@handle_errors
def clear_queue(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt.",
    ),
) -> None:
    """Remove all pending jobs.

    Example:
        flow-automator queue clear --yes
    """
    from flow_automator.cli.output import print_result

    store = _store()
    if not yes:
        pending = len(store.load())
        if not typer.confirm(f"Remove {pending} pending jobs?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit()

    removed = store.clear()
    print_result(True, f"Cleared {removed} jobs from the queue")
