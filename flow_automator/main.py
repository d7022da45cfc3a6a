"""Main CLI entry point for Flow Automator."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from flow_automator import __app_name__, __version__
from flow_automator.cli import characters, config, queue, run
from flow_automator.cli.exit_codes import ExitCode

# Create the main Typer app
app = typer.Typer(
    name=__app_name__,
    help="Flow Automator - Paced queue runner for AI video generation jobs.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Console for CLI output
console = Console()

# Register command groups
app.add_typer(queue.app, name="queue")
app.add_typer(characters.app, name="characters")
app.add_typer(run.app, name="run")
app.add_typer(config.app, name="config")

# Global state for CLI options
_global_state: dict[str, bool] = {
    "json": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


def _setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
    file_level: str = "DEBUG",
    format_str: Optional[str] = None,
) -> None:
    """Set up logging configuration based on CLI options.

    Args:
        verbose: Enable INFO level logging
        debug: Enable DEBUG level logging
        quiet: Suppress non-error output
        log_file: Optional log file path
        file_level: Level for the log file handler
        format_str: Log record format (default depends on debug)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    if debug:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    elif format_str is None:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = []

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, file_level.upper(), logging.DEBUG))
        handlers.append(file_handler)

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        handlers.append(console_handler)
    elif not log_file:
        # In quiet mode without log file, add null handler to prevent warnings
        handlers.append(logging.NullHandler())

    # The root logger passes everything its handlers may want
    root_level = min([level] + [h.level for h in handlers if h.level]) if handlers else level

    logging.basicConfig(
        level=root_level,
        format=format_str,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, debug={debug}")


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging with source locations).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format where applicable.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log to file (level from logging.level in the config, DEBUG by default here).",
    ),
) -> None:
    """Flow Automator - Paced queue runner for AI video generation jobs.

    Queue up video jobs, then let the runner submit them one at a time
    with random delays and periodic cooldowns.

    [bold]Core Commands:[/bold]

    • [cyan]queue[/cyan] - Add, list and clear queued jobs
    • [cyan]characters[/cyan] - Manage saved characters for character videos
    • [cyan]run[/cyan] - Process the queue
    • [cyan]config[/cyan] - Manage configuration

    [bold]Examples:[/bold]

        flow-automator queue add-text "A red fox in the snow"
        flow-automator characters add Mia mia.png
        flow-automator queue add-character "Mia walks through a market"
        flow-automator run --delay-min 5 --delay-max 10

    For more help on a specific command, use: [cyan]flow-automator <command> --help[/cyan]
    """
    from flow_automator.config import LoggingConfig, load_config
    from flow_automator.exceptions import ConfigurationError

    _global_state["json"] = json_output

    if quiet and verbose:
        console.print("[red]Error:[/red] --quiet and --verbose are mutually exclusive")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    if quiet and debug:
        console.print("[red]Error:[/red] --quiet and --debug are mutually exclusive")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    try:
        logging_config = load_config().logging
    except ConfigurationError:
        # Reported by the command itself when it loads the config
        logging_config = LoggingConfig()

    _setup_logging(
        verbose=verbose,
        debug=debug,
        quiet=quiet,
        log_file=log_file or logging_config.file,
        file_level="DEBUG" if log_file else logging_config.level,
        format_str=logging_config.format,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Flow Automator v{__version__} starting")
    logger.debug(f"Options: verbose={verbose}, debug={debug}, json={json_output}, quiet={quiet}")


def is_json() -> bool:
    """Check if JSON output mode is enabled."""
    return _global_state.get("json", False)


__all__ = [
    "app",
    "console",
    "is_json",
]


if __name__ == "__main__":
    app()
