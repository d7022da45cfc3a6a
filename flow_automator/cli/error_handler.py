"""Global exception handling for the Flow Automator CLI.

This module provides a decorator that ensures consistent error reporting
and exit codes across all CLI commands. The exception classes themselves
live in :mod:`flow_automator.exceptions` so the scheduler can raise them
without depending on the CLI.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging

import typer
from rich.console import Console

from flow_automator.cli.exit_codes import ExitCode
from flow_automator.exceptions import FlowError

# Console for error output (stderr)
console = Console(stderr=True)

# Logger for error logging
logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    This decorator catches all exceptions and converts them to appropriate
    error messages and exit codes. It handles:

    - FlowError subclasses: Display error message with appropriate exit code
    - KeyboardInterrupt: Show cancellation message with exit code 130
    - Other exceptions: Show generic error with option for verbose details

    Args:
        func: The function to wrap

    Returns:
        Wrapped function with error handling

    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise ConfigurationError("Invalid delay range")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except FlowError as e:
            logger.error(
                f"{type(e).__name__}: {e.message}",
                extra={"exit_code": e.exit_code, "details": e.details},
            )

            console.print(f"[red]Error:[/red] {e.message}")

            if e.details:
                for key, value in e.details.items():
                    console.print(f"  [dim]{key}:[/dim] {value}")

            raise typer.Exit(code=e.exit_code)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except typer.Exit:
            raise

        except Exception as e:
            logger.exception("Unexpected error occurred")

            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --verbose for more details[/dim]")

            raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
