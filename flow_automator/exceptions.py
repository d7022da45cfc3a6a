"""Exceptions for Flow Automator.

Every error raised by the package derives from :class:`FlowError` so the
CLI can map it to an exit code in one place.
"""

from typing import Any
from uuid import UUID

from flow_automator.cli.exit_codes import ExitCode


class FlowError(Exception):
    """Base exception for Flow Automator.

    Attributes:
        message: Error message
        exit_code: Exit code to use when the CLI terminates on this error
        details: Optional dictionary of additional error details
    """

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(FlowError):
    """Invalid delay/cooldown bounds or configuration values.

    Raised by the scheduler setters before any state is changed, so the
    previous configuration and the queue are left untouched.
    """

    exit_code = ExitCode.CONFIGURATION_ERROR


class ExecutionFailure(FlowError):
    """The job executor reported failure for a single job.

    The scheduler builds and logs these but never raises them out of a
    run; the drain loop continues with the next job.
    """

    exit_code = ExitCode.EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        job_id: UUID | None = None,
        kind: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if job_id is not None:
            details["job_id"] = str(job_id)
        if kind is not None:
            details["kind"] = kind
        super().__init__(message, details=details)
        self.job_id = job_id
        self.kind = kind


class InvalidJobError(FlowError):
    """A job payload does not match the shape its kind requires."""

    exit_code = ExitCode.INVALID_ARGUMENT


class StorageError(FlowError):
    """Queue state or character library file could not be read or written."""

    exit_code = ExitCode.STORAGE_ERROR


class NetworkError(FlowError):
    """The executor bridge endpoint could not be reached."""

    exit_code = ExitCode.NETWORK_ERROR


class NotFoundError(FlowError):
    """A requested resource (such as a saved character) does not exist."""

    exit_code = ExitCode.NOT_FOUND
