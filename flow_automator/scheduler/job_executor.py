"""Job executors that perform one queued job against the target application.

The scheduler only needs ``execute(job)`` to settle with a success or
failure result. Executors implement one async method per job kind;
:meth:`JobExecutor.execute` dispatches on the job kind and converts any
exception into a failed :class:`ExecutionResult`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

import httpx

from flow_automator.exceptions import ConfigurationError, ExecutionFailure, NetworkError
from flow_automator.scheduler.jobs import (
    CharacterVideoPayload,
    ImageToVideoPayload,
    Job,
    JobKind,
    JobPayload,
    StartToEndPayload,
    TextToVideoPayload,
    payload_to_dict,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of executing one job.

    Attributes:
        job_id: ID of the job that ran
        kind: Kind of the job
        started_at: When execution started
        completed_at: When execution settled
        success: Whether the executor reported success
        error: Error message if failed
    """

    job_id: UUID
    kind: JobKind
    started_at: datetime
    completed_at: Optional[datetime] = None
    success: bool = False
    error: Optional[str] = None

    @property
    def duration(self) -> float:
        """Execution time in seconds (0 if not settled)."""
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


class JobExecutor(ABC):
    """Abstract base class for job executors.

    Subclasses implement one coroutine per job kind. Each raises on
    failure and returns normally on success.

    Example:
        class MyExecutor(JobExecutor):
            async def text_to_video(self, payload: TextToVideoPayload) -> None:
                await browser.generate(payload.prompt)
            ...

        result = await MyExecutor().execute(job)
    """

    async def execute(self, job: Job) -> ExecutionResult:
        """Execute one job, single attempt.

        Args:
            job: The job to execute

        Returns:
            Execution result; failures are reported here, not raised
        """
        started_at = datetime.utcnow()
        handler = self._handler_for(job.kind)

        try:
            await handler(job.payload)
        except Exception as e:
            logger.error(f"Job {job.job_id} ({job.kind.value}) failed: {e}")
            return ExecutionResult(
                job_id=job.job_id,
                kind=job.kind,
                started_at=started_at,
                completed_at=datetime.utcnow(),
                success=False,
                error=str(e) or type(e).__name__,
            )

        return ExecutionResult(
            job_id=job.job_id,
            kind=job.kind,
            started_at=started_at,
            completed_at=datetime.utcnow(),
            success=True,
        )

    def _handler_for(self, kind: JobKind) -> Callable[[Any], Awaitable[None]]:
        handlers: Dict[JobKind, Callable[[Any], Awaitable[None]]] = {
            JobKind.TEXT_TO_VIDEO: self.text_to_video,
            JobKind.IMAGE_TO_VIDEO: self.image_to_video,
            JobKind.START_TO_END: self.start_to_end,
            JobKind.CHARACTER_VIDEO: self.character_video,
        }
        return handlers[kind]

    @abstractmethod
    async def text_to_video(self, payload: TextToVideoPayload) -> None:
        """Generate a video from a text prompt."""
        ...

    @abstractmethod
    async def image_to_video(self, payload: ImageToVideoPayload) -> None:
        """Animate an image."""
        ...

    @abstractmethod
    async def start_to_end(self, payload: StartToEndPayload) -> None:
        """Generate a video between a start and an end frame."""
        ...

    @abstractmethod
    async def character_video(self, payload: CharacterVideoPayload) -> None:
        """Generate a video with 1-3 named characters."""
        ...

    async def aclose(self) -> None:
        """Release any resources held by the executor."""


class DryRunExecutor(JobExecutor):
    """Executor that only logs jobs, optionally simulating latency.

    Useful for rehearsing a queue's pacing without touching the target
    application.
    """

    def __init__(self, latency_ms: int = 0) -> None:
        self._latency = max(latency_ms, 0) / 1000

    async def _simulate(self, kind: JobKind, payload: JobPayload) -> None:
        logger.info(f"[dry-run] {kind.value}: {payload_to_dict(payload)}")
        if self._latency:
            await asyncio.sleep(self._latency)

    async def text_to_video(self, payload: TextToVideoPayload) -> None:
        await self._simulate(JobKind.TEXT_TO_VIDEO, payload)

    async def image_to_video(self, payload: ImageToVideoPayload) -> None:
        await self._simulate(JobKind.IMAGE_TO_VIDEO, payload)

    async def start_to_end(self, payload: StartToEndPayload) -> None:
        await self._simulate(JobKind.START_TO_END, payload)

    async def character_video(self, payload: CharacterVideoPayload) -> None:
        await self._simulate(JobKind.CHARACTER_VIDEO, payload)


class HttpBridgeExecutor(JobExecutor):
    """Executor that hands each job to an automation bridge over HTTP.

    The bridge (for example a browser extension's companion server) receives
    one message per job in the extension's message format::

        {"action": "text_to_video", "prompt": "..."}

    and answers with ``{"success": true}`` once the job has finished, or
    ``{"success": false, "error": "..."}``. The request blocks until the
    bridge answers, which keeps the target application strictly serialized.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: Optional[float] = 300.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the bridge executor.

        Args:
            endpoint: URL that accepts job messages via POST
            timeout: Request timeout in seconds, None to wait indefinitely
            client: Optional preconfigured client (used in tests)
        """
        self.endpoint = endpoint
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        return self._client

    async def _send(self, kind: JobKind, payload: JobPayload) -> None:
        message: Dict[str, Any] = {"action": kind.value}
        message.update(payload_to_dict(payload))

        try:
            response = await self._get_client().post(self.endpoint, json=message)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"Bridge error: {e.response.status_code}"
            try:
                error_data = e.response.json()
                error_msg = f"{error_msg} - {error_data.get('error', '')}"
            except Exception:
                pass
            raise ExecutionFailure(error_msg, kind=kind.value) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Could not reach bridge at {self.endpoint}: {e}",
                details={"endpoint": self.endpoint},
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if isinstance(data, dict) and data.get("success") is False:
            raise ExecutionFailure(
                data.get("error") or "Bridge reported failure",
                kind=kind.value,
            )

    async def text_to_video(self, payload: TextToVideoPayload) -> None:
        await self._send(JobKind.TEXT_TO_VIDEO, payload)

    async def image_to_video(self, payload: ImageToVideoPayload) -> None:
        await self._send(JobKind.IMAGE_TO_VIDEO, payload)

    async def start_to_end(self, payload: StartToEndPayload) -> None:
        await self._send(JobKind.START_TO_END, payload)

    async def character_video(self, payload: CharacterVideoPayload) -> None:
        await self._send(JobKind.CHARACTER_VIDEO, payload)

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_executor(
    kind: str = "dry-run",
    endpoint: Optional[str] = None,
    timeout: Optional[float] = 300.0,
    dry_run_latency_ms: int = 0,
) -> JobExecutor:
    """Create an executor by name.

    Args:
        kind: "dry-run" or "http"
        endpoint: Bridge URL (required for "http")
        timeout: Bridge request timeout in seconds
        dry_run_latency_ms: Simulated latency for the dry-run executor

    Returns:
        The executor instance

    Raises:
        ConfigurationError: If the kind is unknown or the endpoint is missing
    """
    normalized = kind.lower().replace("_", "-")
    if normalized == "dry-run":
        return DryRunExecutor(latency_ms=dry_run_latency_ms)
    if normalized == "http":
        if not endpoint:
            raise ConfigurationError("The http executor requires an endpoint URL")
        return HttpBridgeExecutor(endpoint, timeout=timeout)
    raise ConfigurationError(f"Unknown executor '{kind}'. Choose from: dry-run, http")
