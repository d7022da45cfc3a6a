"""FIFO queue of pending jobs.

Submitters append at the tail while the scheduler's drain loop removes
from the head. Both run on the same asyncio event loop, so the queue
needs no lock.
"""

import logging
from collections import deque
from typing import Deque, Iterable, Iterator, List, Optional
from uuid import UUID

from flow_automator.scheduler.jobs import Job

logger = logging.getLogger(__name__)


class JobQueue:
    """Ordered collection of pending jobs.

    Order always reflects submission order. A job leaves the queue exactly
    once: when the scheduler takes it for execution, when the whole queue
    is cleared, or when it is discarded by id.

    Example:
        queue = JobQueue()
        queue.enqueue(Job.create("text_to_video", {"prompt": "A cat"}))
        len(queue)  # 1
    """

    def __init__(self, jobs: Optional[Iterable[Job]] = None) -> None:
        self._jobs: Deque[Job] = deque(jobs or ())

    def __len__(self) -> int:
        return len(self._jobs)

    def __bool__(self) -> bool:
        return bool(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        # Iterate over a copy so callers never observe a mutation mid-loop
        return iter(list(self._jobs))

    def enqueue(self, job: Job) -> int:
        """Append a job at the tail.

        Args:
            job: The job to add

        Returns:
            The new queue length
        """
        self._jobs.append(job)
        logger.debug(f"Added {job.kind.value} job {job.job_id}. Queue length: {len(self._jobs)}")
        return len(self._jobs)

    def take(self) -> Job:
        """Remove and return the job at the head.

        Only the scheduler's drain loop calls this.

        Raises:
            IndexError: If the queue is empty
        """
        return self._jobs.popleft()

    def clear(self) -> int:
        """Discard every pending job.

        A job already taken by the scheduler is not affected.

        Returns:
            Number of jobs discarded
        """
        discarded = len(self._jobs)
        self._jobs.clear()
        if discarded:
            logger.info(f"Cleared {discarded} pending jobs from the queue")
        return discarded

    def snapshot(self) -> List[Job]:
        """Return the pending jobs in order without removing them."""
        return list(self._jobs)

    def discard(self, job_ids: Iterable[UUID]) -> int:
        """Remove the pending jobs with the given ids, keeping the order of the rest.

        Returns:
            Number of jobs discarded
        """
        ids = set(job_ids)
        kept = [job for job in self._jobs if job.job_id not in ids]
        discarded = len(self._jobs) - len(kept)
        if discarded:
            self._jobs = deque(kept)
            logger.info(f"Discarded {discarded} pending jobs from the queue")
        return discarded
