"""Tests for the FIFO job queue."""

import pytest

from flow_automator.scheduler.job_queue import JobQueue
from flow_automator.scheduler.jobs import Job, JobKind


def make_job(prompt: str) -> Job:
    return Job.create(JobKind.TEXT_TO_VIDEO, {"prompt": prompt})


class TestJobQueue:
    """Tests for JobQueue."""

    def test_empty_queue(self) -> None:
        queue = JobQueue()
        assert len(queue) == 0
        assert not queue

    def test_enqueue_returns_length(self) -> None:
        """Each enqueue returns the new length."""
        queue = JobQueue()
        assert [queue.enqueue(make_job(str(i))) for i in range(3)] == [1, 2, 3]

    def test_take_in_submission_order(self) -> None:
        """Jobs leave the queue in the order they arrived."""
        queue = JobQueue()
        for prompt in ("a", "b", "c"):
            queue.enqueue(make_job(prompt))

        assert [queue.take().prompt for _ in range(3)] == ["a", "b", "c"]
        assert len(queue) == 0

    def test_take_empty_raises(self) -> None:
        with pytest.raises(IndexError):
            JobQueue().take()

    def test_initial_jobs(self) -> None:
        """A queue can be seeded with restored jobs."""
        jobs = [make_job("a"), make_job("b")]
        queue = JobQueue(jobs)

        assert queue.snapshot() == jobs
        assert queue.snapshot() is not jobs

    def test_clear(self) -> None:
        """Clearing removes everything and reports the count."""
        queue = JobQueue([make_job("a"), make_job("b")])
        assert queue.clear() == 2
        assert queue.clear() == 0
        assert len(queue) == 0

    def test_discard_by_id(self) -> None:
        """Discarding keeps the remaining jobs in submission order."""
        jobs = [make_job("a"), make_job("b"), make_job("c")]
        queue = JobQueue(jobs)

        assert queue.discard([jobs[1].job_id, "unknown"]) == 1
        assert [job.prompt for job in queue] == ["a", "c"]
        assert queue.discard([]) == 0

    def test_iteration_is_a_copy(self) -> None:
        """Mutating the queue while iterating does not disturb the loop."""
        queue = JobQueue([make_job("a"), make_job("b")])
        seen = []
        for job in queue:
            seen.append(job.prompt)
            queue.enqueue(make_job("late"))

        assert seen == ["a", "b"]
        assert len(queue) == 4
