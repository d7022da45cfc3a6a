"""JSON persistence for pending jobs.

The queue file lets jobs be submitted from one CLI invocation and drained
by another, and keeps the jobs a stopped run left behind.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

from flow_automator.exceptions import InvalidJobError, StorageError
from flow_automator.scheduler.jobs import Job

logger = logging.getLogger(__name__)

QUEUE_FILE_VERSION = "1.0.0"


class QueueStore:
    """Load and save the pending queue as a JSON document.

    The file holds the jobs in submission order::

        {"version": "1.0.0", "saved_at": "...", "jobs": [{...}, ...]}

    Example:
        store = QueueStore(config.data_dir / "queue.json")
        jobs = store.load()
        jobs.append(Job.create("text_to_video", {"prompt": "A cat"}))
        store.save(jobs)
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[Job]:
        """Load pending jobs in submission order.

        Entries that no longer validate are skipped with a warning.

        Returns:
            List of jobs (empty if the file does not exist)

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        if not self._path.exists():
            logger.debug(f"No queue file at {self._path}")
            return []

        try:
            state = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(
                f"Failed to read queue file: {e}",
                details={"path": str(self._path)},
            ) from e

        if not isinstance(state, dict) or not isinstance(state.get("jobs", []), list):
            raise StorageError(
                "Queue file is not a queue document",
                details={"path": str(self._path)},
            )

        jobs: List[Job] = []
        for entry in state.get("jobs", []):
            try:
                jobs.append(Job.from_dict(entry))
            except (InvalidJobError, KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping invalid job in queue file: {e}")

        logger.debug(f"Loaded {len(jobs)} jobs from {self._path}")
        return jobs

    def save(self, jobs: Iterable[Job]) -> None:
        """Write the pending jobs, replacing the previous file atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        state = {
            "version": QUEUE_FILE_VERSION,
            "saved_at": datetime.utcnow().isoformat(),
            "jobs": [job.to_dict() for job in jobs],
        }

        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(state, indent=2))
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(
                f"Failed to write queue file: {e}",
                details={"path": str(self._path)},
            ) from e

        logger.debug(f"Saved {len(state['jobs'])} jobs to {self._path}")

    def append(self, jobs: Iterable[Job]) -> int:
        """Append jobs to the stored queue.

        Returns:
            The new stored queue length
        """
        stored = self.load()
        stored.extend(jobs)
        self.save(stored)
        return len(stored)

    def clear(self) -> int:
        """Remove every stored job.

        Returns:
            Number of jobs removed
        """
        removed = len(self.load())
        self.save([])
        return removed
