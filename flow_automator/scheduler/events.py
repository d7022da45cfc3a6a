"""Progress reporting types for the queue scheduler.

Observers are plain callables that receive a :class:`RunProgress` snapshot
after every dequeue, state transition, stop request and cooldown tick.
They are informational only: the scheduler never waits on them and
ignores their exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class RunState(Enum):
    """State of the scheduler's run loop."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class RunProgress:
    """Snapshot of a run delivered to observers.

    Attributes:
        total_at_start: Queue length captured when the run began
        completed_count: Jobs taken from the queue so far in this run
        state: Current run state
        stop_requested: Whether a stop is pending at the next checkpoint
        cooldown_remaining_ms: Remaining cooldown time on cooldown ticks,
            None otherwise
    """

    total_at_start: int
    completed_count: int
    state: RunState
    stop_requested: bool = False
    cooldown_remaining_ms: Optional[int] = None


# Type alias for progress observers
ProgressObserver = Callable[[RunProgress], None]
