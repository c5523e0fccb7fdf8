"""
Print job model.
A PrintJob is one unit of work for the sequencer and produces one physical
document (or one hardware signal).
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .document import Ticket
from .errors import JobStateError


class JobKind(Enum):
    CUSTOMER_RECEIPT = "customer_receipt"
    KITCHEN_TICKET = "kitchen_ticket"
    BUZZER_SIGNAL = "buzzer_signal"


class JobState(Enum):
    QUEUED = "queued"
    RENDERING = "rendering"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed forward transitions; terminal states have none
_TRANSITIONS = {
    JobState.QUEUED: (JobState.RENDERING, JobState.FAILED),
    JobState.RENDERING: (JobState.EXECUTING, JobState.FAILED),
    JobState.EXECUTING: (JobState.COMPLETED, JobState.FAILED),
    JobState.COMPLETED: (),
    JobState.FAILED: (),
}


def _new_job_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class PrintJob:
    """Queued print work and its lifecycle state."""

    kind: JobKind
    document: Optional[Ticket]
    id: str = field(default_factory=_new_job_id)
    enqueued_at: float = field(default_factory=time.time)
    not_before: float = 0.0
    state: JobState = JobState.QUEUED
    error: Optional[str] = None

    @property
    def order_id(self) -> str:
        return self.document.order_id if self.document is not None else "-"

    @property
    def is_terminal(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)

    def transition(self, new_state: JobState):
        """Move the job forward; backward or repeated moves are rejected."""
        if new_state not in _TRANSITIONS[self.state]:
            raise JobStateError(
                f"job {self.id}: cannot go from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    def fail(self, error: str):
        self.error = error
        self.transition(JobState.FAILED)

    def derive_kitchen_ticket(self, delay: float) -> "PrintJob":
        """Kitchen ticket for the same order, eligible ``delay`` seconds from now."""
        return PrintJob(
            kind=JobKind.KITCHEN_TICKET,
            document=self.document,
            not_before=time.monotonic() + delay,
        )

    def to_status(self) -> dict:
        """Job result in the job_status message format."""
        return {
            "job_id": self.id,
            "kind": self.kind.value,
            "order_id": self.order_id,
            "status": self.state.value,
            "error": self.error,
            "timestamp": int(time.time() * 1000),
        }
