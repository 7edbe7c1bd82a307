"""
Process model for the Resource Allocation Graph Simulator.

Represents a process competing for resources in the allocation graph.
"""

from dataclasses import dataclass
from enum import Enum


class ProcessState(Enum):
    """Process states in the simulation."""
    READY = "ready"
    BLOCKED = "blocked"


@dataclass
class Process:
    """
    Represents a process in the resource allocation graph.

    The state is derived: the stepper recomputes it every step from the
    wait queues. Request handling only sets it transiently (BLOCKED when a
    request is queued, READY when a queued request is granted).

    Attributes:
        name: Unique process identifier (immutable after creation)
        state: Current process state
    """
    name: str
    state: ProcessState = ProcessState.READY

    @property
    def is_blocked(self) -> bool:
        """True if the process is waiting in some resource queue."""
        return self.state == ProcessState.BLOCKED

    def block(self) -> None:
        """Mark process as waiting for a resource."""
        self.state = ProcessState.BLOCKED

    def unblock(self) -> None:
        """Mark process as ready to run."""
        self.state = ProcessState.READY

    def to_record(self) -> dict:
        """Serializable form used by stats and trace export."""
        return {'name': self.name, 'state': self.state.value}

    def __repr__(self) -> str:
        return f"Process(name={self.name!r}, state={self.state.value})"
