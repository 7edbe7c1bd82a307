"""
Log Model for the Resource Allocation Graph Simulator.

Defines the human-readable log entries the simulation state accumulates.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class LogType(Enum):
    """Types of log entries in the simulation."""
    GRANTED = "granted"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"
    RELEASED = "released"
    NO_OP = "no_op"
    AVOIDED = "avoided"
    WARNING = "warning"
    STEP_NO_OP = "step_no_op"
    COMMIT = "commit"
    BASELINE = "baseline"
    INFO = "info"


@dataclass(frozen=True)
class LogEntry:
    """
    Represents a single line of the simulation log.

    Attributes:
        step: Simulation step when the entry was written
        log_type: Type of entry
        process: Process involved (if applicable)
        resource: Resource involved (if applicable)
        count: Instance count involved (if applicable)
        available: Availability of the resource after the action (if applicable)
        message: Free text (cycle description, labels, notes)
    """
    step: int
    log_type: LogType
    process: Optional[str] = None
    resource: Optional[str] = None
    count: Optional[int] = None
    available: Optional[int] = None
    message: str = ""

    def __str__(self) -> str:
        """Format entry as a log line."""
        if self.log_type == LogType.GRANTED:
            return f"Granted: {self.process} <- {self.count} {self.resource} (avail {self.available})"
        elif self.log_type == LogType.BLOCKED:
            return f"Blocked: {self.process} waiting for {self.count} {self.resource}"
        elif self.log_type == LogType.UNBLOCKED:
            return f"Unblocked: {self.process} granted {self.count} {self.resource} from queue"
        elif self.log_type == LogType.RELEASED:
            return f"Released: {self.process} -> {self.count} {self.resource} (avail {self.available})"
        elif self.log_type == LogType.NO_OP:
            return f"No-op: {self.process} holds 0 of {self.resource}"
        elif self.log_type == LogType.AVOIDED:
            return f"Avoided: {self.message}"
        elif self.log_type == LogType.WARNING:
            return f"Warning: {self.message}"
        elif self.log_type == LogType.STEP_NO_OP:
            return "No-op step: no pending events and nothing can be granted."
        elif self.log_type == LogType.COMMIT:
            return f"[commit] {self.message}"
        elif self.log_type == LogType.BASELINE:
            return f"[baseline] {self.message}"
        else:
            return self.message


@dataclass
class EventLog:
    """Collection of log entries, oldest first."""
    entries: List[LogEntry] = field(default_factory=list)

    def add(self, entry: LogEntry) -> None:
        """Add an entry to the log."""
        self.entries.append(entry)

    def get_entries_by_type(self, log_type: LogType) -> list:
        """Get all entries of a specific type."""
        return [e for e in self.entries if e.log_type == log_type]

    def get_entries_by_step(self, step: int) -> list:
        """Get all entries written during a specific step."""
        return [e for e in self.entries if e.step == step]

    def lines(self) -> List[str]:
        return [str(entry) for entry in self.entries]

    def tail(self, count: int) -> List[str]:
        """Last `count` rendered lines."""
        if count <= 0:
            return []
        return [str(entry) for entry in self.entries[-count:]]

    def __len__(self) -> int:
        return len(self.entries)
