"""
System State model for the Resource Allocation Graph Simulator.

Maintains the entity registry, the assignment ledger, the per-resource
wait queues, the pending event queue and the simulation log. Cross
references between entities are always by name.
"""

import copy
import numpy as np
from typing import List, Dict, Optional, Union
from dataclasses import dataclass, field

from models.process import Process, ProcessState
from models.resource import Resource
from models.event import SimulationEvent, coerce_count
from analysis.events import EventLog, LogEntry, LogType


@dataclass(frozen=True)
class WaitEntry:
    """One FIFO wait-queue entry: `process` waits for `count` instances."""
    process: str
    count: int

    def to_record(self) -> dict:
        return {'process': self.process, 'count': self.count}

    def __str__(self) -> str:
        return f"{self.process}:{self.count}"


@dataclass
class RAGState:
    """
    Live state of the resource allocation graph.

    Attributes:
        processes: Registered processes, in creation order
        resources: Registered resources, in creation order
        assignments: resource name -> {process name -> held count}; zero
            counts are never stored
        waiting: resource name -> FIFO list of WaitEntry; a process may
            appear more than once in the same queue
        event_queue: Pending SimulationEvents, consumed head first
        step: Global step counter
        log: Human-readable simulation log
        avoidance: Whether grants and waits are checked for definite cycles
    """
    processes: List[Process] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    assignments: Dict[str, Dict[str, int]] = field(default_factory=dict)
    waiting: Dict[str, List[WaitEntry]] = field(default_factory=dict)
    event_queue: List[SimulationEvent] = field(default_factory=list)
    step: int = 0
    log: EventLog = field(default_factory=EventLog)
    avoidance: bool = False

    # ------------------------------------------------------------------
    # Entity registry
    # ------------------------------------------------------------------

    @property
    def num_processes(self) -> int:
        """Number of processes in the system."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of resource types in the system."""
        return len(self.resources)

    def get_process(self, name: str) -> Optional[Process]:
        return next((p for p in self.processes if p.name == name), None)

    def get_resource(self, name: str) -> Optional[Resource]:
        return next((r for r in self.resources if r.name == name), None)

    def process_index(self) -> Dict[str, int]:
        """Stable index of every process, in registry order."""
        return {p.name: i for i, p in enumerate(self.processes)}

    def add_process(self, name: str) -> bool:
        """
        Register a new process.

        Returns:
            False if the name is empty or already taken
        """
        if not name or self.get_process(name):
            return False
        self.processes.append(Process(name))
        return True

    def add_resource(self, name: str, instances=1) -> bool:
        """
        Register a new resource type (instances clamped to >= 1).

        Returns:
            False if the name is empty or already taken
        """
        if not name or self.get_resource(name):
            return False
        self.resources.append(Resource(name, instances))
        self._ensure_resource_maps(name)
        return True

    def remove_all(self) -> None:
        """Drop every entity, assignment, queue, event and log line."""
        self.processes = []
        self.resources = []
        self.assignments = {}
        self.waiting = {}
        self.event_queue = []
        self.step = 0
        self.log = EventLog()

    def _ensure_resource_maps(self, resource: str) -> None:
        self.assignments.setdefault(resource, {})
        self.waiting.setdefault(resource, [])

    # ------------------------------------------------------------------
    # Assignment ledger
    # ------------------------------------------------------------------

    def available_of(self, resource: str) -> int:
        """
        Free instances of a resource: total - sum(held counts).

        Unknown resources have nothing available.
        """
        res = self.get_resource(resource)
        if res is None:
            return 0
        return res.total_instances - sum(self.assignments.get(resource, {}).values())

    def held_by(self, resource: str, process: str) -> int:
        return self.assignments.get(resource, {}).get(process, 0)

    def holders(self, resource: str) -> List[str]:
        """Processes currently holding at least one instance, in grant order."""
        return list(self.assignments.get(resource, {}).keys())

    def queue_of(self, resource: str) -> List[WaitEntry]:
        return self.waiting.get(resource, [])

    def grant(self, process: str, resource: str, count: int) -> None:
        """Commit `count` instances to `process` without any checks."""
        self._ensure_resource_maps(resource)
        held = self.assignments[resource]
        held[process] = held.get(process, 0) + count

    def assign(self, process: str, resource: str, count: int = 1) -> None:
        """
        Directly assign instances, used to set up initial allocations.

        Raises:
            ValueError: If either name is unknown or the resource lacks
                enough free instances
        """
        if self.get_process(process) is None or self.get_resource(resource) is None:
            raise ValueError(f"Cannot assign {resource} to {process}: unknown process or resource")
        count = coerce_count(count)
        available = self.available_of(resource)
        if count > available:
            raise ValueError(
                f"Cannot assign {count} {resource} to {process}: only {available} available"
            )
        self.grant(process, resource, count)

    def release_units(self, process: str, resource: str, count: int) -> int:
        """
        Return up to `count` held instances to the pool.

        Returns:
            Number of instances actually released (0 if nothing was held)
        """
        held = self.held_by(resource, process)
        if held <= 0:
            return 0
        released = min(count, held)
        remaining = held - released
        if remaining == 0:
            del self.assignments[resource][process]
        else:
            self.assignments[resource][process] = remaining
        return released

    def enqueue_wait(self, process: str, resource: str, count: int) -> None:
        """Append a wait entry and mark the process blocked."""
        self._ensure_resource_maps(resource)
        self.waiting[resource].append(WaitEntry(process, count))
        proc = self.get_process(process)
        if proc is not None:
            proc.block()

    def is_waiting(self, process: str) -> bool:
        """True if the process has an entry in any wait queue."""
        return any(
            entry.process == process
            for queue in self.waiting.values()
            for entry in queue
        )

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------

    def enqueue_event(self, event: Union[SimulationEvent, Dict]) -> SimulationEvent:
        """
        Append an event to the FIFO event queue.

        Raises:
            InvalidEventError: If a dict record has an unknown type
        """
        if not isinstance(event, SimulationEvent):
            event = SimulationEvent.from_dict(event)
        self.event_queue.append(event)
        return event

    def clear_events(self) -> None:
        self.event_queue = []

    def pop_event(self) -> Optional[SimulationEvent]:
        if not self.event_queue:
            return None
        return self.event_queue.pop(0)

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------

    def record(self, log_type: LogType, **kwargs) -> LogEntry:
        """Append a log entry stamped with the current step."""
        entry = LogEntry(step=self.step, log_type=log_type, **kwargs)
        self.log.add(entry)
        return entry

    @property
    def logs(self) -> List[str]:
        """Rendered log lines, oldest first."""
        return self.log.lines()

    # ------------------------------------------------------------------
    # Copies and matrices
    # ------------------------------------------------------------------

    def clone(self) -> 'RAGState':
        """
        Fully independent deep copy.

        Speculative checks mutate the clone and discard it, so no list or
        dict may be shared with the live state.
        """
        return copy.deepcopy(self)

    @property
    def allocation_matrix(self) -> np.ndarray:
        """Allocation matrix [P][R] built from the ledger."""
        matrix = np.zeros((self.num_processes, self.num_resources), dtype=int)
        index = self.process_index()
        for j, resource in enumerate(self.resources):
            for name, count in self.assignments.get(resource.name, {}).items():
                if name in index:
                    matrix[index[name]][j] = count
        return matrix

    @property
    def request_matrix(self) -> np.ndarray:
        """Pending (queued) instances [P][R], summed over duplicate entries."""
        matrix = np.zeros((self.num_processes, self.num_resources), dtype=int)
        index = self.process_index()
        for j, resource in enumerate(self.resources):
            for entry in self.waiting.get(resource.name, []):
                if entry.process in index:
                    matrix[index[entry.process]][j] += entry.count
        return matrix

    @property
    def total_vector(self) -> np.ndarray:
        """Total instances by resource [R]."""
        return np.array([r.total_instances for r in self.resources], dtype=int)

    @property
    def available_vector(self) -> np.ndarray:
        """Free instances by resource [R]: Total - column sums of Allocation."""
        if not self.resources:
            return np.zeros(0, dtype=int)
        return self.total_vector - self.allocation_matrix.sum(axis=0)

    def available_map(self) -> Dict[str, int]:
        return {
            resource.name: int(available)
            for resource, available in zip(self.resources, self.available_vector)
        }

    def assert_resource_conservation(self, context=""):
        """Verify resource conservation: allocated + available = total for all resources.

        Args:
            context: Description of when this check is being run (for error messages)

        Raises:
            AssertionError: If resource conservation is violated
        """
        allocation_matrix = self.allocation_matrix

        for r_idx, resource in enumerate(self.resources):
            allocated = allocation_matrix[:, r_idx].sum()
            available = self.available_of(resource.name)
            total = resource.total_instances

            assert allocated + available == total, (
                f"Resource conservation violated for {resource.name} {context}\n"
                f"  Allocated: {allocated}, Available: {available}, Total: {total}"
            )

            assert available >= 0, (
                f"Negative available resources for {resource.name} {context}\n"
                f"  Available: {available}"
            )

    def display(self) -> str:
        """
        Generate readable string representation of system state.

        Returns:
            Formatted string showing processes, availability, the
            allocation matrix and the wait queues
        """
        output = []
        output.append("\n" + "="*60)
        output.append(f"SYSTEM STATE (step {self.step}, "
                      f"mode: {'Avoidance' if self.avoidance else 'Detection'})")
        output.append("="*60)

        output.append("\nProcesses:")
        for process in self.processes:
            output.append(f"  {process.name}: {process.state.value}")

        output.append("\nAvailable Resources:")
        available = self.available_map()
        output.append("  [" + ", ".join(
            f"{r.name}:{available[r.name]}/{r.total_instances}" for r in self.resources
        ) + "]")

        allocation_matrix = self.allocation_matrix
        output.append("\nAllocation Matrix:")
        output.append("        " + " ".join(f"{r.name:>6}" for r in self.resources))
        for i, process in enumerate(self.processes):
            row = f"  {process.name:>5}:"
            row += " ".join(f"{allocation_matrix[i][j]:6}" for j in range(self.num_resources))
            output.append(row)

        output.append("\nWait Queues:")
        for resource in self.resources:
            queue = ", ".join(str(e) for e in self.queue_of(resource.name))
            output.append(f"  {resource.name}: [{queue}]")

        output.append(f"\nPending events: {len(self.event_queue)}")
        output.append("="*60)
        return "\n".join(output)


def blocked_processes(state: RAGState) -> List[str]:
    """Names of processes whose derived state is BLOCKED."""
    return [p.name for p in state.processes if p.state == ProcessState.BLOCKED]
