"""
Deadlock Avoidance for the Resource Allocation Graph Simulator.

Speculatively applies a grant or a wait to a deep copy of the state, runs
cycle detection on the copy and classifies what it finds:

- definite: every edge of the cycle crosses a single-instance resource,
  so the processes can never proceed. The action is denied.
- potential: some edge crosses a multi-instance resource, so the graph
  does not prove deadlock. The action is allowed with a warning.

This is exact only for single-instance resource graphs; it is not a
Banker's safety check.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from models.system_state import RAGState
from algorithms.detection import detect_deadlock
from algorithms.wait_for_graph import WaitForGraph


class CycleKind(Enum):
    """Classification of a wait-for cycle."""
    DEFINITE = "definite"
    POTENTIAL = "potential"


@dataclass
class AvoidanceVerdict:
    """
    Outcome of one speculative check.

    Attributes:
        definite_cycles: Cycles that prove deadlock (block the action)
        potential_cycles: Cycles through multi-instance resources (warn only)
    """
    definite_cycles: List[List[str]] = field(default_factory=list)
    potential_cycles: List[List[str]] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return bool(self.definite_cycles)

    @property
    def has_warning(self) -> bool:
        return bool(self.potential_cycles)

    @staticmethod
    def describe(cycles: List[List[str]]) -> str:
        return " | ".join("->".join(cycle) for cycle in cycles)


def classify_cycle(cycle: List[str], graph: WaitForGraph, state: RAGState) -> CycleKind:
    """
    Classify a cycle as definite or potential.

    Walks consecutive (waiter, holder) pairs, closing the loop from the
    last process back to the first. An edge counts as single-instance if
    a single-instance resource produced it. The cycle is definite only
    if every edge is single-instance.

    Args:
        cycle: Process names in cycle order
        graph: Wait-for graph the cycle was found in
        state: State the graph was built from

    Returns:
        CycleKind.DEFINITE or CycleKind.POTENTIAL
    """
    for i, waiter in enumerate(cycle):
        holder = cycle[(i + 1) % len(cycle)]
        resources = [state.get_resource(name) for name in graph.resources_for(waiter, holder)]
        if not any(r is not None and r.is_single_instance for r in resources):
            return CycleKind.POTENTIAL
    return CycleKind.DEFINITE


def evaluate_state(state: RAGState) -> AvoidanceVerdict:
    """Detect and classify every cycle in a (usually speculative) state."""
    report = detect_deadlock(state)
    verdict = AvoidanceVerdict()
    for cycle in report.cycles:
        if classify_cycle(cycle, report.graph, state) == CycleKind.DEFINITE:
            verdict.definite_cycles.append(cycle)
        else:
            verdict.potential_cycles.append(cycle)
    return verdict


def evaluate_grant(
    state: RAGState,
    process: str,
    resource: str,
    count: int,
    queue_index: Optional[int] = None
) -> AvoidanceVerdict:
    """
    Test what granting `count` instances would do.

    Args:
        state: Live state (left untouched)
        process: Process receiving the grant
        resource: Resource being granted
        count: Number of instances
        queue_index: Position of the wait entry being served, if the grant
            comes from the wait queue; the entry is dropped from the copy

    Returns:
        AvoidanceVerdict for the hypothetical state
    """
    scratch = state.clone()
    if queue_index is not None:
        del scratch.waiting[resource][queue_index]
    scratch.grant(process, resource, count)
    return evaluate_state(scratch)


def evaluate_wait(state: RAGState, process: str, resource: str, count: int) -> AvoidanceVerdict:
    """
    Test what queueing a wait entry would do.

    The copy gets the entry appended and the process marked blocked.
    """
    scratch = state.clone()
    scratch.enqueue_wait(process, resource, count)
    return evaluate_state(scratch)


def grant_would_create_definite_cycle(
    state: RAGState,
    process: str,
    resource: str,
    count: int,
    queue_index: Optional[int] = None
) -> bool:
    return evaluate_grant(state, process, resource, count, queue_index).blocked


def add_wait_would_create_definite_cycle(
    state: RAGState,
    process: str,
    resource: str,
    count: int
) -> bool:
    return evaluate_wait(state, process, resource, count).blocked
