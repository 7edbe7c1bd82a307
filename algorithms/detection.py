"""
Deadlock Detection Algorithm for the Resource Allocation Graph Simulator.

Implements three-color depth-first search over the wait-for graph,
reporting every cycle met during the traversal.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from models.system_state import RAGState
from algorithms.wait_for_graph import WaitForGraph, build_wait_for_graph

WHITE, GRAY, BLACK = 0, 1, 2


@dataclass
class DeadlockReport:
    """
    Result of a cycle search.

    Attributes:
        has_cycle: True if at least one cycle was found
        cycles: Each cycle as a sequence of process names; the edge from
            the last name back to the first closes it
        involved: Every process appearing in some cycle
        graph: The wait-for graph that was searched (None when the search
            ran on a bare adjacency mapping)
    """
    has_cycle: bool = False
    cycles: List[List[str]] = field(default_factory=list)
    involved: Set[str] = field(default_factory=set)
    graph: Optional[WaitForGraph] = None

    def describe(self) -> str:
        """Cycles rendered as 'P1->P2 | P3->P4'."""
        return " | ".join("->".join(cycle) for cycle in self.cycles)


def find_cycles(adjacency: List[List[int]]) -> List[List[int]]:
    """
    Find cycles with an iterative three-color DFS.

    Nodes start WHITE, turn GRAY while on the current path and BLACK once
    all their successors are explored. Reaching a GRAY node records the
    path suffix from that node to the top of the stack as one cycle.
    Roots are tried in index order and successors in adjacency order, so
    the output is deterministic; overlapping cycles are not deduplicated.

    Time Complexity: O(V + E) plus the cost of copying reported cycles

    Args:
        adjacency: adjacency[u] lists successors of node u

    Returns:
        List of cycles, each a list of node indices
    """
    color = [WHITE] * len(adjacency)
    path: List[int] = []
    position: Dict[int, int] = {}
    cycles: List[List[int]] = []

    for root in range(len(adjacency)):
        if color[root] != WHITE:
            continue

        color[root] = GRAY
        position[root] = len(path)
        path.append(root)
        stack = [iter(adjacency[root])]

        while stack:
            descended = False
            for v in stack[-1]:
                if color[v] == WHITE:
                    color[v] = GRAY
                    position[v] = len(path)
                    path.append(v)
                    stack.append(iter(adjacency[v]))
                    descended = True
                    break
                if color[v] == GRAY:
                    cycles.append(path[position[v]:])

            if not descended:
                stack.pop()
                finished = path.pop()
                del position[finished]
                color[finished] = BLACK

    return cycles


def detect_cycles_in_adjacency(adjacency: Dict[str, Iterable[str]]) -> DeadlockReport:
    """
    Run cycle detection on a name-keyed adjacency mapping.

    Targets that are not keys of the mapping are added as sink nodes.
    """
    names = list(adjacency.keys())
    for targets in list(adjacency.values()):
        for target in targets:
            if target not in names:
                names.append(target)
    index = {name: i for i, name in enumerate(names)}

    indexed = [[] for _ in names]
    for name, targets in adjacency.items():
        for target in targets:
            if index[target] not in indexed[index[name]]:
                indexed[index[name]].append(index[target])

    return _report(names, find_cycles(indexed))


def detect_deadlock(state: RAGState) -> DeadlockReport:
    """
    Detect circular wait in the current state.

    Builds the wait-for graph from the ledger and queues, then searches it
    for cycles. The state is not modified.

    Args:
        state: Current system state

    Returns:
        DeadlockReport including the searched wait-for graph
    """
    graph = build_wait_for_graph(state)
    report = _report(graph.nodes, find_cycles(graph.adjacency))
    report.graph = graph
    return report


def _report(names: List[str], index_cycles: List[List[int]]) -> DeadlockReport:
    cycles = [[names[i] for i in cycle] for cycle in index_cycles]
    involved = {name for cycle in cycles for name in cycle}
    return DeadlockReport(has_cycle=bool(cycles), cycles=cycles, involved=involved)
