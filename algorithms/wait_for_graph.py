"""
Wait-For Graph construction for the Resource Allocation Graph Simulator.

Derives a process-only graph from the allocation ledger: an edge P -> Q
means P is queued on a resource Q currently holds.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from models.system_state import RAGState


@dataclass
class WaitForGraph:
    """
    Index-based wait-for graph.

    Attributes:
        nodes: Process names; a node's index is its registry position
        adjacency: adjacency[u] lists the v with an edge u -> v, each once,
            in the order the edges were discovered
        edge_resources: (u, v) -> names of the resources that produced the
            edge, in resource registry order
    """
    nodes: List[str] = field(default_factory=list)
    adjacency: List[List[int]] = field(default_factory=list)
    edge_resources: Dict[Tuple[int, int], List[str]] = field(default_factory=dict)

    def add_edge(self, u: int, v: int, resource: str) -> None:
        key = (u, v)
        if key not in self.edge_resources:
            self.adjacency[u].append(v)
            self.edge_resources[key] = []
        if resource not in self.edge_resources[key]:
            self.edge_resources[key].append(resource)

    @property
    def edge_count(self) -> int:
        return len(self.edge_resources)

    def edges(self) -> List[Tuple[str, str]]:
        """All edges as (waiter, holder) name pairs."""
        return [
            (self.nodes[u], self.nodes[v])
            for u, targets in enumerate(self.adjacency)
            for v in targets
        ]

    def resources_for(self, waiter: str, holder: str) -> List[str]:
        """Resources behind the edge waiter -> holder (empty if no such edge)."""
        try:
            key = (self.nodes.index(waiter), self.nodes.index(holder))
        except ValueError:
            return []
        return list(self.edge_resources.get(key, []))

    def as_name_mapping(self) -> Dict[str, List[str]]:
        """Process name -> list of process names it waits on."""
        return {
            self.nodes[u]: [self.nodes[v] for v in targets]
            for u, targets in enumerate(self.adjacency)
        }


def build_wait_for_graph(state: RAGState) -> WaitForGraph:
    """
    Build the wait-for graph from current assignments and wait queues.

    For each resource, every queued entry that the current availability
    cannot cover gets an edge to every current holder of that resource,
    not only to enough holders to cover the deficit. Entries that are
    already satisfiable (stale) contribute nothing.

    Time Complexity: O(R x (Q + H)) where Q and H are queue and holder sizes

    Args:
        state: Current system state

    Returns:
        WaitForGraph over all registered processes
    """
    index = state.process_index()
    graph = WaitForGraph(
        nodes=[p.name for p in state.processes],
        adjacency=[[] for _ in state.processes],
    )

    for resource in state.resources:
        holders = [index[h] for h in state.holders(resource.name) if h in index]
        available = state.available_of(resource.name)

        for entry in state.queue_of(resource.name):
            if available >= entry.count:
                continue
            waiter = index.get(entry.process)
            if waiter is None:
                continue
            for holder in holders:
                graph.add_edge(waiter, holder, resource.name)

    return graph
