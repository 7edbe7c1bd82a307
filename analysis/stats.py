"""
Statistics for the Resource Allocation Graph Simulator.

Read-only summary of the live state for display layers.
"""

import numpy as np
from typing import Dict, Any

from models.system_state import RAGState
from algorithms.detection import detect_deadlock
from algorithms.avoidance import CycleKind, classify_cycle


def resource_utilization(state: RAGState) -> Dict[str, float]:
    """
    Percentage of each resource's instances currently assigned.

    Formula: column sum of Allocation / Total x 100
    """
    if not state.resources:
        return {}
    allocated = state.allocation_matrix.sum(axis=0)
    utilization = allocated / state.total_vector * 100
    return {
        resource.name: float(np.round(value, 2))
        for resource, value in zip(state.resources, utilization)
    }


def get_stats(state: RAGState) -> Dict[str, Any]:
    """
    Summarize the current state.

    Returns:
        Dict with step, processes, resources, available, assigned, queues
        (as 'process:count' strings), pendingEvents, utilization and
        deadlock (None when the wait-for graph has no cycle)
    """
    report = detect_deadlock(state)

    deadlock = None
    if report.has_cycle:
        deadlock = {
            'involved': [p.name for p in state.processes if p.name in report.involved],
            'cycles': [list(cycle) for cycle in report.cycles],
            'definite': [
                classify_cycle(cycle, report.graph, state) == CycleKind.DEFINITE
                for cycle in report.cycles
            ],
        }

    return {
        'step': state.step,
        'processes': [p.to_record() for p in state.processes],
        'resources': [r.to_record() for r in state.resources],
        'available': state.available_map(),
        'assigned': {
            r.name: dict(state.assignments.get(r.name, {})) for r in state.resources
        },
        'queues': {
            r.name: [str(entry) for entry in state.queue_of(r.name)] for r in state.resources
        },
        'pendingEvents': len(state.event_queue),
        'utilization': resource_utilization(state),
        'deadlock': deadlock,
    }
