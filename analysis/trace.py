"""
Trace export for the Resource Allocation Graph Simulator.

Turns states into plain per-step records and writes them as a JSON
document with a generation timestamp.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Any

from models.system_state import RAGState

TRACE_LOG_TAIL = 6


def snapshot_record(state: RAGState) -> Dict[str, Any]:
    """
    Build the trace record for one state.

    Layout:
        {step, processes: [{name, state}], resources: [{name, total}],
         available: {resource: int}, assigned: {resource: {process: int}},
         queues: {resource: [{process, count}]}, logs: [last lines]}
    """
    return {
        'step': state.step,
        'processes': [p.to_record() for p in state.processes],
        'resources': [r.to_record() for r in state.resources],
        'available': state.available_map(),
        'assigned': {
            r.name: dict(state.assignments.get(r.name, {})) for r in state.resources
        },
        'queues': {
            r.name: [entry.to_record() for entry in state.queue_of(r.name)]
            for r in state.resources
        },
        'logs': state.log.tail(TRACE_LOG_TAIL),
    }


def build_trace_document(records: List[Dict[str, Any]], generated_at: datetime = None) -> Dict[str, Any]:
    """Wrap trace records with an ISO-8601 generation timestamp."""
    if generated_at is None:
        generated_at = datetime.now(timezone.utc)
    return {'trace': records, 'generatedAt': generated_at.isoformat()}


def write_trace(file_path: str, records: List[Dict[str, Any]]) -> Path:
    """
    Write a trace document as indented JSON.

    Args:
        file_path: Output path (parent directories are created)
        records: Records from HistoryManager.export_trace()

    Returns:
        Path that was written
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(build_trace_document(records), f, indent=2)
    return path
