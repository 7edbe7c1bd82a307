"""
Scenario Loader for the Resource Allocation Graph Simulator.

Loads and validates JSON scenario files describing processes, resources,
initial assignments and queued events.

Format:
    {
      "description": "...",
      "avoidance": false,
      "processes": ["P1", "P2"],
      "resources": [{"name": "R1", "instances": 1}],
      "assignments": [{"process": "P1", "resource": "R1", "count": 1}],
      "events": [{"type": "request", "process": "P1", "resource": "R2", "count": 1}]
    }
"""

import json
from typing import Dict, List, Any
from pathlib import Path

from models.system_state import RAGState
from models.event import SimulationEvent, InvalidEventError
from analysis.events import LogType

SCENARIOS_DIR = Path(__file__).resolve().parent.parent / "scenarios"


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def bundled_scenarios() -> List[str]:
    """Names of the scenarios shipped in the scenarios/ directory."""
    return sorted(p.stem for p in SCENARIOS_DIR.glob("*.json"))


def resolve_scenario_path(name_or_path: str) -> Path:
    """
    Map a bundled scenario name to its file; other values are taken as paths.
    """
    bundled = SCENARIOS_DIR / f"{name_or_path}.json"
    if bundled.exists():
        return bundled
    return Path(name_or_path)


def load_scenario(file_path: str) -> RAGState:
    """
    Load scenario from JSON file.

    Args:
        file_path: Path to scenario JSON file, or a bundled scenario name

    Returns:
        RAGState with entities, initial assignments and queued events

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    path = resolve_scenario_path(file_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    state = build_state(data)
    label = data.get('description') or path.stem
    state.record(LogType.INFO, message=f"Loaded scenario: {label}")
    return state


def build_state(data: Dict[str, Any]) -> RAGState:
    """
    Build a state from an already-parsed scenario mapping.

    Raises:
        ScenarioLoadError: If the scenario is invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")
    if 'processes' not in data:
        raise ScenarioLoadError("Scenario missing 'processes' field")
    if 'resources' not in data:
        raise ScenarioLoadError("Scenario missing 'resources' field")

    state = RAGState()
    _load_processes(state, data['processes'])
    _load_resources(state, data['resources'])
    _load_assignments(state, data.get('assignments', []))
    _load_events(state, data.get('events', []))
    state.avoidance = bool(data.get('avoidance', False))
    return state


def _load_processes(state: RAGState, process_data: List[Any]) -> None:
    for proc in process_data:
        name = proc.get('name') if isinstance(proc, dict) else proc
        if not state.add_process(name):
            raise ScenarioLoadError(f"Invalid or duplicate process name: {name!r}")


def _load_resources(state: RAGState, resource_data: List[Dict]) -> None:
    for res in resource_data:
        if 'name' not in res:
            raise ScenarioLoadError("Resource missing 'name' field")
        if not state.add_resource(res['name'], res.get('instances', 1)):
            raise ScenarioLoadError(f"Invalid or duplicate resource name: {res['name']!r}")


def _load_assignments(state: RAGState, assignment_data: List[Dict]) -> None:
    """
    Apply initial assignments.

    Critical validation: for each resource r, sum(assigned[r]) <= total[r].
    If this fails, the scenario is invalid.
    """
    for item in assignment_data:
        for key in ('process', 'resource'):
            if key not in item:
                raise ScenarioLoadError(f"Assignment missing '{key}' field")
        try:
            state.assign(item['process'], item['resource'], item.get('count', 1))
        except ValueError as e:
            raise ScenarioLoadError(f"VALIDATION FAILED: {e}")

    state.assert_resource_conservation("after loading initial assignments")


def _load_events(state: RAGState, event_data: List[Dict]) -> None:
    for item in event_data:
        try:
            event = SimulationEvent.from_dict(item)
        except InvalidEventError as e:
            raise ScenarioLoadError(f"Invalid event {item!r}: {e}")
        if state.get_process(event.process) is None:
            raise ScenarioLoadError(f"Event references unknown process: {event.process}")
        if state.get_resource(event.resource) is None:
            raise ScenarioLoadError(f"Event references unknown resource: {event.resource}")
        state.enqueue_event(event)


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Returns:
        Description string, or empty string if the file is missing or invalid
    """
    try:
        with open(resolve_scenario_path(file_path), 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    return data.get('description', '') if isinstance(data, dict) else ''
