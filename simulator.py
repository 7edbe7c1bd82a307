#!/usr/bin/env python3
"""
Resource Allocation Graph Simulator
Main entry point for the simulation system.

Educational tool for demonstrating deadlock detection and avoidance on a
resource allocation graph with reversible stepping.
"""

import argparse
import sys
from typing import Optional, Dict, List, Union

from models.system_state import RAGState, blocked_processes
from models.event import SimulationEvent
from analysis.events import LogType
from analysis.stats import get_stats
from analysis.trace import build_trace_document, write_trace
from algorithms.allocation import RequestResult, ReleaseResult, handle_request, handle_release
from algorithms.detection import DeadlockReport, detect_deadlock
from engine.stepper import step_forward
from engine.history import HistoryManager, DEFAULT_HISTORY_LIMIT
from utils.scenario_loader import (
    load_scenario, bundled_scenarios, get_scenario_description, ScenarioLoadError
)
from utils.logger import SimulatorLogger


class Simulator:
    """
    Public surface of the simulator.

    Owns the live state and its history. Every externally visible
    mutation made through this object is followed by a snapshot, so
    step_backward always returns to the state before the last action.
    """

    def __init__(self, state: Optional[RAGState] = None, history_limit: int = DEFAULT_HISTORY_LIMIT):
        """
        Initialize the simulator.

        Args:
            state: Initial state (defaults to an empty one); becomes the baseline
            history_limit: Maximum number of snapshots kept
        """
        self.state = state if state is not None else RAGState()
        self.history = HistoryManager(self.state, history_limit)
        self.speed = 1.0

    # Registry

    def add_process(self, name: str) -> bool:
        added = self.state.add_process(name)
        if added:
            self.commit(f"Add process {name}")
        return added

    def add_resource(self, name: str, instances=1) -> bool:
        added = self.state.add_resource(name, instances)
        if added:
            self.commit(f"Add resource {name}")
        return added

    # Ledger

    def request(self, process: str, resource: str, count: int = 1,
                enqueue_if_blocked: bool = True) -> RequestResult:
        result = handle_request(self.state, process, resource, count, enqueue_if_blocked)
        if result.ok:
            self.commit(f"Request {process} {count}x {resource}")
        return result

    def release(self, process: str, resource: str, count: int = 1) -> ReleaseResult:
        result = handle_release(self.state, process, resource, count)
        if result.released:
            self.commit(f"Release {process} {count}x {resource}")
        return result

    # Event queue

    def enqueue_event(self, event: Union[SimulationEvent, Dict]) -> SimulationEvent:
        """
        Queue a request or release event.

        Raises:
            InvalidEventError: If a dict record has an unknown type
        """
        event = self.state.enqueue_event(event)
        self.commit(f"Queue event {event}")
        return event

    def clear_events(self) -> None:
        if not self.state.event_queue:
            return
        self.state.clear_events()
        self.commit("Clear events")

    # Stepping and history

    def step_forward(self, auto_grant: bool = True) -> bool:
        progressed = step_forward(self.state, auto_grant)
        self.history.snapshot(self.state)
        return progressed

    def can_step_back(self) -> bool:
        return self.history.can_step_back()

    def step_backward(self) -> bool:
        """
        Undo the last snapshot.

        Returns:
            False (and nothing changes) when only the baseline remains
        """
        previous = self.history.step_back()
        if previous is None:
            return False
        self.state = previous
        return True

    def reset_to_initial(self) -> None:
        self.state = self.history.reset_to_initial()

    def hard_reset(self) -> None:
        """Discard everything and start from an empty baseline."""
        self.state.remove_all()
        self.history.rebase(self.state)

    def commit(self, label: str = "") -> None:
        """Log an optional label and snapshot the live state."""
        if label:
            self.state.record(LogType.COMMIT, message=label)
        self.history.snapshot(self.state)

    def set_baseline(self, label: str = "") -> None:
        """Make the live state the only history entry (the reset target)."""
        if label:
            self.state.record(LogType.BASELINE, message=label)
        self.history.rebase(self.state)

    def load_scenario(self, name_or_path: str) -> None:
        """
        Replace the live state with a scenario and make it the baseline.

        Raises:
            ScenarioLoadError: If the scenario cannot be loaded
        """
        self.state = load_scenario(name_or_path)
        self.set_baseline(f"Scenario: {name_or_path}")

    # Settings

    def set_avoidance(self, enabled: bool) -> None:
        self.state.avoidance = bool(enabled)
        self.commit(f"Toggle avoidance {self.state.avoidance}")

    def set_speed(self, value) -> float:
        """Playback speed for external playback loops (>= 0.1)."""
        try:
            speed = float(value)
        except (TypeError, ValueError):
            speed = 1.0
        self.speed = max(0.1, speed or 1.0)
        return self.speed

    # Queries

    def get_stats(self) -> Dict:
        return get_stats(self.state)

    def detect_deadlock(self) -> DeadlockReport:
        return detect_deadlock(self.state)

    def export_trace(self) -> List[Dict]:
        return self.history.export_trace()

    def export_trace_document(self) -> Dict:
        return build_trace_document(self.export_trace())

    def write_trace(self, file_path: str):
        return write_trace(file_path, self.export_trace())


def run_simulation(
    scenario: str,
    max_steps: int = 50,
    avoidance: bool = False,
    auto_grant: bool = True,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    verbose: bool = False,
    log_file: Optional[str] = None,
    export_path: Optional[str] = None
) -> Simulator:
    """
    Run a scenario until it goes quiescent or max_steps is reached.

    The run stops after the first step that neither dispatches an event
    nor grants a queued request.

    Args:
        scenario: Scenario JSON path or bundled scenario name
        max_steps: Upper bound on steps
        avoidance: Enable cycle avoidance (overrides the scenario's flag when set)
        auto_grant: Serve wait queues on steps without events
        history_limit: Maximum snapshots kept
        verbose: Enable verbose logging
        log_file: Optional log file path
        export_path: Optional trace JSON output path

    Returns:
        The Simulator after the run
    """
    logger = SimulatorLogger(verbose=verbose, log_file=log_file)
    sim = Simulator(history_limit=history_limit)

    try:
        sim.load_scenario(scenario)
    except ScenarioLoadError as e:
        logger.log(f"Failed to load scenario: {e}", "error")
        logger.close()
        raise

    if avoidance:
        sim.state.avoidance = True
        sim.set_baseline("Avoidance enabled")

    logger.log(f"\n{'='*60}")
    logger.log(f"SIMULATION START: {'AVOIDANCE' if sim.state.avoidance else 'DETECTION'}")
    logger.log(f"Scenario: {scenario}")
    description = get_scenario_description(scenario)
    if description:
        logger.log(f"Description: {description}")
    logger.log(f"{'='*60}\n")
    logger.log(sim.state.display())

    for _ in range(max_steps):
        seen = len(sim.state.log)
        progressed = sim.step_forward(auto_grant)
        step = sim.state.step

        logger.log_lines(step, sim.state.log.tail(len(sim.state.log) - seen))
        logger.log_system_state(step, sim.state.display())

        report = sim.detect_deadlock()
        if report.has_cycle:
            logger.log_deadlock(step, report)

        if not progressed and not sim.state.event_queue:
            logger.log(f"\nQuiescent at step {step}")
            break

    logger.log(f"\n{'='*60}")
    logger.log("SIMULATION COMPLETE")
    logger.log(f"{'='*60}\n")
    _display_statistics(sim, logger)

    if export_path:
        path = sim.write_trace(export_path)
        logger.log(f"\nTrace written to {path}")

    logger.close()
    return sim


def _display_statistics(sim: Simulator, logger: SimulatorLogger) -> None:
    """Display final simulation statistics."""
    stats = sim.get_stats()
    logger.log("Simulation Statistics:")
    logger.log(f"  Steps: {stats['step']}")
    logger.log(f"  Blocked processes: {blocked_processes(sim.state) or 'none'}")
    for name, available in stats['available'].items():
        logger.log(
            f"  {name}: available={available} assigned={stats['assigned'][name]} "
            f"queue={stats['queues'][name]} utilization={stats['utilization'][name]}%"
        )
    logger.log(f"  Pending events: {stats['pendingEvents']}")
    logger.log(f"  History length: {len(sim.history)}")

    deadlock = stats['deadlock']
    if deadlock:
        kinds = ["definite" if d else "potential" for d in deadlock['definite']]
        logger.log(f"  Deadlock: YES (involved: {', '.join(deadlock['involved'])}; kinds: {kinds})")
    else:
        logger.log("  Deadlock: No")


def main(argv=None):
    """Main entry point for the simulator."""
    parser = argparse.ArgumentParser(
        description='Resource Allocation Graph Deadlock Simulator'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help=f"Path to scenario JSON file or bundled name ({', '.join(bundled_scenarios())})"
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=50,
        help='Maximum number of steps to run (default: 50)'
    )
    parser.add_argument(
        '--avoidance',
        action='store_true',
        help='Deny grants and waits that would create a definite cycle'
    )
    parser.add_argument(
        '--no-auto-grant',
        action='store_true',
        help='Do not serve wait queues on steps without events'
    )
    parser.add_argument(
        '--history-limit',
        type=int,
        default=DEFAULT_HISTORY_LIMIT,
        help=f'Maximum snapshots kept for step-back (default: {DEFAULT_HISTORY_LIMIT})'
    )
    parser.add_argument(
        '--export-trace',
        type=str,
        default=None,
        help='Write the step trace as JSON to this path'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file'
    )

    args = parser.parse_args(argv)

    if args.steps < 1:
        parser.error('--steps must be at least 1')

    try:
        run_simulation(
            args.scenario,
            max_steps=args.steps,
            avoidance=args.avoidance,
            auto_grant=not args.no_auto_grant,
            history_limit=args.history_limit,
            verbose=args.verbose,
            log_file=args.log_file,
            export_path=args.export_trace
        )
    except ScenarioLoadError:
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
