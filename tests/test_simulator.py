"""
Simulator Tests

Tests the stepper, the snapshot history, stats and trace export, the
scenario loader and the command-line driver.
"""

import json
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from simulator import Simulator, main
from analysis.events import LogType
from models.event import InvalidEventError
from analysis.trace import snapshot_record, TRACE_LOG_TAIL
from utils.scenario_loader import load_scenario, build_state, bundled_scenarios, ScenarioLoadError


def run_until_quiescent(sim: Simulator, limit: int = 20) -> None:
    for _ in range(limit):
        progressed = sim.step_forward()
        if not progressed and not sim.state.event_queue:
            return
    raise AssertionError(f"Still progressing after {limit} steps")


def states_by_name(sim: Simulator) -> dict:
    return {p['name']: p['state'] for p in sim.get_stats()['processes']}


def test_step_dispatches_events_in_order():
    """Each step consumes exactly one queued event."""
    print("\n" + "="*60)
    print("TEST 1: Stepper")
    print("="*60)

    sim = Simulator()
    sim.load_scenario("two_proc_cycle")
    assert sim.get_stats()['pendingEvents'] == 2

    assert sim.step_forward()
    assert sim.state.step == 1
    assert states_by_name(sim) == {'P1': 'blocked', 'P2': 'ready'}
    assert sim.get_stats()['deadlock'] is None

    assert sim.step_forward()
    stats = sim.get_stats()
    assert stats['pendingEvents'] == 0
    assert stats['deadlock']['involved'] == ['P1', 'P2']
    assert stats['deadlock']['definite'] == [True]

    assert not sim.step_forward()
    assert sim.state.step == 3
    assert sim.state.logs[-1] == "No-op step: no pending events and nothing can be granted."
    assert [e.log_type for e in sim.state.log.get_entries_by_step(3)] == [LogType.STEP_NO_OP]
    print("  ✓ Events drained one per step; quiescent afterwards")


def test_step_without_auto_grant():
    """With auto-grant off, an event-free step only advances the counter."""
    sim = Simulator()
    sim.add_process("P1")
    sim.add_resource("R1", 1)
    log_size = len(sim.state.log)

    assert not sim.step_forward(auto_grant=False)
    assert sim.state.step == 1
    assert len(sim.state.log) == log_size


def test_contention_scenario():
    """Contention drains without deadlock; only P2 is left waiting on IO."""
    print("\n" + "="*60)
    print("TEST 2: Contention Scenario")
    print("="*60)

    sim = Simulator()
    sim.load_scenario("contention")
    run_until_quiescent(sim)

    stats = sim.get_stats()
    print(f"  Final: {stats['assigned']} queues={stats['queues']}")
    assert stats['step'] == 7
    assert stats['deadlock'] is None
    assert stats['assigned'] == {'CPU': {'P1': 1, 'P3': 1}, 'IO': {'P1': 1}}
    assert stats['queues'] == {'CPU': [], 'IO': ['P2:1']}
    assert stats['available'] == {'CPU': 0, 'IO': 0}
    assert stats['utilization'] == {'CPU': 100.0, 'IO': 100.0}
    assert states_by_name(sim) == {'P1': 'ready', 'P2': 'blocked', 'P3': 'ready', 'P4': 'ready'}

    # Once P1 lets go of IO nothing is left unsatisfied
    assert sim.release("P1", "IO", 1).released == 1
    sim.step_forward()
    assert set(states_by_name(sim).values()) == {'ready'}
    assert sim.get_stats()['deadlock'] is None
    print("  ✓ No deadlock; all ready after the last release")


def test_step_back_round_trip():
    """step_forward followed by step_backward restores the prior state."""
    print("\n" + "="*60)
    print("TEST 3: Step-back Round Trip")
    print("="*60)

    sim = Simulator()
    sim.load_scenario("contention")
    for _ in range(3):
        before = snapshot_record(sim.state)
        pending = list(sim.state.event_queue)
        sim.step_forward()
        assert snapshot_record(sim.state) != before
        assert sim.step_backward()
        assert snapshot_record(sim.state) == before
        assert sim.state.event_queue == pending
        sim.step_forward()
    print("  ✓ Assignments, queues, step and states restored")


def test_step_back_at_baseline():
    sim = Simulator()
    assert not sim.can_step_back()
    assert not sim.step_backward()
    assert sim.state.step == 0


def test_restored_state_is_independent_of_history():
    """Mutating the live state after undo never alters stored snapshots."""
    sim = Simulator()
    sim.load_scenario("two_proc_cycle")
    sim.step_forward()
    sim.step_backward()
    sim.state.assignments["R1"]["P1"] = 99

    sim.step_forward()
    sim.step_backward()
    assert sim.state.assignments["R1"] == {"P1": 1}


def test_reset_to_initial():
    sim = Simulator()
    sim.load_scenario("contention")
    for _ in range(4):
        sim.step_forward()

    sim.reset_to_initial()
    assert sim.state.step == 0
    assert len(sim.history) == 1
    assert len(sim.state.event_queue) == 6
    assert sim.state.assignments == {'CPU': {'P1': 1, 'P2': 1}, 'IO': {}}


def test_history_overflow_evicts_baseline():
    """Past the limit the oldest snapshot, baseline included, is dropped."""
    print("\n" + "="*60)
    print("TEST 4: History Overflow")
    print("="*60)

    sim = Simulator(history_limit=3)
    for name in ("P1", "P2", "P3", "P4", "P5"):
        assert sim.add_process(name)
    assert len(sim.history) == 3

    sim.reset_to_initial()
    assert [p.name for p in sim.state.processes] == ["P1", "P2", "P3"]
    print("  ✓ Reset returns to the oldest surviving snapshot")


def test_hard_reset():
    sim = Simulator()
    sim.load_scenario("contention")
    sim.step_forward()
    sim.hard_reset()

    assert sim.state.processes == [] and sim.state.resources == []
    assert len(sim.history) == 1
    assert sim.get_stats()['step'] == 0
    assert sim.state.logs == [] and sim.state.event_queue == []
    assert not sim.step_backward()


def test_facade_mutations_commit():
    """Successful mutations snapshot; failed ones do not."""
    sim = Simulator()
    assert sim.add_process("P1")
    assert not sim.add_process("P1")
    assert sim.add_resource("R1", 1)
    assert len(sim.history) == 3
    assert sim.state.logs[-1] == "[commit] Add resource R1"

    assert sim.request("P1", "R1", 1).to_dict() == {'ok': True, 'granted': True}
    assert sim.request("PX", "R1", 1).to_dict()['ok'] is False
    assert len(sim.history) == 4

    sim.enqueue_event({'type': 'release', 'process': 'P1', 'resource': 'R1', 'count': 1})
    with pytest.raises(InvalidEventError):
        sim.enqueue_event({'type': 'teleport', 'process': 'P1', 'resource': 'R1'})
    assert len(sim.history) == 5

    sim.clear_events()
    sim.clear_events()
    assert len(sim.history) == 6

    sim.set_avoidance(True)
    assert sim.state.avoidance
    assert len(sim.history) == 7

    assert sim.release("P1", "R1", 1).to_dict() == {'ok': True, 'released': 1}
    assert sim.release("P1", "R1", 1).to_dict() == {'ok': True, 'released': 0}
    assert len(sim.history) == 8


def test_set_speed():
    sim = Simulator()
    assert sim.set_speed(2.5) == 2.5
    assert sim.set_speed(0.01) == 0.1
    assert sim.set_speed(0) == 1.0
    assert sim.set_speed("fast") == 1.0


def test_export_trace():
    """Trace has one record per snapshot with the documented fields."""
    print("\n" + "="*60)
    print("TEST 5: Trace Export")
    print("="*60)

    sim = Simulator()
    sim.load_scenario("two_proc_cycle")
    sim.step_forward()
    sim.step_forward()

    trace = sim.export_trace()
    assert len(trace) == len(sim.history) == 3
    assert [record['step'] for record in trace] == [0, 1, 2]
    for record in trace:
        assert set(record) == {'step', 'processes', 'resources', 'available',
                               'assigned', 'queues', 'logs'}
        assert len(record['logs']) <= TRACE_LOG_TAIL

    last = trace[-1]
    assert last['resources'] == [{'name': 'R1', 'total': 1}, {'name': 'R2', 'total': 1}]
    assert last['queues'] == {'R1': [{'process': 'P2', 'count': 1}],
                              'R2': [{'process': 'P1', 'count': 1}]}
    assert last['assigned'] == {'R1': {'P1': 1}, 'R2': {'P2': 1}}
    assert last['available'] == {'R1': 0, 'R2': 0}

    document = sim.export_trace_document()
    assert document['trace'] == trace
    assert 'generatedAt' in document

    with tempfile.TemporaryDirectory() as tmp:
        path = sim.write_trace(str(Path(tmp) / "out" / "trace.json"))
        with open(path, 'r', encoding='utf-8') as f:
            written = json.load(f)
    assert written['trace'] == trace
    print("  ✓ Trace written as JSON with timestamp")


def test_scenario_loader():
    """Bundled scenarios load; invalid ones raise ScenarioLoadError."""
    print("\n" + "="*60)
    print("TEST 6: Scenario Loader")
    print("="*60)

    assert bundled_scenarios() == ["contention", "no_deadlock", "three_proc_cycle", "two_proc_cycle"]

    state = load_scenario(str(project_root / "scenarios" / "contention.json"))
    assert [r.name for r in state.resources] == ["CPU", "IO"]
    assert len(state.event_queue) == 6
    assert state.logs[-1] == "Loaded scenario: Contention scenario"

    with pytest.raises(ScenarioLoadError):
        load_scenario("does_not_exist.json")

    base = {'processes': ['P1'], 'resources': [{'name': 'R1', 'instances': 1}]}
    with pytest.raises(ScenarioLoadError):
        build_state({**base, 'assignments': [{'process': 'P1', 'resource': 'R1', 'count': 2}]})
    with pytest.raises(ScenarioLoadError):
        build_state({**base, 'events': [{'type': 'finish', 'process': 'P1', 'resource': 'R1'}]})
    with pytest.raises(ScenarioLoadError):
        build_state({**base, 'events': [{'type': 'request', 'process': 'P9', 'resource': 'R1'}]})
    with pytest.raises(ScenarioLoadError):
        build_state({'processes': ['P1', 'P1'], 'resources': []})
    with pytest.raises(ScenarioLoadError):
        build_state({'processes': []})

    state = build_state({**base, 'avoidance': True})
    assert state.avoidance
    print("  ✓ Loader validates entities, assignments and events")


def test_cli_runs_bundled_scenario():
    """The command-line driver runs a scenario and writes a trace."""
    print("\n" + "="*60)
    print("TEST 7: Command-line Driver")
    print("="*60)

    with tempfile.TemporaryDirectory() as tmp:
        trace_path = Path(tmp) / "trace.json"
        log_path = Path(tmp) / "run.log"
        code = main([
            "--scenario", "two_proc_cycle",
            "--steps", "10",
            "--export-trace", str(trace_path),
            "--log-file", str(log_path),
        ])
        assert code == 0
        assert trace_path.exists()
        assert "DEADLOCK DETECTED" in log_path.read_text(encoding='utf-8')

    assert main(["--scenario", "contention", "--avoidance", "--verbose"]) == 0
    assert main(["--scenario", "missing_scenario.json"]) == 1
    print("  ✓ CLI exit codes correct")


def main_tests():
    """Run all simulator tests."""
    print("\n" + "="*70)
    print(" "*22 + "SIMULATOR TESTS")
    print("="*70)

    try:
        test_step_dispatches_events_in_order()
        test_step_without_auto_grant()
        test_contention_scenario()
        test_step_back_round_trip()
        test_step_back_at_baseline()
        test_restored_state_is_independent_of_history()
        test_reset_to_initial()
        test_history_overflow_evicts_baseline()
        test_hard_reset()
        test_facade_mutations_commit()
        test_set_speed()
        test_export_trace()
        test_scenario_loader()
        test_cli_runs_bundled_scenario()

        print("\n✅ ALL SIMULATOR TESTS PASSED\n")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main_tests())
