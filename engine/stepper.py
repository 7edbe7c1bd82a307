"""
Simulation Stepper for the Resource Allocation Graph Simulator.

One call to step_forward advances the simulation by exactly one step.
There is no terminal state: an empty event queue with nothing grantable
is quiescent, and callers decide when to stop.
"""

from models.system_state import RAGState
from models.event import EventType
from analysis.events import LogType
from algorithms.allocation import handle_request, handle_release, try_grant_waiting


def step_forward(state: RAGState, auto_grant: bool = True) -> bool:
    """
    Advance the simulation by one step.

    Step Ordering:
    1. Increment the step counter
    2. If an event is pending: pop the head and dispatch it (requests are
       queued when they cannot be granted)
    3. Else, if auto-grant is on: serve every resource's wait queue, and
       log a no-op step if nothing was granted
    4. Recompute every process's ready/blocked state

    Args:
        state: Live system state
        auto_grant: Serve wait queues when no event is pending

    Returns:
        True if the step dispatched an event or granted a queued request
    """
    state.step += 1
    progressed = False

    event = state.pop_event()
    if event is not None:
        if event.event_type == EventType.REQUEST:
            handle_request(state, event.process, event.resource, event.count, enqueue_if_blocked=True)
        elif event.event_type == EventType.RELEASE:
            handle_release(state, event.process, event.resource, event.count)
        progressed = True
    elif auto_grant:
        for resource in state.resources:
            progressed = try_grant_waiting(state, resource.name) or progressed
        if not progressed:
            state.record(LogType.STEP_NO_OP)

    recompute_process_states(state)
    return progressed


def recompute_process_states(state: RAGState) -> None:
    """Blocked if the process has an entry in any wait queue, else ready."""
    for process in state.processes:
        if state.is_waiting(process.name):
            process.block()
        else:
            process.unblock()

