"""
Allocation Ledger operations for the Resource Allocation Graph Simulator.

Request, release and wait-queue servicing. Every operation mutates the
state in place, returns a structured result and never raises for domain
failures. With avoidance enabled, each grant or wait is checked first on
a scratch copy (see algorithms.avoidance).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.system_state import RAGState
from models.event import coerce_count
from analysis.events import LogType
from algorithms.avoidance import AvoidanceVerdict, evaluate_grant, evaluate_wait


class RequestOutcome(Enum):
    """What happened to a request."""
    GRANTED = "granted"
    QUEUED = "queued"
    DENIED = "denied"
    REJECTED = "rejected"
    INVALID = "invalid"


class FailureReason(Enum):
    """Why a request or release did not go through."""
    INVALID_REFERENCE = "Invalid process or resource"
    INSUFFICIENT_AND_NOT_QUEUED = "Insufficient resources and not enqueued"
    AVOIDED_CYCLE = "Avoided cycle (denied)"
    AVOIDED_WAIT_CYCLE = "Avoided wait cycle (denied)"


@dataclass(frozen=True)
class RequestResult:
    """
    Result of a resource request.

    Attributes:
        outcome: GRANTED, QUEUED, DENIED, REJECTED or INVALID
        reason: Set for every outcome except GRANTED and QUEUED
        message: Cycle description for avoidance denials
    """
    outcome: RequestOutcome
    reason: Optional[FailureReason] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome in (RequestOutcome.GRANTED, RequestOutcome.QUEUED)

    @property
    def granted(self) -> bool:
        return self.outcome == RequestOutcome.GRANTED

    @property
    def queued(self) -> bool:
        return self.outcome == RequestOutcome.QUEUED

    def to_dict(self) -> dict:
        result = {'ok': self.ok}
        if self.ok:
            result['granted'] = self.granted
            if self.queued:
                result['queued'] = True
        else:
            result['reason'] = self.reason.value
        return result


@dataclass(frozen=True)
class ReleaseResult:
    """Result of a release; `released` may be 0 for a no-op."""
    released: int = 0
    reason: Optional[FailureReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    def to_dict(self) -> dict:
        if not self.ok:
            return {'ok': False, 'reason': self.reason.value}
        return {'ok': True, 'released': self.released}


def handle_request(
    state: RAGState,
    process: str,
    resource: str,
    count: int = 1,
    enqueue_if_blocked: bool = True
) -> RequestResult:
    """
    Handle a resource request.

    Steps:
    1. Validate both names exist (INVALID otherwise, no state change)
    2. If enough instances are free: check avoidance on the hypothetical
       grant, then commit it
    3. If not and the caller allows queueing: check avoidance on the
       hypothetical wait edge, then append to the FIFO wait queue and mark
       the process blocked
    4. Otherwise reject with no state change

    Args:
        state: Live system state
        process: Requesting process name
        resource: Requested resource name
        count: Instances requested (coerced to >= 1)
        enqueue_if_blocked: Queue the request when it cannot be granted now

    Returns:
        RequestResult
    """
    proc = state.get_process(process)
    if proc is None or state.get_resource(resource) is None:
        return RequestResult(RequestOutcome.INVALID, FailureReason.INVALID_REFERENCE)

    count = coerce_count(count)
    available = state.available_of(resource)

    if available >= count:
        if state.avoidance:
            verdict = evaluate_grant(state, process, resource, count)
            if verdict.blocked:
                message = verdict.describe(verdict.definite_cycles)
                state.record(
                    LogType.AVOIDED, process=process, resource=resource, count=count,
                    message=f"granting {count} {resource} to {process} would create cycle: {message}"
                )
                return RequestResult(RequestOutcome.DENIED, FailureReason.AVOIDED_CYCLE, message)
            _warn_potential(state, verdict, f"granting {count} {resource} to {process}")

        state.grant(process, resource, count)
        state.assert_resource_conservation(f"after granting {resource}[{count}] to {process}")
        state.record(
            LogType.GRANTED, process=process, resource=resource, count=count,
            available=state.available_of(resource)
        )
        return RequestResult(RequestOutcome.GRANTED)

    if not enqueue_if_blocked:
        return RequestResult(RequestOutcome.REJECTED, FailureReason.INSUFFICIENT_AND_NOT_QUEUED)

    if state.avoidance:
        verdict = evaluate_wait(state, process, resource, count)
        if verdict.blocked:
            message = verdict.describe(verdict.definite_cycles)
            state.record(
                LogType.AVOIDED, process=process, resource=resource, count=count,
                message=f"{process} waiting for {count} {resource} would create cycle: {message}"
            )
            return RequestResult(RequestOutcome.DENIED, FailureReason.AVOIDED_WAIT_CYCLE, message)
        _warn_potential(state, verdict, f"{process} waiting for {count} {resource}")

    state.enqueue_wait(process, resource, count)
    state.record(LogType.BLOCKED, process=process, resource=resource, count=count)
    return RequestResult(RequestOutcome.QUEUED)


def handle_release(state: RAGState, process: str, resource: str, count: int = 1) -> ReleaseResult:
    """
    Release up to `count` held instances, then serve the resource's queue.

    Releasing from a process that holds nothing is a logged no-op that
    still succeeds with released=0.

    Args:
        state: Live system state
        process: Releasing process name
        resource: Released resource name
        count: Instances to release (coerced to >= 1, capped at held)

    Returns:
        ReleaseResult
    """
    if state.get_process(process) is None or state.get_resource(resource) is None:
        return ReleaseResult(reason=FailureReason.INVALID_REFERENCE)

    count = coerce_count(count)
    released = state.release_units(process, resource, count)
    if released == 0:
        state.record(LogType.NO_OP, process=process, resource=resource)
        return ReleaseResult(released=0)

    state.assert_resource_conservation(f"after {process} released {resource}[{released}]")
    state.record(
        LogType.RELEASED, process=process, resource=resource, count=released,
        available=state.available_of(resource)
    )
    try_grant_waiting(state, resource)
    return ReleaseResult(released=released)


def try_grant_waiting(state: RAGState, resource: str) -> bool:
    """
    Grant every satisfiable entry of a resource's wait queue.

    Scans the whole queue in FIFO order. An entry larger than the current
    availability is skipped, not waited on, so a later smaller request can
    still be served (head-of-line non-blocking). Entries vetoed by
    avoidance stay queued and the scan moves on.

    Args:
        state: Live system state
        resource: Resource whose queue is served

    Returns:
        True if at least one entry was granted
    """
    queue = state.waiting.get(resource)
    if not queue:
        return False

    changed = False
    i = 0
    while i < len(queue):
        entry = queue[i]
        if state.available_of(resource) < entry.count:
            i += 1
            continue

        if state.avoidance:
            verdict = evaluate_grant(state, entry.process, resource, entry.count, queue_index=i)
            if verdict.blocked:
                i += 1
                continue
            _warn_potential(state, verdict, f"granting {entry.count} {resource} to {entry.process} from queue")

        state.grant(entry.process, resource, entry.count)
        del queue[i]
        state.assert_resource_conservation(f"after granting {resource}[{entry.count}] to {entry.process} from queue")
        state.record(LogType.UNBLOCKED, process=entry.process, resource=resource, count=entry.count)
        proc = state.get_process(entry.process)
        if proc is not None and not state.is_waiting(entry.process):
            proc.unblock()
        changed = True

    return changed


def _warn_potential(state: RAGState, verdict: AvoidanceVerdict, action: str) -> None:
    if verdict.has_warning:
        state.record(
            LogType.WARNING,
            message=f"{action} forms potential cycle (multi-instance, allowed): "
                    f"{verdict.describe(verdict.potential_cycles)}"
        )
