"""
History Manager for the Resource Allocation Graph Simulator.

Keeps a bounded, append-only list of state snapshots. Index 0 is the
baseline that reset returns to; the last entry mirrors the live state.
"""

from dataclasses import dataclass
from typing import List, Optional

from models.system_state import RAGState
from analysis.trace import snapshot_record

DEFAULT_HISTORY_LIMIT = 1000


@dataclass(frozen=True)
class StateSnapshot:
    """
    Immutable deep copy of a simulation state.

    The wrapped state is never handed out: restore() materializes a fresh
    copy so the live state and the snapshot share nothing.
    """
    _state: RAGState

    @classmethod
    def capture(cls, state: RAGState) -> 'StateSnapshot':
        return cls(state.clone())

    def restore(self) -> RAGState:
        return self._state.clone()

    def to_record(self) -> dict:
        return snapshot_record(self._state)


class HistoryManager:
    """
    Bounded snapshot history enabling step-back and reset.

    Once the history grows past `limit` the oldest snapshot is evicted,
    including the baseline, so reset after a very long session returns to
    the oldest surviving snapshot rather than the true origin.
    """

    def __init__(self, initial: RAGState, limit: int = DEFAULT_HISTORY_LIMIT):
        """
        Initialize history with a baseline snapshot.

        Args:
            initial: State to use as the baseline
            limit: Maximum number of snapshots kept (at least 1)
        """
        self.limit = max(1, int(limit))
        self.snapshots: List[StateSnapshot] = [StateSnapshot.capture(initial)]

    def __len__(self) -> int:
        return len(self.snapshots)

    @property
    def baseline(self) -> StateSnapshot:
        return self.snapshots[0]

    @property
    def current(self) -> StateSnapshot:
        return self.snapshots[-1]

    def snapshot(self, state: RAGState) -> None:
        """Append a copy of the live state, evicting the oldest past the limit."""
        self.snapshots.append(StateSnapshot.capture(state))
        while len(self.snapshots) > self.limit:
            self.snapshots.pop(0)

    def can_step_back(self) -> bool:
        return len(self.snapshots) > 1

    def step_back(self) -> Optional[RAGState]:
        """
        Drop the newest snapshot and return a copy of the new top.

        Returns:
            The state to reinstate, or None when only the baseline remains
        """
        if not self.can_step_back():
            return None
        self.snapshots.pop()
        return self.current.restore()

    def reset_to_initial(self) -> RAGState:
        """Truncate history to the baseline and return a copy of it."""
        self.snapshots = [self.baseline]
        return self.baseline.restore()

    def rebase(self, state: RAGState) -> None:
        """Replace the whole history with a single snapshot of `state`."""
        self.snapshots = [StateSnapshot.capture(state)]

    def export_trace(self) -> List[dict]:
        """Every snapshot as a trace record, oldest first."""
        return [snapshot.to_record() for snapshot in self.snapshots]
