"""
Event model for the Resource Allocation Graph Simulator.

Queued events are consumed one per simulation step. Only two kinds exist;
anything else is rejected when the event is built rather than when the
stepper dispatches it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any


class InvalidEventError(ValueError):
    """Raised when an event record has an unknown type or missing fields."""
    pass


class EventType(Enum):
    """Types of queued simulation events."""
    REQUEST = "request"
    RELEASE = "release"


@dataclass(frozen=True)
class SimulationEvent:
    """
    A pending request or release waiting in the event queue.

    Attributes:
        event_type: REQUEST or RELEASE
        process: Name of the acting process
        resource: Name of the target resource
        count: Number of instances (coerced to >= 1)
    """
    event_type: EventType
    process: str
    resource: str
    count: int = 1

    def __post_init__(self):
        if not isinstance(self.event_type, EventType):
            raise InvalidEventError(f"Unknown event type: {self.event_type!r}")
        if not self.process or not self.resource:
            raise InvalidEventError("Event requires both a process and a resource")
        object.__setattr__(self, 'count', coerce_count(self.count))

    @classmethod
    def request(cls, process: str, resource: str, count: int = 1) -> 'SimulationEvent':
        return cls(EventType.REQUEST, process, resource, count)

    @classmethod
    def release(cls, process: str, resource: str, count: int = 1) -> 'SimulationEvent':
        return cls(EventType.RELEASE, process, resource, count)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationEvent':
        """
        Build an event from a loosely-typed record.

        Args:
            data: Mapping with 'type', 'process', 'resource' and optional 'count'

        Returns:
            SimulationEvent

        Raises:
            InvalidEventError: If the type is unknown or a field is missing
        """
        if 'type' not in data:
            raise InvalidEventError("Event missing 'type' field")
        try:
            event_type = EventType(str(data['type']).lower())
        except ValueError:
            raise InvalidEventError(f"Unknown event type: {data['type']!r}")

        for key in ('process', 'resource'):
            if key not in data:
                raise InvalidEventError(f"{event_type.value} event missing '{key}'")

        return cls(event_type, data['process'], data['resource'], data.get('count', 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.event_type.value,
            'process': self.process,
            'resource': self.resource,
            'count': self.count,
        }

    def __str__(self) -> str:
        return f"{self.event_type.value.upper()} {self.process} {self.count}x {self.resource}"


def coerce_count(count) -> int:
    """Requested/released counts are at least 1; junk input means 1."""
    try:
        value = int(count)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, value)
